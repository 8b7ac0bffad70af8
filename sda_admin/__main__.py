from __future__ import annotations

from .apps.admin_cli import main


if __name__ == "__main__":
    raise SystemExit(main())
