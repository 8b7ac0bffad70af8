"""Administrative CLI for the sensitive-data-archive API.

The command surface is implemented with Typer and Rich; usage text is kept in
one lookup table so ``help`` and ``-h`` render the same blocks.
"""

__all__ = ["__version__"]

__version__ = "1.0.0"
