from __future__ import annotations

from typing import Sequence

from .cli_shared import GlobalConfig, UsageError, _json_body
from .http_helpers import join_api_url, post_request


def create(
    config: GlobalConfig,
    dataset_id: str,
    accession_ids: Sequence[str],
    *,
    username: str = "",
) -> None:
    """Create a dataset from a list of accession IDs and a dataset ID."""
    if not accession_ids:
        raise UsageError("at least one accession ID is required to create a dataset")
    url = join_api_url(config.api_uri, "dataset/create")
    body = _json_body(
        {
            "accession_ids": list(accession_ids),
            "dataset_id": dataset_id,
            "user": username,
        }
    )
    post_request(config=config, url=url, body=body)


def release(config: GlobalConfig, dataset_id: str) -> None:
    """Release a dataset for downloading."""
    url = join_api_url(config.api_uri, "dataset/release/{dataset_id}", dataset_id=dataset_id)
    post_request(config=config, url=url)
