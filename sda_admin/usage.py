"""Usage text for every command, keyed by ``(group, subcommand)``.

``(None, None)`` is the top-level usage and ``(group, None)`` a group summary.
Both ``help ...`` and ``-h`` render from this table.
"""

from __future__ import annotations

USAGE: dict[tuple[str | None, str | None], str] = {
    (None, None): """
Usage:
  sda-admin [-uri URI] [-token TOKEN] [-verbose] <command> [options]

Commands:
  user list                     List all users.
  file list -user USERNAME      List all files for a specified user.
  file ingest -filepath FILEPATH -user USERNAME
                                Trigger ingestion of a given file.
  file set-accession -filepath FILEPATH -user USERNAME -accession-id accessionID
                                Assign accession ID to a file.
  dataset create -dataset-id DATASET_ID accessionID [accessionID ...]
                                Create a dataset from a list of accession IDs and a dataset ID.
  dataset release -dataset-id DATASET_ID
                                Release a dataset for downloading.

Global Options:
  -uri URI         Set the URI for the API server (optional if API_HOST is set).
  -token TOKEN     Set the authentication token (optional if ACCESS_TOKEN is set).
  -verbose         Trace each API request on stderr.

Additional Commands:
  help             Show this help message.
  -h, -help        Show this help message.
  version          Show the version of sda-admin.
""",
    ("user", None): """
List Users:
  Usage: sda-admin user list [-json]
    List all users in the system.

Use 'sda-admin help user <command>' for information on a specific command.
""",
    ("user", "list"): """
Usage: sda-admin user list [-json]
  List all users in the system.

Options:
  -json                Print the raw JSON response.
""",
    ("file", None): """
List all files for a user:
  Usage: sda-admin file list -user USERNAME [-json]
    List all files for a specified user.

Ingest a file:
  Usage: sda-admin file ingest -filepath FILEPATH -user USERNAME
    Trigger the ingestion of a given file for a specific user.

Set accession ID to a file:
  Usage: sda-admin file set-accession -filepath FILEPATH -user USERNAME -accession-id ACCESSION_ID
    Assign an accession ID to a file for a given user.

Options:
  -user USERNAME       Specify the username associated with the file.
  -filepath FILEPATH   Specify the path of the file to ingest.
  -accession-id ID     Specify the accession ID to assign to the file.

Use 'sda-admin help file <command>' for information on a specific command.
""",
    ("file", "list"): """
Usage: sda-admin file list -user USERNAME [-json]
  List all files for a specified user.

Options:
  -user USERNAME       Specify the username associated with the files.
  -json                Print the raw JSON response.
""",
    ("file", "ingest"): """
Usage: sda-admin file ingest -filepath FILEPATH -user USERNAME
  Trigger the ingestion of a given file for a specific user.

Options:
  -filepath FILEPATH   Specify the path of the file to ingest.
  -user USERNAME       Specify the username associated with the file.
""",
    ("file", "set-accession"): """
Usage: sda-admin file set-accession -filepath FILEPATH -user USERNAME -accession-id ACCESSION_ID
  Assign accession ID to a file and associate it with a user.

Options:
  -filepath FILEPATH   Specify the path of the file to assign the accession ID.
  -user USERNAME       Specify the username associated with the file.
  -accession-id ID     Specify the accession ID to assign to the file.
""",
    ("dataset", None): """
Create a dataset:
  Usage: sda-admin dataset create -dataset-id DATASET_ID [-user USERNAME] [ACCESSION_ID ...]
    Create a dataset from a list of accession IDs and a dataset ID.

Release a dataset:
  Usage: sda-admin dataset release -dataset-id DATASET_ID
    Release a dataset for downloading based on its dataset ID.

Options:
  -dataset-id DATASET_ID   Specify the unique identifier for the dataset.
  -user USERNAME           (For dataset create) Specify the user that owns the dataset.
  [ACCESSION_ID ...]       (For dataset create) Specify one or more accession IDs to include in the dataset.

Use 'sda-admin help dataset <command>' for information on a specific command.
""",
    ("dataset", "create"): """
Usage: sda-admin dataset create -dataset-id DATASET_ID [-user USERNAME] [ACCESSION_ID ...]
  Create a dataset from a list of accession IDs and a dataset ID.

Options:
  -dataset-id DATASET_ID   Specify the unique identifier for the dataset.
  -user USERNAME           Specify the user that owns the dataset.
  [ACCESSION_ID ...]       Specify one or more accession IDs to include in the dataset.
""",
    ("dataset", "release"): """
Usage: sda-admin dataset release -dataset-id DATASET_ID
  Release a dataset for downloading based on its dataset ID.

Options:
  -dataset-id DATASET_ID   Specify the unique identifier for the dataset.
""",
    ("version", None): """
Usage: sda-admin version
  Show the version information for sda-admin.
""",
}

GROUPS: tuple[str, ...] = ("user", "file", "dataset", "version")


def subcommands(group: str) -> list[str]:
    return [sub for (g, sub) in USAGE if g == group and sub is not None]


def render_usage(group: str | None = None, subcommand: str | None = None) -> str:
    """Return the usage block for ``(group, subcommand)`` without surrounding blank lines."""
    return USAGE[(group, subcommand)].strip("\n")
