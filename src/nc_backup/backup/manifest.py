"""Reading and writing the backup manifest.

The manifest file holds one JSON object per successful backup into that
root, each appended on its own line.  Readers accept any sequence of
concatenated JSON objects and use the last (most recent) one.
"""

import json
from pathlib import Path

from pydantic import ValidationError

from nc_backup.backup.models import BackupManifest
from nc_backup.errors import ManifestError


def write_manifest(path: Path, manifest: BackupManifest) -> None:
    """Append ``manifest`` to the file at ``path``.

    Raises:
        OSError: If the file cannot be written.
    """
    with open(path, "a") as f:
        f.write(manifest.to_json() + "\n")


def _iter_objects(content: str):
    decoder = json.JSONDecoder()
    index = 0
    length = len(content)
    while True:
        while index < length and content[index].isspace():
            index += 1
        if index >= length:
            return
        obj, index = decoder.raw_decode(content, index)
        yield obj


def read_manifest(path: Path) -> BackupManifest:
    """Read the most recent manifest entry from ``path``.

    Raises:
        ManifestError: If the file is missing, empty, not JSON, or lacks
            the expected fields.

    Example:
        >>> read_manifest(root / "metadata.json").version_major
        29
    """
    try:
        content = Path(path).read_text()
    except FileNotFoundError:
        raise ManifestError(
            f"No backup metadata found at {path}; this is not a valid backup."
        ) from None
    except OSError as e:
        raise ManifestError(f"Cannot read backup metadata {path}: {e}") from e

    try:
        objects = list(_iter_objects(content))
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in backup metadata {path}: {e}") from e

    if not objects:
        raise ManifestError(f"Backup metadata {path} is empty.")

    last = objects[-1]
    if not isinstance(last, dict):
        raise ManifestError(f"Backup metadata {path} does not contain a JSON object.")

    try:
        return BackupManifest.model_validate(last)
    except ValidationError as e:
        raise ManifestError(f"Invalid backup metadata {path}:\n{e}") from e
