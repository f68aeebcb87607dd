"""Hand-off of backup bundles to and from a directory.

Whatever syncs the directory (a cloud drive, a USB stick, a server upload
job) only ever sees encrypted bundles.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from ..errors import IOFailure
from ..models import EncryptedBackup

logger = logging.getLogger(__name__)

BACKUP_FILE_PREFIX = "backup_"


def save_backup(bundle: EncryptedBackup, directory: Path | str) -> Path:
    """Write a bundle as ``backup_<timestamp>.json``.

    Args:
        bundle: Encrypted bundle to write
        directory: Target directory, created if missing

    Returns:
        Path: The written file

    Raises:
        IOFailure: If the file cannot be written
    """
    directory = Path(directory)
    file_path = directory / f"{BACKUP_FILE_PREFIX}{bundle.timestamp}.json"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        file_path.write_text(bundle.to_json(), encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Unable to write backup {file_path}: {e}") from e

    logger.info(f"Saved backup to {file_path}")
    return file_path


def load_backup(file_path: Path | str) -> EncryptedBackup:
    """Read one bundle file.

    Raises:
        IOFailure: If the file cannot be read
        ValueError: If the file is not a backup bundle
    """
    file_path = Path(file_path)
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Unable to read backup {file_path}: {e}") from e

    try:
        return EncryptedBackup.from_json(content)
    except ValidationError as e:
        raise ValueError(f"{file_path} is not a valid backup bundle") from e


def load_latest_backup(directory: Path | str) -> EncryptedBackup | None:
    """Return the newest bundle in a directory, by bundle timestamp.

    Files that are not valid bundles are skipped with a warning.

    Returns:
        EncryptedBackup | None: Newest bundle, or None if there is none
    """
    directory = Path(directory)
    if not directory.is_dir():
        return None

    latest: EncryptedBackup | None = None
    for file_path in sorted(directory.glob(f"{BACKUP_FILE_PREFIX}*.json")):
        try:
            bundle = load_backup(file_path)
        except ValueError as e:
            logger.warning(f"Skipping {file_path.name}: {e}")
            continue
        if latest is None or bundle.timestamp > latest.timestamp:
            latest = bundle

    if latest is None:
        logger.info(f"No backups found in {directory}")
    return latest
