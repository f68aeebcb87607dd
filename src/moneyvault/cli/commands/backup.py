"""Encrypted backup commands for MoneyVault CLI.

Backups are written as ``backup_<timestamp>.json`` bundles to the profile's
backup directory (or ``--dir``). Syncing that directory anywhere is safe:
without the passphrase the bundle cannot be read.
"""

import logging
from pathlib import Path

import typer

from ...backup import BackupCodec, load_backup
from ...config import get_backup_path, get_settings
from ..session import open_ledger, profile_key_vault

app = typer.Typer(help="Create and restore passphrase-encrypted backups")
logger = logging.getLogger(__name__)


@app.command("create")
def create(
    passphrase: str = typer.Option(
        ...,
        "--passphrase",
        prompt=True,
        hide_input=True,
        confirmation_prompt=True,
        help="Backup passphrase (prompted if omitted)",
    ),
    directory: Path | None = typer.Option(
        None, "--dir", "-d", help="Output directory (default: profile backup path)"
    ),
) -> None:
    """Encrypt the whole ledger with a passphrase and save the bundle."""
    target = directory or get_backup_path()

    with open_ledger() as store:
        codec = BackupCodec(
            store, profile_key_vault(), platform=get_settings().backup.platform
        )
        logger.info("🔐 Deriving backup key...")
        bundle = codec.create_backup(passphrase)
        path = codec.save_backup(bundle, target)
        typer.echo(str(path))
        logger.info(f"✅ Backup saved: {path.name}")


@app.command("restore")
def restore(
    file: Path | None = typer.Argument(
        None, help="Backup file (default: newest in the backup directory)"
    ),
    passphrase: str = typer.Option(
        ...,
        "--passphrase",
        prompt=True,
        hide_input=True,
        help="Backup passphrase (prompted if omitted)",
    ),
    directory: Path | None = typer.Option(
        None, "--dir", "-d", help="Directory to search for the newest backup"
    ),
) -> None:
    """Decrypt a backup and load its records into the ledger.

    Records with the same id as existing ones are replaced; everything else
    in the ledger is kept.
    """
    with open_ledger() as store:
        codec = BackupCodec(store, profile_key_vault())

        if file is not None:
            bundle = load_backup(file)
        else:
            bundle = codec.load_latest_backup(directory or get_backup_path())
            if bundle is None:
                logger.error("❌ No backup found to restore")
                raise typer.Exit(1)

        result = codec.restore_backup(bundle, passphrase)
        if result.version_warning is not None:
            logger.warning(f"⚠️  {result.version_warning}")
        for problem in result.skipped:
            logger.warning(f"⚠️  Skipped {problem}")

        for kind, count in result.counts.items():
            logger.info(f"  {kind}: {count}")
        logger.info(f"✅ Restored {result.total} records")
