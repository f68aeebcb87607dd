"""Main CLI application for MoneyVault.

This module provides the unified entry point for all MoneyVault CLI
operations, organizing commands into ledger, budget, reporting, backup and
CSV groups.
"""

import logging
from typing import Annotated

import typer

from ..config import (
    LoggingConfig,
    get_settings,
    set_current_profile,
    validate_profile_name,
)
from ..logging import setup_logging
from .commands import backup, budget, interchange, ledger, report

logger = logging.getLogger(__name__)

# Used when no profile settings are available to log through
_CONSOLE_ONLY = LoggingConfig(log_to_file=False)

app = typer.Typer(
    name="moneyvault",
    help="MoneyVault: Private, encrypted personal finance ledger",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    profile: Annotated[
        str,
        typer.Option(
            "--profile",
            "-p",
            help="User profile to use (e.g., alice, household). Default: default",
            envvar="MONEYVAULT_PROFILE",
        ),
    ] = "default",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for MoneyVault CLI.

    Each profile has its own ledger file, backup directory and master key in
    the OS keychain. Profiles load settings from .env.{profile} files.

    Examples:
      moneyvault ledger init
      moneyvault --profile=household budget status
    """
    try:
        set_current_profile(validate_profile_name(profile))
    except ValueError as e:
        setup_logging(_CONSOLE_ONLY, cli_mode=True, verbose=verbose)
        logger.error(f"❌ {e}")
        raise typer.BadParameter(str(e)) from e

    try:
        settings = get_settings()
    except ValueError as e:
        setup_logging(_CONSOLE_ONLY, cli_mode=True, verbose=verbose)
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    setup_logging(settings.logging, cli_mode=True, verbose=verbose)

    logger.debug(f"👤 Using profile: {profile}")


app.add_typer(ledger.app, name="ledger", help="Ledger and transaction commands")
app.add_typer(budget.app, name="budget", help="Budget management commands")
app.add_typer(report.app, name="report", help="Spending reports")
app.add_typer(backup.app, name="backup", help="Encrypted backup commands")
app.add_typer(interchange.app, name="csv", help="CSV import and export")


def main() -> None:
    """Entry point for the MoneyVault CLI application."""
    app()


if __name__ == "__main__":
    main()
