"""CLI command for validating the setup."""

from pathlib import Path

from subminer.config import ConfigManager
from subminer.presenters import ConsolePresenter
from subminer.services import AnkiConnectClient, ValidationService


def check_command(args) -> int:
    """Execute the check subcommand.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 = all checks passed, 1 = failure)
    """
    config = ConfigManager(Path(args.config) if args.config else None).load_config()
    presenter = ConsolePresenter()
    client = AnkiConnectClient(config.ankiconnect_url)

    try:
        presenter.show_info("Validating setup...")
        result = ValidationService(config, client).validate_setup()
        presenter.show_validation_result(result)
        return 0 if not result.has_errors else 1
    finally:
        client.close()
