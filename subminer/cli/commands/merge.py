"""CLI command for merging two duplicate notes."""

from pathlib import Path

from subminer.config import ConfigManager
from subminer.exceptions import SubMinerException
from subminer.presenters import ConsolePresenter
from subminer.services import AnkiConnectClient, FieldGroupingMerger


def merge_command(args) -> int:
    """Execute the merge subcommand.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 = success, 1 = failure)
    """
    config = ConfigManager(Path(args.config) if args.config else None).load_config()
    presenter = ConsolePresenter()
    client = AnkiConnectClient(config.ankiconnect_url)
    merger = FieldGroupingMerger(client, config)

    try:
        preview = merger.preview_merge(args.keep, args.delete)
        presenter.show_merge_preview(preview)

        if not args.commit:
            presenter.show_info("\nPreview only. Run again with --commit to apply.")
            return 0

        deleted = merger.commit_merge(preview, delete_duplicate=not args.keep_duplicate)
        presenter.show_success(f"Merged note {args.delete} into note {args.keep}")
        if deleted:
            presenter.show_success(f"Deleted note {args.delete}")
        return 0

    except SubMinerException as e:
        presenter.show_error(f"Error: {e}")
        return 1
    finally:
        client.close()
