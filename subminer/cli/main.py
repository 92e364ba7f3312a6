"""Main CLI entry point for subminer."""

import argparse
import logging
import sys

from subminer import __version__
from subminer.cli.commands import check, merge, watch

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="subminer",
        description="Enrich newly mined Anki cards with subtitle sentences, audio and screenshots",
        epilog="Use 'subminer <command> --help' for command-specific help",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--config",
        help="Path to config file (default: ~/.subminer/config.json)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # subminer watch
    watch_parser = subparsers.add_parser(
        "watch",
        help="Watch Anki for new cards",
        description="Poll AnkiConnect and enrich new cards until interrupted with Ctrl+C",
    )
    watch_parser.add_argument(
        "--video",
        help="Video file to generate media from (normally reported by the player)",
    )

    # subminer check
    subparsers.add_parser(
        "check",
        help="Validate setup",
        description="Check AnkiConnect, ffmpeg, deck and note type",
    )

    # subminer merge <keep> <delete>
    merge_parser = subparsers.add_parser(
        "merge",
        help="Merge two duplicate notes",
        description="Preview (or with --commit, apply) a field grouping merge of two notes",
    )
    merge_parser.add_argument("keep", type=int, help="Id of the note to keep")
    merge_parser.add_argument("delete", type=int, help="Id of the note to merge into it")
    merge_parser.add_argument(
        "--commit",
        action="store_true",
        help="Write the merge to Anki instead of only previewing it",
    )
    merge_parser.add_argument(
        "--keep-duplicate",
        action="store_true",
        help="Do not delete the merged note",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    # Dispatch to appropriate command
    if args.command == "watch":
        return watch.watch_command(args)
    elif args.command == "check":
        return check.check_command(args)
    elif args.command == "merge":
        return merge.merge_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
