"""CLI command for watching Anki and enriching new cards."""

import threading
from pathlib import Path

from subminer.config import ConfigManager
from subminer.exceptions import AnkiConnectApiError, AnkiConnectionError
from subminer.orchestration import AnkiIntegration
from subminer.presenters import ConsoleFieldGroupingPrompt, ConsolePresenter
from subminer.services import AnkiConnectClient, MediaGenerator, SubtitleTimingTracker


def watch_command(args) -> int:
    """Execute the watch subcommand.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 = success, 1 = failure)
    """
    config = ConfigManager(Path(args.config) if args.config else None).load_config()
    presenter = ConsolePresenter()

    presenter.show_info("SubMiner - Anki Card Enrichment")
    presenter.show_info("=" * 50)

    client = AnkiConnectClient(config.ankiconnect_url)
    try:
        presenter.show_success(f"Connected to AnkiConnect v{client.version()}")
    except (AnkiConnectionError, AnkiConnectApiError) as e:
        presenter.show_warning(f"AnkiConnect not reachable yet ({e}); will keep trying")

    prompt = ConsoleFieldGroupingPrompt() if config.field_grouping == "manual" else None
    integration = AnkiIntegration(
        config=config,
        client=client,
        timing_tracker=SubtitleTimingTracker(),
        media_generator=MediaGenerator(config.media_temp_folder),
        presenter=presenter,
        field_grouping_callback=prompt,
    )
    if args.video:
        integration.handle_video_path(args.video)

    presenter.show_info("Watching for new cards (Ctrl+C to stop)")
    integration.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        presenter.show_info("\nStopping...")
    finally:
        integration.destroy()
        client.close()
    return 0
