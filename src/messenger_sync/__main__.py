"""Entry point for running the messenger client from a console.

This module provides the main entry point for messenger-sync.
It handles:
- Configuration loading
- Logging setup with secret sanitization
- Client construction and auto-login
- The tick loop that stands in for the display surface
- Signal handling for graceful shutdown
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from messenger_sync._version import __version__

if TYPE_CHECKING:
    from messenger_sync.core.client import DisplayState, MessengerClient

log = structlog.get_logger()


def setup_logging(
    debug: bool = False,
    log_format: str = "console",
    file_path: Path | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structured logging with secret sanitization.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to enable file logging
    """
    from messenger_sync.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.INFO
    fmt = LogFormat(log_format.lower()) if isinstance(log_format, str) else log_format

    configure_logging(
        level=level,
        log_format=fmt,
        file_path=file_path,
        file_enabled=file_enabled,
    )


def parse_args() -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="messenger-sync",
        description="messenger-sync - Real-time chat client with push synchronization",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse config and validate without connecting",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default=None,
        help="Log output format; overrides the config file (default: console)",
    )

    parser.add_argument(
        "--conversation",
        metavar="NAME",
        help="Open the listed conversation with this name after login",
    )

    return parser.parse_args()


def render(state: "DisplayState") -> None:
    """Print alerts and, when a refresh was requested, the message view."""
    for alert in state.alerts:
        print(f"[!] {alert}")

    if not state.refresh_requested or state.target is None:
        return

    print(f"--- {state.target.display_name} ({state.connection.value}) ---")
    # The cache is newest first; print in reading order
    for message in reversed(state.messages):
        print(f"{message.sender}: {message.body}")


async def open_named_conversation(client: "MessengerClient", name: str) -> None:
    summary = client.find_conversation(name)
    if summary is None:
        log.warning("conversation_not_found", name=name)
        return
    await client.open_conversation(summary.as_target())


async def run_client(
    config_path: Path,
    dry_run: bool = False,
    conversation: str | None = None,
    debug: bool = False,
    log_format: str | None = None,
) -> int:
    """Run the messenger client until a shutdown signal.

    Args:
        config_path: Path to configuration file
        dry_run: If True, only validate config without connecting
        conversation: Name of a conversation to open after login
        debug: Keep debug logging regardless of the configured level
        log_format: Log format from the command line; wins over the config file

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    log.info(
        "starting_messenger_sync",
        version=__version__,
        config_path=str(config_path),
    )

    try:
        # Load configuration
        from messenger_sync.config.loader import load_config

        log.info("loading_configuration", path=str(config_path))
        config = load_config(config_path)
        log.info("configuration_loaded")

        # Reconfigure logging from config file settings
        from messenger_sync.utils.logging import configure_logging

        configure_logging(
            level="DEBUG" if debug else config.logging.level,
            log_format=log_format or config.logging.format,
            file_path=config.logging.file.path if config.logging.file.enabled else None,
            file_enabled=config.logging.file.enabled,
        )

        if dry_run:
            log.info("dry_run_mode_config_valid")
            return 0

        from messenger_sync.core.client import create_client

        log.info("creating_client")
        client = create_client(config)

    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1

    shutdown = asyncio.Event()
    _setup_signal_handlers(shutdown)

    try:
        await client.start()

        if conversation:
            await open_named_conversation(client, conversation)

        while not shutdown.is_set():
            client.tick()
            render(client.display_state())
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=config.client.tick_interval)
            except TimeoutError:
                pass

        return 0

    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1
    finally:
        await client.stop()


def _setup_signal_handlers(shutdown: asyncio.Event) -> None:
    """Set up signal handlers for graceful shutdown."""
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:
            # Not supported on this platform; KeyboardInterrupt still applies
            continue
        log.debug("signal_handler_registered", signal=sig.name)


def main() -> int:
    """Main entry point."""
    args = parse_args()

    # Setup logging with CLI options
    setup_logging(
        debug=args.debug,
        log_format=args.format or "console",
    )

    try:
        return asyncio.run(
            run_client(
                args.config,
                args.dry_run,
                args.conversation,
                args.debug,
                args.format,
            )
        )
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
