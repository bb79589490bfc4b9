"""reachable - Edge-triggered TCP reachability notifications."""

import argparse
import logging
import signal
import sys
import time
from threading import Event
from typing import Optional

from .checker import Checker
from .config import ConfigError, set_defaults
from .facade import is_reachable, start, stop

__version__ = "0.1.0"

__all__ = [
    "Checker",
    "ConfigError",
    "is_reachable",
    "main",
    "set_defaults",
    "start",
    "stop",
]

DEFAULT_HOSTS = ["google.com", "bing.com"]

# Global shutdown event for signal handlers
_shutdown_event: Optional[Event] = None

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def _handle_shutdown(signum: int, frame: object) -> None:
    """Signal handler for graceful shutdown."""
    sig_name = signal.Signals(signum).name
    logger.info("Received %s, initiating shutdown...", sig_name)
    if _shutdown_event is not None:
        _shutdown_event.set()


def _install_shutdown_handler() -> Event:
    global _shutdown_event
    _shutdown_event = Event()
    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)
    return _shutdown_event


def _apply_defaults(args: argparse.Namespace) -> list[str]:
    """Apply config file and flag settings; return the hosts to check.

    Flags take precedence over the configuration file.
    """
    from .config import load_config

    hosts: list[str] = list(args.hosts or [])

    if args.config:
        config = load_config(args.config)
        logger.info("Configuration loaded from %s", args.config)
        set_defaults(interval=config.monitor.interval, timeout=config.monitor.timeout)
        if not hosts:
            hosts = list(config.targets)

    set_defaults(interval=args.interval, timeout=args.timeout)
    return hosts


def _make_notifier(host: str):
    def notify(reachable: bool) -> None:
        if reachable:
            logger.info("%s is UP", host)
        else:
            logger.info("%s is DOWN", host)

    return notify


def _cmd_watch(args: argparse.Namespace) -> None:
    """Execute the watch command - log reachability changes for each host."""
    _setup_logging(args.verbose)

    try:
        hosts = _apply_defaults(args) or list(DEFAULT_HOSTS)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    checkers = [Checker(host, notifier=_make_notifier(host)) for host in hosts]
    shutdown_event = _install_shutdown_handler()

    try:
        for checker in checkers:
            checker.start()

        logger.info("Watching %d host(s), toggle the network to see notifications", len(checkers))
        shutdown_event.wait(timeout=args.duration)

    except ConfigError as e:
        logger.error("Invalid target: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        # Backup handler if signal doesn't work
        logger.info("Keyboard interrupt received")
    finally:
        for checker in checkers:
            checker.stop()
        logger.info("Shutdown complete")


def _cmd_status(args: argparse.Namespace) -> None:
    """Execute the status command - show a live reachability line for one host."""
    _setup_logging(args.verbose)
    args.hosts = [args.host] if args.host else []

    try:
        hosts = _apply_defaults(args) or DEFAULT_HOSTS[:1]
        start(hosts[0])
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    host = hosts[0]
    shutdown_event = _install_shutdown_handler()
    deadline = time.monotonic() + args.duration if args.duration is not None else None

    try:
        while not shutdown_event.wait(timeout=1.0):
            if is_reachable():
                sys.stdout.write(f"\r{host}   REACHABLE  ")
            else:
                sys.stdout.write(f"\r{host} NOT REACHABLE")
            sys.stdout.flush()

            if deadline is not None and time.monotonic() >= deadline:
                break

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        sys.stdout.write("\n")
        stop()


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c", "--config",
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "-i", "--interval",
        type=float,
        help="Seconds between reachability checks (default: 60)",
    )
    parser.add_argument(
        "-t", "--timeout",
        type=float,
        help="TCP connect timeout in seconds (default: 3)",
    )
    parser.add_argument(
        "-d", "--duration",
        type=float,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description="reachable - Notify when a TCP endpoint becomes reachable or unreachable"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"reachable {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # Watch subcommand (default behavior)
    watch_parser = subparsers.add_parser(
        "watch",
        help="Log reachability changes for one or more hosts (default)",
    )
    watch_parser.add_argument(
        "hosts",
        nargs="*",
        help="Targets as host[:port] (default: google.com bing.com)",
    )
    _add_common_arguments(watch_parser)
    watch_parser.set_defaults(func=_cmd_watch)

    # Status subcommand
    status_parser = subparsers.add_parser(
        "status",
        help="Show a live reachability line using the process-wide checker",
    )
    status_parser.add_argument(
        "host",
        nargs="?",
        help="Target as host[:port] (default: google.com)",
    )
    _add_common_arguments(status_parser)
    status_parser.set_defaults(func=_cmd_status)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the reachable package."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Default to 'watch' if no command specified
    if args.command is None:
        args.hosts = []
        args.config = None
        args.interval = None
        args.timeout = None
        args.duration = None
        args.verbose = False
        args.func = _cmd_watch

    args.func(args)
