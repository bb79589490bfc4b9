"""Zero-configuration, process-wide reachability monitoring.

Wraps a single module-level Checker whose notifier writes into
``network_is_reachable``. The flag defaults to True so code that never calls
start() behaves as if the network is present, and stop() resets it to True.

Reads of the flag are unsynchronized: callers may observe a value that is
one transition behind. Only the singleton's poll thread writes it.
"""

import logging

from .checker import Checker
from .config import defaults

logger = logging.getLogger(__name__)

network_is_reachable = True

_checker = Checker()


def _set_reachable(reachable: bool) -> None:
    global network_is_reachable
    network_is_reachable = reachable


def start(hostname: str) -> None:
    """Start the process-wide checker for ``hostname`` (``host[:port]``).

    Uses the process-wide default interval. Ignored if already running.

    Raises:
        ConfigError: If the hostname cannot be parsed.
    """
    if _checker.is_running():
        logger.warning("Reachability monitoring already running for %s", _checker.target)
        return

    _checker.target = hostname
    _checker.interval = defaults.interval
    _checker.notifier = _set_reachable
    _checker.start()


def stop() -> None:
    """Stop the process-wide checker and reset the flag to True."""
    global network_is_reachable
    _checker.stop()
    network_is_reachable = True


def is_reachable() -> bool:
    """Return the last notified reachability, True when not monitoring."""
    return network_is_reachable
