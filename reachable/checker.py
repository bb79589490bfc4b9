"""Reachability checker with a threaded, edge-triggered poll loop."""

import ipaddress
import logging
import socket
import time
from collections.abc import Callable
from threading import Event, Thread, current_thread

import psutil

from .config import defaults, split_target

logger = logging.getLogger(__name__)

# Interface names used for loopback when psutil cannot report flags.
_LOOPBACK_NAMES = ("lo", "lo0")


def _is_loopback_address(address: str) -> bool:
    """Return True if an interface address is a loopback address."""
    try:
        # Strip IPv6 zone index (fe80::1%eth0)
        return ipaddress.ip_address(address.split("%", 1)[0]).is_loopback
    except ValueError:
        return False


def _is_loopback_interface(name: str, flags: str, addrs: dict) -> bool:
    """Decide whether an interface is a loopback device.

    Prefers the flags psutil reports; falls back to the interface addresses
    and finally to its name on platforms where flags are empty.
    """
    if flags:
        return "loopback" in flags.split(",")

    ip_addresses = [
        addr.address for addr in addrs.get(name, []) if addr.family in (socket.AF_INET, socket.AF_INET6)
    ]
    if ip_addresses:
        return all(_is_loopback_address(a) for a in ip_addresses)

    lowered = name.lower()
    return lowered in _LOOPBACK_NAMES or lowered.startswith("loopback")


def has_interface_up() -> bool:
    """Check whether at least one non-loopback network interface is up.

    Cheap local pre-check that avoids a network dial when there is
    obviously no connectivity (airplane mode, unplugged cable).

    Returns:
        True if a non-loopback interface is up. False otherwise, including
        when interfaces cannot be enumerated.
    """
    try:
        stats = psutil.net_if_stats()
        addrs: dict | None = None
        for name, stat in stats.items():
            if not stat.isup:
                continue
            flags = getattr(stat, "flags", "")
            if not flags and addrs is None:
                addrs = psutil.net_if_addrs()
            if _is_loopback_interface(name, flags, addrs or {}):
                continue
            return True
    except Exception as e:
        logger.debug("Interface enumeration failed: %s", e)
        return False
    return False


def can_connect_tcp(host: str, port: int, timeout: float) -> bool:
    """Attempt a TCP connection to host:port within timeout.

    The connection is closed as soon as it is established; no data is
    exchanged.

    Returns:
        True if the connection was established, False on any error
        (timeout, refusal, DNS failure).
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError as e:
        logger.debug("TCP connect to %s:%d failed: %s", host, port, e)
        return False
    except Exception as e:
        logger.debug("TCP connect to %s:%d failed unexpectedly: %s", host, port, e)
        return False


def probe(host: str, port: int, timeout: float) -> bool:
    """Run one reachability probe: interface check, then TCP dial.

    The dial is skipped when no interface is up.
    """
    if not has_interface_up():
        logger.debug("No network interface up, skipping connect to %s:%d", host, port)
        return False
    return can_connect_tcp(host, port, timeout)


class Checker:
    """Polls one endpoint and notifies only when reachability changes.

    The first probe of every run always notifies, after that the notifier
    fires only on transitions between reachable and unreachable. Each
    Checker runs its own background thread; notifications for one Checker
    are delivered sequentially from that thread.

    Example:
        checker = Checker("example.com:443", notifier=print, interval=5)
        checker.start()
        # ... later ...
        checker.stop()
    """

    def __init__(
        self,
        target: str = "",
        notifier: Callable[[bool], None] | None = None,
        interval: float = 0,
        timeout: float = 0,
    ) -> None:
        """Initialize the checker.

        Args:
            target: Endpoint as ``host[:port]``; port defaults to 80.
            notifier: Callback receiving True/False on each state change.
            interval: Seconds between probes; non-positive uses the
                process-wide default at start time.
            timeout: TCP connect timeout in seconds; non-positive uses the
                process-wide default at start time.
        """
        self.target = target
        self.notifier = notifier
        self.interval = interval
        self.timeout = timeout

        self._host = ""
        self._port = 0
        self._interval = 0.0
        self._timeout = 0.0

        # Last delivered status: None (unknown), True (up), False (down)
        self._status: bool | None = None
        self._stop_event: Event | None = None
        self._thread: Thread | None = None

    def start(self) -> None:
        """Start polling in a background thread and return immediately.

        Calling start() on a running checker is ignored.

        Raises:
            ConfigError: If the target cannot be parsed.
        """
        if self.is_running():
            logger.warning("Checker for %s already running", self.target)
            return

        self._host, self._port = split_target(self.target)
        self._interval = self.interval if self.interval and self.interval > 0 else defaults.interval
        self._timeout = self.timeout if self.timeout and self.timeout > 0 else defaults.timeout
        self._status = None

        # Fresh event per run so a stale loop can never observe a new run's signal
        self._stop_event = Event()
        self._thread = Thread(
            target=self._run_loop,
            args=(self._stop_event,),
            daemon=True,
            name=f"reachable-{self._host}:{self._port}",
        )
        self._thread.start()
        logger.info(
            "Checker started for %s:%d (interval: %.1fs, timeout: %.1fs)",
            self._host,
            self._port,
            self._interval,
            self._timeout,
        )

    def stop(self, timeout: float | None = 10.0) -> None:
        """Stop polling.

        No notification is delivered once this returns, even if a probe was
        in flight. Stopping a checker that is not running is a no-op.

        May be called from the notifier; the loop thread is then not joined
        and exits once the notifier returns.

        Args:
            timeout: Maximum seconds to wait for the loop thread to exit.
        """
        if self._thread is None or self._stop_event is None or not self.is_running():
            return

        logger.info("Stopping checker for %s:%d...", self._host, self._port)
        self._stop_event.set()

        if current_thread() is self._thread:
            return

        self._thread.join(timeout=timeout)

        if self._thread.is_alive():
            logger.warning("Checker thread for %s:%d did not stop within timeout", self._host, self._port)
        else:
            logger.info("Checker for %s:%d stopped", self._host, self._port)

    def is_running(self) -> bool:
        """Check if the poll loop is running and has not been asked to stop.

        A loop still finishing its last probe after stop() does not count,
        so start() can begin a new run right away.
        """
        return (
            self._thread is not None
            and self._thread.is_alive()
            and self._stop_event is not None
            and not self._stop_event.is_set()
        )

    @property
    def status(self) -> bool | None:
        """Last delivered reachability.

        Returns:
            None before the first probe of a run, otherwise the value most
            recently passed to the notifier.
        """
        return self._status

    def _run_loop(self, stop_event: Event) -> None:
        """Main poll loop - runs in background thread."""
        logger.debug("Poll loop started for %s:%d", self._host, self._port)

        next_tick = time.monotonic() + self._interval
        while not stop_event.wait(timeout=max(0.0, next_tick - time.monotonic())):
            active = probe(self._host, self._port, self._timeout)

            # Stop may have been requested while the probe was in flight
            if stop_event.is_set():
                break

            self._update_status(active)

            next_tick += self._interval
            now = time.monotonic()
            if next_tick <= now:
                # Probe overran the schedule: drop missed ticks instead of bursting
                missed = int((now - next_tick) // self._interval) + 1
                logger.debug("Probe of %s:%d overran, skipping %d tick(s)", self._host, self._port, missed)
                next_tick += missed * self._interval

        logger.debug("Poll loop exited for %s:%d", self._host, self._port)

    def _update_status(self, active: bool) -> None:
        """Apply a probe result, notifying only on a change of state."""
        if self._status is active:
            return

        self._status = active
        logger.debug("%s:%d is %s", self._host, self._port, "UP" if active else "DOWN")

        if self.notifier is not None:
            try:
                self.notifier(active)
            except Exception as e:
                logger.error("Reachability notifier failed for %s:%d: %s", self._host, self._port, e)
