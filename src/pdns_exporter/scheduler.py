"""``pdns_exporter.scheduler`` runs the poller at a fixed interval in a background thread."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from pdns_exporter.poller import PowerDNSPoller

logger = logging.getLogger(f"pdns_exporter.{__name__}")

STOP_TIMEOUT = 10.0
"""Seconds stop() waits for a read in progress before giving up on the read loop thread."""


class Scheduler:
    """Call ``read_tick()`` on the poller every ``interval`` seconds until stopped."""

    def __init__(self, poller: PowerDNSPoller, interval: float, stop_timeout: float = STOP_TIMEOUT) -> None:
        """Save poller and interval, the thread is started by start()."""
        if interval <= 0:
            raise ValueError(f"Invalid interval {interval}")
        self.poller = poller
        self.interval = interval
        self.stop_timeout = stop_timeout
        # set this to ask the read loop to exit
        self.exit_event = threading.Event()
        self.thread: threading.Thread | None = None

    def run(self) -> None:
        """Read loop, reads immediately and then once per interval."""
        while True:
            logger.debug("Read cycle running...")
            self.poller.read_tick()
            logger.debug(f"Read cycle done, will run again in {self.interval} seconds.")
            # wait the configured interval
            if self.exit_event.wait(timeout=self.interval):
                # exit was requested, break out of the loop
                break

    def start(self) -> None:
        """Start the read loop in a daemon thread."""
        self.exit_event.clear()
        self.thread = threading.Thread(target=self.run, args=(), name="pdns-read-loop")
        self.thread.daemon = True
        self.thread.start()
        logger.debug(f"Started read loop background thread {self.thread}")

    def stop(self) -> None:
        """Stop the read loop and shut down the poller. Used on exit.

        If a read is still running after ``stop_timeout`` seconds (a target without a timeout
        talking to a hung PowerDNS) the daemon thread is abandoned and the poller is left alone,
        since shutting it down would wait for the same read.
        """
        if self.thread:
            logger.debug("Asking read loop thread to exit...")
            self.exit_event.set()
            logger.debug("Waiting for read loop thread to exit...")
            self.thread.join(timeout=self.stop_timeout)
            if self.thread.is_alive():
                logger.warning(
                    f"The read loop thread is still waiting for a read after {self.stop_timeout} seconds, not waiting any longer.",  # noqa: E501
                )
                self.thread = None
                return
            logger.debug("The read loop thread exited cleanly.")
            self.thread = None
        self.poller.shutdown()
