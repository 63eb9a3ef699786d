"""
Dispatcher module for FileMonitor.

Consumes the watch backend's queue one item at a time:
- events are normalized, filtered by the configured operations and ignore
  rules, logged, and announced through the single configured notifier
- backend errors are logged and the loop keeps going
- the CLOSED marker ends the loop
A failed notification is logged and never stops the loop.
"""

import logging
import queue
from typing import Optional

from filemonitor import paths
from filemonitor.config import Config
from filemonitor.events import (
    CLOSED,
    ERROR,
    EVENT,
    DispatchOutcome,
    NormalizedEvent,
    RawEvent,
)
from filemonitor.ignore import IgnoreVerdict, should_ignore
from filemonitor.notifiers import NotificationError, Notifier


class Dispatcher:
    """
    Single-threaded event loop between the watch backend and a notifier.

    Attributes:
        config: Immutable configuration snapshot
        notifier: The channel chosen at startup, or None
        target_os: Path style events are normalized to
        stats: Counters of received, ignored, sent and failed events
    """

    def __init__(
        self,
        config: Config,
        notifier: Optional[Notifier],
        logger: Optional[logging.Logger] = None,
        target_os: Optional[str] = None,
    ):
        self.config = config
        self.notifier = notifier
        self.logger = logger or logging.getLogger(__name__)
        self.target_os = target_os or config.path_style
        self.stats = {"received": 0, "ignored": 0, "sent": 0, "failed": 0, "errors": 0}
        self._source: Optional[queue.Queue] = None

    def normalize(self, raw: RawEvent) -> NormalizedEvent:
        return NormalizedEvent(
            path=paths.normalize(raw.path, self.target_os),
            operation=raw.operation,
            original_path=raw.path,
        )

    def filter(self, event: NormalizedEvent) -> IgnoreVerdict:
        """Apply the operation filter, then the ignore rules."""
        if self.config.events and event.operation not in self.config.events:
            return IgnoreVerdict(True, f"event filter: {event.operation}")
        return should_ignore(event.path, self.config.ignore)

    def dispatch(self, event: NormalizedEvent) -> Optional[DispatchOutcome]:
        if self.notifier is None:
            return None
        try:
            self.notifier.send(event)
        except NotificationError as e:
            return DispatchOutcome(sent=False, channel=self.notifier.name, error=e)
        return DispatchOutcome(sent=True, channel=self.notifier.name)

    def process_event(self, raw: RawEvent) -> Optional[DispatchOutcome]:
        """
        Run one event through the pipeline.

        Returns:
            The DispatchOutcome, or None if the event was ignored or no
            channel is configured.
        """
        self.stats["received"] += 1
        event = self.normalize(raw)

        verdict = self.filter(event)
        if verdict.ignored:
            self.stats["ignored"] += 1
            self.logger.info(f"Ignored file event: {event.path} (reason: {verdict.reason})")
            return None

        self.logger.info(f"Processing file event: operation={event.operation} file={event.path}")

        outcome = self.dispatch(event)
        if outcome is None:
            return None
        if outcome.sent:
            self.stats["sent"] += 1
            self.logger.info(f"{outcome.channel.capitalize()} notification sent: {event.path}")
        else:
            self.stats["failed"] += 1
            self.logger.error(f"{outcome.channel.capitalize()} notification failed: {outcome.error}")
        return outcome

    def process_error(self, message) -> None:
        self.stats["errors"] += 1
        self.logger.error(f"Watcher error: {message}")

    def run(self, source: queue.Queue) -> None:
        """
        Process items from the backend queue until the CLOSED marker arrives.
        """
        self._source = source
        self.logger.info("Dispatcher started.")
        while True:
            item = source.get()
            if item is CLOSED:
                break
            kind, payload = item
            try:
                if kind == EVENT:
                    self.process_event(payload)
                elif kind == ERROR:
                    self.process_error(payload)
                else:
                    self.logger.warning(f"Unknown item from watcher: {kind!r}")
            except Exception as e:
                self.logger.error(f"Error processing {kind} {payload!r}: {e}", exc_info=True)
        self.logger.info(
            "Dispatcher stopped. "
            + ", ".join(f"{name}={count}" for name, count in self.stats.items())
        )

    def stop(self) -> None:
        """Unblock run() by closing its source."""
        if self._source is not None:
            self._source.put(CLOSED)
