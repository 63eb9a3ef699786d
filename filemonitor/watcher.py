"""
Watch backend built on watchdog.

Directories are watched non-recursively. Events and errors are pushed onto a
single queue as (EVENT, RawEvent) and (ERROR, message) items; close() stops
the observer and pushes the CLOSED marker, which ends the dispatcher loop.
"""

import logging
import os
import queue
import threading
from typing import Dict, List

from watchdog.events import (
    DirModifiedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from filemonitor.events import CLOSED, ERROR, EVENT, Operation, RawEvent
from filemonitor.utils import spawn_periodic_worker

logger = logging.getLogger(__name__)

HEALTH_CHECK_INTERVAL = 30

# watchdog event_type -> Operation. Attribute changes arrive as "modified".
OPERATIONS = {
    "created": Operation.CREATE,
    "modified": Operation.WRITE,
    "deleted": Operation.REMOVE,
    "moved": Operation.RENAME,
}


def _decode(path) -> str:
    return os.fsdecode(path) if isinstance(path, bytes) else path


def to_raw_events(event) -> List[RawEvent]:
    """
    Translate a watchdog event into zero or more RawEvents.

    A move becomes RENAME for the old name followed by CREATE for the new
    one, so a file renamed from an ignored name is still reported.
    Open/close notifications and directory modification echoes are dropped.
    """
    if isinstance(event, DirModifiedEvent):
        return []
    operation = OPERATIONS.get(event.event_type)
    if operation is None:
        return []
    raw_events = [RawEvent(path=_decode(event.src_path), operation=operation)]
    if operation is Operation.RENAME and event.dest_path:
        raw_events.append(RawEvent(path=_decode(event.dest_path), operation=Operation.CREATE))
    return raw_events


class QueueEventHandler(FileSystemEventHandler):
    """Forward translated watchdog events to a queue."""

    def __init__(self, items: queue.Queue):
        super().__init__()
        self.items = items

    def on_any_event(self, event):
        for raw in to_raw_events(event):
            self.items.put((EVENT, raw))


class WatchBackend:
    """
    Owns a watchdog observer and the queue the dispatcher reads from.

    Attributes:
        items: Queue of (EVENT, RawEvent), (ERROR, str) and CLOSED items.
        watches: Mapping of directory to its watchdog ObservedWatch.
    """

    def __init__(self, observer=None, health_check_interval=HEALTH_CHECK_INTERVAL):
        self.items = queue.Queue()
        self.observer = observer if observer is not None else Observer()
        self.handler = QueueEventHandler(self.items)
        self.watches: Dict[str, object] = {}
        self.health_check_interval = health_check_interval
        self._health_worker = None
        self._reported = set()
        self._closed = False
        self._lock = threading.Lock()

    def start(self):
        """Start the observer; watches added afterwards fail immediately if invalid."""
        self.observer.start()
        if self.health_check_interval:
            self._health_worker = spawn_periodic_worker(
                self.check_health, self.health_check_interval, name="FM_WatchHealth"
            )

    def add_watch(self, directory: str):
        """
        Watch a directory (non-recursively).

        Raises:
            FileNotFoundError: If the directory does not exist.
            NotADirectoryError: If the path is not a directory.
            OSError: If the watch backend refuses the directory.
        """
        if not os.path.exists(directory):
            raise FileNotFoundError(f"No such directory: {directory}")
        if not os.path.isdir(directory):
            raise NotADirectoryError(f"Not a directory: {directory}")
        watch = self.observer.schedule(self.handler, directory, recursive=False)
        self.watches[directory] = watch
        return watch

    def report_error(self, message: str):
        self.items.put((ERROR, message))

    def check_health(self):
        """Report watches whose emitter thread has stopped."""
        alive = {emitter.watch for emitter in self.observer.emitters if emitter.is_alive()}
        for directory, watch in list(self.watches.items()):
            if watch not in alive and directory not in self._reported:
                self._reported.add(directory)
                self.report_error(f"watch on {directory} stopped unexpectedly")

    def close(self, timeout=5.0):
        """Stop watching and close the streams. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self._health_worker is not None:
            self._health_worker.stop()
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout)
        self.items.put(CLOSED)
