"""
Event types passed between the watch backend, the dispatcher and the notifiers.

The backend feeds a single queue with tagged items:
  - (EVENT, RawEvent): a filesystem change
  - (ERROR, str): an error reported by the watch layer
  - None: the backend closed its streams
"""

import enum
from dataclasses import dataclass
from typing import Optional

EVENT = "event"
ERROR = "error"
CLOSED = None


class Operation(enum.Enum):
    """Kind of filesystem change."""

    CREATE = "CREATE"
    WRITE = "WRITE"
    REMOVE = "REMOVE"
    RENAME = "RENAME"
    CHMOD = "CHMOD"

    def __str__(self):
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "Operation":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown event kind: {name}") from None


@dataclass(frozen=True)
class RawEvent:
    path: str
    operation: Operation


@dataclass(frozen=True)
class NormalizedEvent:
    """A RawEvent whose path has been rewritten for the target path style."""

    path: str
    operation: Operation
    original_path: str = ""


@dataclass(frozen=True)
class DispatchOutcome:
    sent: bool
    channel: Optional[str] = None
    error: Optional[Exception] = None
