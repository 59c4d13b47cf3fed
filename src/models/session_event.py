"""
SessionEvent model for session lifecycle events.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .session import SessionKind


class SessionEventType(str, Enum):
    START = "start"
    END = "end"
    ALERT = "alert"
    SUPPRESSED = "suppressed"
    OVERRIDE_ACTIVE = "override_active"
    OVERRIDE_INACTIVE = "override_inactive"
    OVERRIDE_EXTENDED = "override_extended"


@dataclass(frozen=True)
class SessionEvent:
    """
    An event emitted when a monitored session changes.

    Attributes:
        kind: Session kind the event belongs to.
        type: What happened.
        occurred_at: Unix timestamp of the event.
        duration_seconds: Whole seconds for END/SUPPRESSED/ALERT, else None.
        meta: Extra context (thresholds, override reason, etc.).
    """
    kind: SessionKind
    type: SessionEventType
    occurred_at: float
    duration_seconds: Optional[int] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        """Flat event name, e.g. "subject_absent_end"."""
        return f"{self.kind.value}_{self.type.value}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "type": self.type.value,
            "occurred_at": self.occurred_at,
            "duration_seconds": self.duration_seconds,
            "meta": dict(self.meta),
        }


def whole_seconds(start: float, end: float) -> Optional[int]:
    """
    Floor of (end - start) in seconds, or None when not positive.

    Misordered timestamps must not produce zero or negative durations.
    """
    seconds = math.floor(end - start)
    return seconds if seconds > 0 else None
