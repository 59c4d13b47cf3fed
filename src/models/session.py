"""
Session models for monitored conditions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class SessionKind(str, Enum):
    """Monitored condition kinds."""
    TARGET_PRESENT = "target_present"
    SUBJECT_ABSENT = "subject_absent"

    @property
    def inverted(self) -> bool:
        """True when the kind qualifies on the absence of its category."""
        return self is SessionKind.SUBJECT_ABSENT


class SessionState(str, Enum):
    """Lifecycle states of a session state machine."""
    IDLE = "idle"
    ACTIVE = "active"
    ALERTED = "alerted"
    CLEAR_PENDING = "clear_pending"


@dataclass
class Session:
    """
    Live state of a single monitored kind.

    Timestamps are Unix seconds; None means the timer is disarmed.

    Attributes:
        kind: Which condition this session tracks.
        started_at: When the open session started (None when idle).
        alert_fired: Whether the alert already fired in the open session.
        last_alert_at: When the last alert for this kind fired.
        clear_candidate_since: When the condition first went false.
        recovery_at: First time the opposite condition was observed.
    """
    kind: SessionKind
    started_at: Optional[float] = None
    alert_fired: bool = False
    last_alert_at: Optional[float] = None
    clear_candidate_since: Optional[float] = None
    recovery_at: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.started_at is not None

    def reset(self) -> None:
        """Close the session. The alert cooldown timestamp is kept."""
        self.started_at = None
        self.alert_fired = False
        self.clear_candidate_since = None
        self.recovery_at = None


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Read-only view of a session for live timer display.

    Attributes:
        kind: Session kind.
        state: Current state machine state.
        elapsed_seconds: Whole seconds since the session started (0 when idle).
        is_alerted: Whether the alert fired in the open session.
        started_at: Session start timestamp, if open.
    """
    kind: SessionKind
    state: SessionState
    elapsed_seconds: int = 0
    is_alerted: bool = False
    started_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "state": self.state.value,
            "elapsed_seconds": self.elapsed_seconds,
            "is_alerted": self.is_alerted,
            "started_at": self.started_at,
        }
