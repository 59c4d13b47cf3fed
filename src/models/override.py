"""
OverrideSignal model for externally owned suppression state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class OverrideSignal:
    """
    Snapshot of the absence override, read once per tick.

    Attributes:
        active: Whether absence evaluation is suppressed.
        reason: Human-readable reason (e.g., "meeting").
        expires_at: Unix timestamp when the override lapses, None if open-ended.
    """
    active: bool = False
    reason: Optional[str] = None
    expires_at: Optional[float] = None

    @classmethod
    def inactive(cls) -> "OverrideSignal":
        return cls(active=False)

    def to_meta(self) -> Dict[str, Any]:
        """Event metadata describing this override."""
        return {
            "absence_override": True,
            "reason": self.reason,
            "expires_at": self.expires_at,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active": self.active,
            "reason": self.reason,
            "expires_at": self.expires_at,
        }
