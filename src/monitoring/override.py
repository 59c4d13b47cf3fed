"""
Absence override: sources and the gate in front of the absence machine.

An override is externally owned state ("in a meeting until 15:00"). While it
is active the SUBJECT_ABSENT machine is held at IDLE and never evaluated.
The gate reads one OverrideSignal per tick and turns its edges into events.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from models.override import OverrideSignal
from models.session_event import SessionEvent, SessionEventType

from .session import SessionStateMachine


class OverrideSource(ABC):
    """Anything that can report the override state for a given instant."""

    @abstractmethod
    def snapshot(self, now: float) -> OverrideSignal:
        """Return the override state at `now`."""
        pass


class NullOverrideSource(OverrideSource):
    """Never suppresses anything."""

    def snapshot(self, now: float) -> OverrideSignal:
        return OverrideSignal.inactive()


class ManualOverrideSource(OverrideSource):
    """
    Override set by hand (CLI, API, tests).

    An override with `expires_at` reports inactive once that time has passed.
    Safe to call from the web thread while the driver reads snapshots.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active = False
        self._reason: Optional[str] = None
        self._expires_at: Optional[float] = None

    def activate(self, reason: Optional[str] = None, expires_at: Optional[float] = None) -> None:
        with self._lock:
            self._active = True
            self._reason = reason
            self._expires_at = expires_at
        logging.info(f"Absence override activated (reason={reason!r}, expires_at={expires_at})")

    def extend(self, expires_at: Optional[float]) -> None:
        """Move the expiry of an active override. No-op when inactive."""
        with self._lock:
            if not self._active:
                return
            self._expires_at = expires_at
        logging.info(f"Absence override extended to {expires_at}")

    def clear(self) -> None:
        with self._lock:
            self._active = False
            self._reason = None
            self._expires_at = None
        logging.info("Absence override cleared")

    def snapshot(self, now: float) -> OverrideSignal:
        with self._lock:
            if not self._active:
                return OverrideSignal.inactive()
            if self._expires_at is not None and self._expires_at <= now:
                return OverrideSignal.inactive()
            return OverrideSignal(active=True, reason=self._reason, expires_at=self._expires_at)


def read_override(source: Optional[OverrideSource], now: float) -> OverrideSignal:
    """Read a source once; a missing or failing source counts as inactive."""
    if source is None:
        return OverrideSignal.inactive()
    try:
        return source.snapshot(now)
    except Exception as e:
        logging.warning(f"Override source failed, treating as inactive: {e}")
        return OverrideSignal.inactive()


class OverrideGate:
    """
    Wraps the absence machine and applies the override each tick.

    Event order on the activation tick is SUPPRESSED (if a session was open)
    followed by OVERRIDE_ACTIVE. On the release tick OVERRIDE_INACTIVE is
    emitted and the machine is evaluated normally from IDLE.
    """

    def __init__(self, machine: SessionStateMachine):
        self.machine = machine
        self._current = OverrideSignal.inactive()

    @property
    def override(self) -> OverrideSignal:
        return self._current

    @property
    def is_suppressing(self) -> bool:
        return self._current.active

    def evaluate(self, qualifying: bool, override: OverrideSignal, now: float) -> List[SessionEvent]:
        """
        Run one tick of the absence machine under the given override.

        Args:
            qualifying: Whether the subject is absent this tick.
            override: Override snapshot for this tick.
            now: Tick timestamp.

        Returns:
            Override and session events for this tick, in order.
        """
        previous = self._current
        self._current = override
        events: List[SessionEvent] = []

        if override.active:
            suppressed = self.machine.suppress(now, override.to_meta())
            if suppressed is not None:
                events.append(suppressed)

            if not previous.active:
                events.append(self._event(SessionEventType.OVERRIDE_ACTIVE, override, now))
                logging.info(f"Absence detection suppressed: {override.reason or 'override'}")
            elif override.expires_at != previous.expires_at:
                events.append(self._event(SessionEventType.OVERRIDE_EXTENDED, override, now))
            return events

        if previous.active:
            events.append(self._event(SessionEventType.OVERRIDE_INACTIVE, previous, now))
            logging.info("Absence override released, resuming absence detection")

        events.extend(self.machine.update(qualifying, now))
        return events

    def reset(self) -> None:
        self._current = OverrideSignal.inactive()
        self.machine.reset()

    def _event(self, event_type: SessionEventType, override: OverrideSignal, now: float) -> SessionEvent:
        return SessionEvent(
            kind=self.machine.kind,
            type=event_type,
            occurred_at=now,
            meta=override.to_meta(),
        )
