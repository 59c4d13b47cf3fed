"""
Hysteretic session state machine.

One machine per monitored kind. Each tick it receives the kind's qualifying
boolean (target present, or subject absent) and returns the SessionEvents the
tick produced. The machine never emits anywhere itself; the monitor owns the
sink.

States:
    IDLE -> ACTIVE -> (ALERTED) -> CLEAR_PENDING -> IDLE

A session closes only after the condition has been false for the whole
clear-stable window. A single qualifying tick inside that window cancels the
pending close. The END duration runs up to the first tick the opposite
condition was seen, not up to the tick the close was confirmed.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from models.config import SessionConfig
from models.session import Session, SessionKind, SessionSnapshot, SessionState
from models.session_event import SessionEvent, SessionEventType, whole_seconds


class SessionStateMachine:
    """
    Start/alert/clear bookkeeping for one SessionKind.

    Example:
        machine = SessionStateMachine(SessionKind.TARGET_PRESENT, SessionConfig())
        for event in machine.update(qualifying=True, now=time.time()):
            sink.emit(event)
    """

    def __init__(self, kind: SessionKind, config: SessionConfig):
        self.kind = kind
        self.config = config
        self.session = Session(kind=kind)
        self._threshold = float(config.alert_threshold_seconds)
        self._cooldown = config.alert_cooldown_ms / 1000.0
        self._clear_window = config.clear_stable_window_ms / 1000.0

    @property
    def state(self) -> SessionState:
        s = self.session
        if not s.is_open:
            return SessionState.IDLE
        if s.clear_candidate_since is not None:
            return SessionState.CLEAR_PENDING
        if s.alert_fired:
            return SessionState.ALERTED
        return SessionState.ACTIVE

    def update(self, qualifying: bool, now: float) -> List[SessionEvent]:
        """
        Advance the machine by one tick.

        Args:
            qualifying: Whether the kind's condition holds this tick.
            now: Tick timestamp (Unix seconds).

        Returns:
            Events produced by this tick, in order.
        """
        if qualifying:
            return self._on_qualifying(now)
        return self._on_clearing(now)

    def suppress(self, now: float, meta: Optional[Dict[str, Any]] = None) -> Optional[SessionEvent]:
        """
        Force the machine back to IDLE.

        Returns:
            A SUPPRESSED event if a session was open, else None. No END is
            emitted for a suppressed session.
        """
        s = self.session
        if not s.is_open:
            self._close_session()
            return None

        event = SessionEvent(
            kind=self.kind,
            type=SessionEventType.SUPPRESSED,
            occurred_at=now,
            duration_seconds=whole_seconds(s.started_at, now),
            meta=dict(meta or {}),
        )
        logging.info(f"[{self.kind.value}] session suppressed after {event.duration_seconds}s")
        self._close_session()
        return event

    def reset(self) -> None:
        """Drop all live state, including the alert cooldown."""
        self.session = Session(kind=self.kind)

    def snapshot(self, now: float) -> SessionSnapshot:
        # Read once; the API thread can race a closing session.
        s = self.session
        started_at = s.started_at
        elapsed = 0
        if started_at is not None:
            elapsed = max(0, math.floor(now - started_at))
        return SessionSnapshot(
            kind=self.kind,
            state=self.state,
            elapsed_seconds=elapsed,
            is_alerted=s.alert_fired,
            started_at=started_at,
        )

    def _on_qualifying(self, now: float) -> List[SessionEvent]:
        events: List[SessionEvent] = []
        s = self.session

        if not s.is_open:
            s.started_at = now
            events.append(SessionEvent(kind=self.kind, type=SessionEventType.START, occurred_at=now))
            logging.info(f"[{self.kind.value}] session started")

        if s.clear_candidate_since is not None:
            logging.debug(f"[{self.kind.value}] pending clear cancelled")
        s.clear_candidate_since = None
        s.recovery_at = None

        alert = self._maybe_alert(now)
        if alert is not None:
            events.append(alert)

        return events

    def _maybe_alert(self, now: float) -> Optional[SessionEvent]:
        s = self.session
        if not self.config.alert_enabled or s.alert_fired:
            return None

        elapsed = now - s.started_at
        if elapsed < self._threshold:
            return None
        if s.last_alert_at is not None and now - s.last_alert_at < self._cooldown:
            return None

        s.alert_fired = True
        s.last_alert_at = now
        logging.warning(f"[{self.kind.value}] alert: condition held for {elapsed:.1f}s")
        return SessionEvent(
            kind=self.kind,
            type=SessionEventType.ALERT,
            occurred_at=now,
            duration_seconds=math.floor(elapsed),
            meta={"threshold_seconds": self._threshold},
        )

    def _on_clearing(self, now: float) -> List[SessionEvent]:
        s = self.session
        if not s.is_open:
            return []

        if s.clear_candidate_since is None:
            s.clear_candidate_since = now
            s.recovery_at = now

        if now - s.clear_candidate_since < self._clear_window:
            return []

        resolved_at = s.recovery_at if s.recovery_at is not None else now
        event = SessionEvent(
            kind=self.kind,
            type=SessionEventType.END,
            occurred_at=resolved_at,
            duration_seconds=whole_seconds(s.started_at, resolved_at),
            meta={"closed_at": now, "alerted": s.alert_fired},
        )
        logging.info(f"[{self.kind.value}] session ended, duration={event.duration_seconds}s")
        self._close_session()
        return [event]

    def _close_session(self) -> None:
        self.session.reset()
        if self.config.rearm_on_close:
            self.session.last_alert_at = None
