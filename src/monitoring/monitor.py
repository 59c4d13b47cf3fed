"""
SessionMonitor - one tick of detections in, session events out.

Owns the presence tracker, the TARGET_PRESENT machine and the override-gated
SUBJECT_ABSENT machine. Synchronous and single-threaded: the driver calls
process() once per tick and nothing else mutates monitor state.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Optional, Sequence

from models.config import MonitorConfig
from models.detection import Detection, filter_categories
from models.override import OverrideSignal
from models.session import SessionKind, SessionSnapshot
from models.session_event import SessionEvent

from .override import OverrideGate
from .presence import PresenceTracker
from .session import SessionStateMachine
from .sinks import EventSink, NullEventSink


class SessionMonitor:
    """
    Presence and session bookkeeping for a desk.

    Example:
        monitor = SessionMonitor(MonitorConfig(), sink=LoggingEventSink())
        events = monitor.process(detections, now=time.time())
    """

    def __init__(
        self,
        config: MonitorConfig,
        sink: Optional[EventSink] = None,
        enabled_categories: Optional[Iterable[str]] = None,
    ):
        self.config = config
        self.sink = sink or NullEventSink()
        self.enabled_categories = set(enabled_categories) if enabled_categories is not None else None

        categories = dict(config.categories)
        for name in (config.target_category, config.subject_category):
            if name not in categories:
                raise ValueError(f"No presence settings for monitored category '{name}'")

        self.presence = PresenceTracker(categories)
        self.target_machine = SessionStateMachine(SessionKind.TARGET_PRESENT, config.target_present)
        self.absence_gate = OverrideGate(
            SessionStateMachine(SessionKind.SUBJECT_ABSENT, config.subject_absent)
        )

        self._last_detections: List[Detection] = []
        self._last_detection_at: Optional[float] = None

    @property
    def absence_machine(self) -> SessionStateMachine:
        return self.absence_gate.machine

    def process(
        self,
        detections: Sequence[Detection],
        now: Optional[float] = None,
        override: Optional[OverrideSignal] = None,
    ) -> List[SessionEvent]:
        """
        Fold one tick of detections into presence and session state.

        Args:
            detections: Decoded detections for this tick (may be empty).
            now: Tick timestamp; defaults to time.time().
            override: Absence override snapshot for this tick.

        Returns:
            Events produced by this tick, in emission order.
        """
        if now is None:
            now = time.time()
        if override is None:
            override = OverrideSignal.inactive()

        retained = filter_categories(detections, self.enabled_categories)
        self._last_detections = retained
        self._last_detection_at = now

        self.presence.update(retained, now)
        target_present = self.presence.is_present(self.config.target_category, now)
        subject_present = self.presence.is_present(self.config.subject_category, now)

        events: List[SessionEvent] = []
        events.extend(self.target_machine.update(target_present, now))
        events.extend(self.absence_gate.evaluate(not subject_present, override, now))

        for event in events:
            self._emit(event)

        return events

    def get_last_detections(self) -> List[Detection]:
        return list(self._last_detections)

    def get_last_detection_timestamp(self) -> Optional[float]:
        return self._last_detection_at

    def get_fresh_detections(self, now: Optional[float] = None) -> List[Detection]:
        """Last detections, or [] once they are older than detection_stale_ms."""
        if self._last_detection_at is None:
            return []
        if now is None:
            now = time.time()
        if (now - self._last_detection_at) * 1000.0 > self.config.detection_stale_ms:
            return []
        return list(self._last_detections)

    def get_session_snapshot(self, kind: SessionKind, now: Optional[float] = None) -> SessionSnapshot:
        if now is None:
            now = time.time()
        return self._machine(kind).snapshot(now)

    def get_session_snapshots(self, now: Optional[float] = None) -> Dict[SessionKind, SessionSnapshot]:
        if now is None:
            now = time.time()
        return {kind: self._machine(kind).snapshot(now) for kind in SessionKind}

    def get_presence(self, now: Optional[float] = None) -> Dict[str, bool]:
        if now is None:
            now = time.time()
        return self.presence.snapshot(now)

    def get_override(self) -> OverrideSignal:
        """Override seen on the most recent tick."""
        return self.absence_gate.override

    def reset(self) -> None:
        """Clear all live state, including alert cooldowns."""
        self.presence.reset()
        self.target_machine.reset()
        self.absence_gate.reset()
        self._last_detections = []
        self._last_detection_at = None
        logging.info("Session monitor reset")

    def _machine(self, kind: SessionKind) -> SessionStateMachine:
        if kind == SessionKind.TARGET_PRESENT:
            return self.target_machine
        return self.absence_machine

    def _emit(self, event: SessionEvent) -> None:
        try:
            self.sink.emit(event)
        except Exception as e:
            logging.warning(f"Event sink failed for {event.name}: {e}")


def create_monitor_from_config(
    config: MonitorConfig,
    sink: Optional[EventSink] = None,
    enabled_categories: Optional[Iterable[str]] = None,
) -> SessionMonitor:
    """Factory mirroring the other create_*_from_config helpers."""
    monitor = SessionMonitor(config, sink=sink, enabled_categories=enabled_categories)
    logging.info(
        f"Session monitor ready: target='{config.target_category}', "
        f"subject='{config.subject_category}'"
    )
    return monitor
