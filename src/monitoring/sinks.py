"""
Event sinks.

The monitor hands every SessionEvent to exactly one sink. Sinks are
fire-and-forget; the monitor logs and swallows their failures so a broken
notifier never stalls a tick.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional

from models.session_event import SessionEvent, SessionEventType


class EventSink(ABC):
    """Receives session events."""

    @abstractmethod
    def emit(self, event: SessionEvent) -> None:
        pass


class NullEventSink(EventSink):
    def emit(self, event: SessionEvent) -> None:
        pass


class LoggingEventSink(EventSink):
    """Writes events to the log. Alerts go out at WARNING."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("desk_monitor.events")

    def emit(self, event: SessionEvent) -> None:
        level = logging.WARNING if event.type == SessionEventType.ALERT else logging.INFO
        duration = f" duration={event.duration_seconds}s" if event.duration_seconds is not None else ""
        self._logger.log(level, f"[EVENT] {event.name}{duration} meta={event.meta}")


class CallbackEventSink(EventSink):
    """Adapts a plain callable."""

    def __init__(self, callback: Callable[[SessionEvent], None]):
        self._callback = callback

    def emit(self, event: SessionEvent) -> None:
        self._callback(event)


class MemoryEventSink(EventSink):
    """
    Keeps the most recent events in memory.

    Backs the status API's recent-event list and is handy in tests.
    """

    def __init__(self, maxlen: Optional[int] = 100):
        self._events: Deque[SessionEvent] = deque(maxlen=maxlen)

    def emit(self, event: SessionEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> List[SessionEvent]:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()


class FanoutEventSink(EventSink):
    """
    Forwards each event to several sinks.

    One failing child does not keep the event from reaching the others.
    """

    def __init__(self, sinks: Iterable[EventSink]):
        self._sinks = list(sinks)

    def add(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def emit(self, event: SessionEvent) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception as e:
                logging.warning(f"Event sink {type(sink).__name__} failed for {event.name}: {e}")
