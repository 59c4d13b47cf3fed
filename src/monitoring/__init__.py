"""
Monitoring module for desk presence sessions.

Turns per-tick detections into debounced presence and session events:
- PresenceTracker: frame-interpolated presence per category
- SessionStateMachine: hysteretic start/alert/clear per kind
- OverrideGate: holds the absence machine idle while an override is active
- SessionMonitor: wires the above together behind one process() call
"""

from .monitor import SessionMonitor, create_monitor_from_config
from .override import (
    ManualOverrideSource,
    NullOverrideSource,
    OverrideGate,
    OverrideSource,
    read_override,
)
from .presence import PresenceSignal, PresenceTracker
from .session import SessionStateMachine
from .sinks import (
    CallbackEventSink,
    EventSink,
    FanoutEventSink,
    LoggingEventSink,
    MemoryEventSink,
    NullEventSink,
)

__all__ = [
    "SessionMonitor",
    "create_monitor_from_config",
    "ManualOverrideSource",
    "NullOverrideSource",
    "OverrideGate",
    "OverrideSource",
    "read_override",
    "PresenceSignal",
    "PresenceTracker",
    "SessionStateMachine",
    "CallbackEventSink",
    "EventSink",
    "FanoutEventSink",
    "LoggingEventSink",
    "MemoryEventSink",
    "NullEventSink",
]
