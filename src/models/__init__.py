"""
Typed models for the desk monitor application.

Use the from_dict/to_dict adapters to convert from YAML-loaded dicts.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox, filter_categories
from .override import OverrideSignal
from .session import Session, SessionKind, SessionSnapshot, SessionState
from .session_event import SessionEvent, SessionEventType, whole_seconds
from .config import (
    Config,
    CameraConfig,
    CategoryConfig,
    DetectorConfig,
    DriverConfig,
    MonitorConfig,
    SessionConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    "filter_categories",
    # Sessions
    "OverrideSignal",
    "Session",
    "SessionKind",
    "SessionSnapshot",
    "SessionState",
    "SessionEvent",
    "SessionEventType",
    "whole_seconds",
    # Config
    "Config",
    "CameraConfig",
    "CategoryConfig",
    "DetectorConfig",
    "DriverConfig",
    "MonitorConfig",
    "SessionConfig",
    "WebConfig",
]
