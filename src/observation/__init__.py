"""
Frame sources for the polling driver.

Each source implements the FrameSource interface and returns FrameData
objects, so the driver does not care whether frames come from a webcam or
a recorded file.
"""

from .base import FrameSource, SourceConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig, create_source_from_config

__all__ = [
    "FrameSource",
    "SourceConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]
