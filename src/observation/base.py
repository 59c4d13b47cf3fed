"""
FrameSource interface for the camera feeding the monitor.

The driver reads one frame per tick. A source returns None when no frame is
available; the driver counts that and skips the tick.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from models.frame import FrameData


@dataclass
class SourceConfig:
    """Common source settings; None leaves the device default in place."""
    source_id: str = "desk-cam"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class FrameSource(ABC):
    """
    Camera-like source polled once per driver tick.

    open() before the first read(), close() when the driver shuts down; the
    context-manager form does both:

        with OpenCVSource(config) as camera:
            frame = camera.read()
    """

    def __init__(self, config: SourceConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open the source. Must be called before read().

        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Return the next frame, or None if none is available."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the source. Safe to call multiple times."""
        pass

    def __enter__(self) -> "FrameSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
