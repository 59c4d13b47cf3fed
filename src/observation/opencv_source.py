"""
OpenCV-based frame source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- Video files (device_id as file path), handy for replaying a desk recording
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.frame import FrameData
from .base import FrameSource, SourceConfig


@dataclass
class OpenCVSourceConfig(SourceConfig):
    """
    Configuration for OpenCV capture.

    Attributes:
        device_id: Camera index (int) or video file path (str).
        buffer_size: Capture buffer size; 1 keeps live frames fresh.
        max_read_failures: Consecutive failed reads before reopening the device.
        flip_horizontal: Mirror the image (front-facing desk cameras).
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_read_failures: int = 3
    flip_horizontal: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "desk-cam") -> "OpenCVSourceConfig":
        """Adapter: build from the `camera` config section (dict or CameraConfig)."""
        if not isinstance(camera_cfg, dict):
            camera_cfg = camera_cfg.to_dict()
        resolution = camera_cfg.get("resolution")
        return cls(
            source_id=source_id,
            resolution=tuple(resolution) if resolution else None,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", 0),
            buffer_size=camera_cfg.get("buffer_size", 1),
            max_read_failures=camera_cfg.get("max_read_failures", 3),
            flip_horizontal=camera_cfg.get("flip_horizontal", False),
        )


class OpenCVSource(FrameSource):
    """
    Wraps cv2.VideoCapture and returns FrameData.

    A read failure returns None. After `max_read_failures` consecutive
    failures on a camera the device is reopened once per failing read.
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._cv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._consecutive_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._cv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return
        self._cap = self._create_capture()
        self._is_open = True
        self._frame_index = 0
        self._consecutive_failures = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, device={self.device_id}, "
            f"resolution={self._cv_config.resolution}"
        )

    def _create_capture(self) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(self.device_id)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"Failed to open device {self.device_id}")

        if isinstance(self.device_id, int):
            if self._cv_config.resolution:
                w, h = self._cv_config.resolution
                cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
                cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if self._cv_config.fps:
                cap.set(cv2.CAP_PROP_FPS, self._cv_config.fps)
            cap.set(cv2.CAP_PROP_BUFFERSIZE, self._cv_config.buffer_size)
            logging.info(
                f"Camera actual settings - Resolution: "
                f"({cap.get(cv2.CAP_PROP_FRAME_WIDTH)}x{cap.get(cv2.CAP_PROP_FRAME_HEIGHT)}), "
                f"FPS: {cap.get(cv2.CAP_PROP_FPS)}"
            )
        return cap

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            self._on_read_failure()
            return None

        self._consecutive_failures = 0
        frame = self._apply_transforms(frame)
        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            captured_at=time.time(),
            index=self._frame_index,
            source=self.source_id,
        )

    def _on_read_failure(self) -> None:
        self._consecutive_failures += 1
        if self.is_file:
            logging.info("End of video file reached")
            return
        logging.warning(f"Failed to read frame (failures: {self._consecutive_failures})")
        if self._consecutive_failures < self._cv_config.max_read_failures:
            return
        try:
            self._cap.release()
            self._cap = self._create_capture()
            logging.info("Camera reopened after repeated read failures")
        except RuntimeError as e:
            logging.error(f"Camera reopen failed: {e}")

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        if self._cv_config.flip_horizontal:
            frame = cv2.flip(frame, 1)
        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")


def create_source_from_config(camera_cfg, source_id: str = "desk-cam") -> FrameSource:
    """Factory: build the frame source from the `camera` config section."""
    return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg, source_id=source_id))
