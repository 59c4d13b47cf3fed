"""
FrameData model for frames handed to the inference backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass
class FrameData:
    """
    A captured frame plus the metadata the decoder needs.

    Attributes:
        image: Raw frame as a numpy array (BGR format).
        width: Frame width in pixels.
        height: Frame height in pixels.
        captured_at: Unix timestamp when the frame was read.
        index: Sequential frame number since the source was opened.
        source: Identifier for the frame source.
    """
    image: np.ndarray
    width: int
    height: int
    captured_at: float
    index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        image: np.ndarray,
        captured_at: float,
        index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array, reading size from its shape."""
        h, w = image.shape[:2]
        return cls(image=image, width=w, height=h, captured_at=captured_at, index=index, source=source)

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
