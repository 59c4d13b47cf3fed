"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates, top-left form.

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Box width in pixels.
        height: Box height in pixels.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x, self.y, self.x2, self.y2)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x, y, width, height) tuple."""
        return (int(self.x), int(self.y), int(self.width), int(self.height))

    @classmethod
    def from_tuple(cls, t: Tuple[float, float, float, float]) -> "BoundingBox":
        """Create from (x, y, width, height) tuple."""
        return cls(x=t[0], y=t[1], width=t[2], height=t[3])

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create from corner coordinates."""
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    @classmethod
    def from_center(cls, cx: float, cy: float, w: float, h: float) -> "BoundingBox":
        """
        Create from center form, clamping the top-left corner to the frame.

        Width and height are kept as-is, so a box hanging off the left or top
        edge keeps its full size.
        """
        return cls(x=max(0.0, cx - w / 2), y=max(0.0, cy - h / 2), width=w, height=h)


@dataclass(frozen=True)
class Detection:
    """
    A single detection from an object detector.

    Attributes:
        category: Class label (e.g., "person", "cell phone").
        confidence: Detection confidence score (0-1).
        bbox: Bounding box in pixel coordinates of the original frame.
        class_id: Optional class index from the detector.
    """
    category: str
    confidence: float
    bbox: BoundingBox
    class_id: Optional[int] = None

    @classmethod
    def from_xywh(
        cls,
        category: str,
        confidence: float,
        x: float,
        y: float,
        w: float,
        h: float,
        class_id: Optional[int] = None,
    ) -> "Detection":
        """Create Detection from top-left x, y, width, height."""
        return cls(
            category=category,
            confidence=confidence,
            bbox=BoundingBox(x=x, y=y, width=w, height=h),
            class_id=class_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "category": self.category,
            "confidence": self.confidence,
            "bbox": list(self.bbox.as_tuple()),
            "class_id": self.class_id,
        }


def filter_categories(detections: List[Detection], categories: Optional[List[str]]) -> List[Detection]:
    """
    Keep only detections whose category is in `categories`.

    None means no filtering.
    """
    if categories is None:
        return list(detections)
    allowed = set(categories)
    return [d for d in detections if d.category in allowed]
