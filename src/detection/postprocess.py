"""
YOLO output decoding and Non-Maximum Suppression.

The model emits a transposed tensor of shape (num_features, num_boxes), where
each column is one anchor: 4 box features (cx, cy, w, h) in model-input pixels
followed by num_classes class scores. An optional leading batch axis of size 1
is accepted.

Decoding is a pure function of the tensor, the original frame size and the
configured thresholds. NMS is class-aware: boxes of different categories never
suppress each other (a phone held by a person overlaps the person box).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from models.detection import BoundingBox, Detection


class MalformedOutputError(ValueError):
    """Raised when a model output does not match the expected tensor layout."""


def calculate_iou(box1: BoundingBox, box2: BoundingBox) -> float:
    """
    Calculate Intersection over Union (IoU) between two top-left boxes.

    Args:
        box1: First bounding box.
        box2: Second bounding box.

    Returns:
        IoU value between 0 and 1 (0 when the union is empty).
    """
    inter_w = max(0.0, min(box1.x2, box2.x2) - max(box1.x, box2.x))
    inter_h = max(0.0, min(box1.y2, box2.y2) - max(box1.y, box2.y))
    intersection = inter_w * inter_h

    union = box1.area + box2.area - intersection
    if union <= 0:
        return 0.0

    return intersection / union


def non_max_suppression(detections: Sequence[Detection], iou_threshold: float) -> List[Detection]:
    """
    Class-aware greedy NMS.

    Repeatedly keeps the highest-confidence remaining detection and drops every
    remaining detection of the same category whose IoU with it is at least
    `iou_threshold`.

    Returns:
        Retained detections ordered by confidence, highest first.
    """
    # sorted() is stable, so equal confidences keep their input order
    remaining = sorted(detections, key=lambda d: d.confidence, reverse=True)
    keep: List[Detection] = []

    while remaining:
        current = remaining.pop(0)
        keep.append(current)
        remaining = [
            det for det in remaining
            if det.category != current.category
            or calculate_iou(current.bbox, det.bbox) < iou_threshold
        ]

    return keep


InputSize = Union[int, Tuple[int, int]]


@dataclass(frozen=True)
class DecoderConfig:
    """
    Decoder settings.

    Attributes:
        input_size: Model input size as an int (square) or (width, height).
        confidence_threshold: Minimum best-class score to keep an anchor.
        iou_threshold: Same-category overlap at which NMS drops a box.
        class_names: Index -> label list. None means labels are str(index).
    """
    input_size: InputSize = 640
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.45
    class_names: Optional[Sequence[str]] = None


class BoxDecoder:
    """Turns a raw YOLO output tensor into a clean detection list."""

    def __init__(self, config: DecoderConfig):
        self.config = config
        self._input_w, self._input_h = _input_dims(config.input_size)
        if self._input_w <= 0 or self._input_h <= 0:
            raise ValueError(f"input_size must be positive, got {config.input_size!r}")

    @property
    def input_size(self) -> Tuple[int, int]:
        return (self._input_w, self._input_h)

    def decode(self, output: np.ndarray, original_width: int, original_height: int) -> List[Detection]:
        """
        Decode a raw output tensor into detections in original-frame pixels.

        Args:
            output: Array of shape (F, N) or (1, F, N), F = 4 + num_classes.
            original_width: Width of the frame the model saw, before resizing.
            original_height: Height of that frame.

        Returns:
            Confidence-ordered detections after NMS. May be empty.

        Raises:
            MalformedOutputError: If the tensor or frame size is malformed.
        """
        data = self._validate(output, original_width, original_height)
        candidates = self._candidates(data, original_width, original_height)
        return non_max_suppression(candidates, self.config.iou_threshold)

    def _validate(self, output: np.ndarray, original_width: int, original_height: int) -> np.ndarray:
        if original_width is None or original_height is None or original_width <= 0 or original_height <= 0:
            raise MalformedOutputError(
                f"original frame size must be positive, got {original_width}x{original_height}"
            )

        try:
            data = np.asarray(output, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise MalformedOutputError(f"output is not numeric: {e}") from e

        if data.ndim == 3:
            if data.shape[0] != 1:
                raise MalformedOutputError(f"expected batch size 1, got shape {data.shape}")
            data = data[0]
        if data.ndim != 2:
            raise MalformedOutputError(f"expected (features, boxes) output, got shape {data.shape}")

        num_features = data.shape[0]
        if num_features < 5:
            raise MalformedOutputError(
                f"expected at least 5 features (4 box + classes), got {num_features}"
            )

        class_names = self.config.class_names
        if class_names is not None and num_features - 4 != len(class_names):
            raise MalformedOutputError(
                f"output has {num_features - 4} class scores but {len(class_names)} class names are configured"
            )

        return data

    def _candidates(self, data: np.ndarray, original_width: int, original_height: int) -> List[Detection]:
        num_boxes = data.shape[1]
        if num_boxes == 0:
            return []

        scale_x = original_width / self._input_w
        scale_y = original_height / self._input_h

        scores = data[4:]
        class_ids = np.argmax(scores, axis=0)
        confidences = scores[class_ids, np.arange(num_boxes)]

        mask = confidences >= self.config.confidence_threshold
        if not np.any(mask):
            return []

        cx = data[0, mask] * scale_x
        cy = data[1, mask] * scale_y
        w = data[2, mask] * scale_x
        h = data[3, mask] * scale_y

        out: List[Detection] = []
        for x_c, y_c, bw, bh, cls, conf in zip(cx, cy, w, h, class_ids[mask], confidences[mask]):
            class_id = int(cls)
            out.append(
                Detection(
                    category=self._label(class_id),
                    confidence=float(conf),
                    bbox=BoundingBox.from_center(float(x_c), float(y_c), float(bw), float(bh)),
                    class_id=class_id,
                )
            )
        return out

    def _label(self, class_id: int) -> str:
        names = self.config.class_names
        if names is None:
            return str(class_id)
        return names[class_id]


def _input_dims(input_size: InputSize) -> Tuple[int, int]:
    if isinstance(input_size, int):
        return input_size, input_size
    w, h = input_size
    return int(w), int(h)
