"""
Ultralytics backend (optional, `yolo` extra).

Ultralytics decodes and suppresses on its own, so infer() hands back finished
Detection lists and the driver skips the box decoder for this backend.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from models.detection import BoundingBox, Detection


@dataclass(frozen=True)
class CpuYoloConfig:
    model: str
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.45
    input_size: int = 640
    # class_id -> category, wins over the names baked into the weights
    label_overrides: Optional[Dict[int, str]] = None


def _as_array(value) -> np.ndarray:
    # torch tensors live on the model device until copied back
    if hasattr(value, "cpu"):
        value = value.cpu().numpy()
    return np.asarray(value)


class UltralyticsCpuBackend:
    """YOLO weights run through ultralytics on the CPU."""

    def __init__(self, config: CpuYoloConfig):
        self.config = config
        try:
            from ultralytics import YOLO  # type: ignore
        except ImportError as e:
            raise ImportError(
                "detection.backend 'yolo' needs ultralytics: pip install 'desk-monitor[yolo]', "
                "or use the 'onnx' backend"
            ) from e

        self._model = YOLO(config.model)
        logging.info(f"Loaded ultralytics model {config.model} (imgsz={config.input_size})")

    @property
    def name(self) -> str:
        return "yolo"

    def _category(self, class_id: int, names: Dict[int, str]) -> str:
        overrides = self.config.label_overrides or {}
        return overrides.get(class_id) or names.get(class_id) or str(class_id)

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """Run one blocking prediction, most confident detection first."""
        results = self._model.predict(
            source=frame,
            conf=self.config.confidence_threshold,
            iou=self.config.iou_threshold,
            imgsz=self.config.input_size,
            verbose=False,
        )
        if not results or getattr(results[0], "boxes", None) is None:
            return []

        result = results[0]
        names = getattr(result, "names", None) or {}
        corners = _as_array(result.boxes.xyxy)
        scores = _as_array(result.boxes.conf)
        class_ids = _as_array(result.boxes.cls).astype(int)

        detections = [
            Detection(
                category=self._category(int(class_id), names),
                confidence=float(score),
                bbox=BoundingBox.from_xyxy(*(float(v) for v in box)),
                class_id=int(class_id),
            )
            for box, score, class_id in zip(corners, scores, class_ids)
        ]
        detections.sort(key=lambda d: d.confidence, reverse=True)
        return detections

    async def infer(self, frame: np.ndarray) -> List[Detection]:
        return await asyncio.to_thread(self.detect, frame)
