"""
Inference backend interface.

A backend takes one BGR frame and returns either the raw YOLO output tensor
(decoded by detection.postprocess.BoxDecoder) or detections already decoded
into original-frame pixels. Backends may raise; the driver turns a failure
into a no-detection tick.
"""

from __future__ import annotations

from typing import List, Protocol, Union

import numpy as np

from models.detection import Detection


InferenceResult = Union[np.ndarray, List[Detection]]


class InferenceBackend(Protocol):
    @property
    def name(self) -> str:
        ...

    async def infer(self, frame: np.ndarray) -> InferenceResult:
        ...


def is_raw_output(result: InferenceResult) -> bool:
    """True when the result still needs box decoding."""
    return isinstance(result, np.ndarray)
