"""
Detection post-processing: raw model output -> clean detection list.
"""

from .labels import COCO_CLASS_NAMES, resolve_class_names
from .postprocess import (
    BoxDecoder,
    DecoderConfig,
    MalformedOutputError,
    calculate_iou,
    non_max_suppression,
)

__all__ = [
    "BoxDecoder",
    "DecoderConfig",
    "MalformedOutputError",
    "calculate_iou",
    "non_max_suppression",
    "COCO_CLASS_NAMES",
    "resolve_class_names",
]
