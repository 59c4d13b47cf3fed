"""
Inference backends.

- OnnxBackend: cv2.dnn on a YOLO ONNX export, returns the raw tensor
- UltralyticsCpuBackend: optional, returns decoded detections
"""

from .backend import InferenceBackend, InferenceResult, is_raw_output

__all__ = ["InferenceBackend", "InferenceResult", "is_raw_output", "create_backend_from_config"]


def create_backend_from_config(detector_cfg):
    """
    Build the configured backend.

    Args:
        detector_cfg: DetectorConfig.

    Raises:
        ValueError: For an unknown backend name.
    """
    backend = (detector_cfg.backend or "onnx").lower()
    if backend == "onnx":
        from .onnx_backend import OnnxBackend, OnnxConfig
        return OnnxBackend(OnnxConfig(model=detector_cfg.model, input_size=detector_cfg.input_size))
    if backend == "yolo":
        from .cpu_backend import CpuYoloConfig, UltralyticsCpuBackend
        return UltralyticsCpuBackend(
            CpuYoloConfig(
                model=detector_cfg.model,
                confidence_threshold=detector_cfg.confidence_threshold,
                iou_threshold=detector_cfg.iou_threshold,
                input_size=detector_cfg.input_size,
                label_overrides=dict(enumerate(detector_cfg.class_names)) if detector_cfg.class_names else None,
            )
        )
    raise ValueError(f"Unknown detection backend '{detector_cfg.backend}'")
