"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.detection import Detection  # noqa: E402


def make_detection(category="person", confidence=0.9, x=0, y=0, w=10, h=10):
    """Build a Detection with an (x, y, w, h) box."""
    return Detection.from_xywh(category, confidence, x, y, w, h)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  backend: "onnx"
  model: "models/yolo11n.onnx"
  input_size: 640
  confidence_threshold: 0.25
  iou_threshold: 0.45

monitor:
  target_category: "cell phone"
  subject_category: "person"
  sessions:
    subject_absent:
      alert_threshold_seconds: 30
      alert_cooldown_ms: 300000

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "backend": "onnx",
            "model": "models/yolo11n.onnx",
            "input_size": 640,
            "confidence_threshold": 0.25,
            "iou_threshold": 0.45,
            "enabled_categories": ["person", "cell phone"],
        },
        "monitor": {
            "categories": {
                "person": {"confidence_threshold": 0.5, "interpolation_window_ms": 500},
                "cell phone": {"confidence_threshold": 0.5, "interpolation_window_ms": 2000},
            },
            "sessions": {
                "target_present": {"alert_threshold_seconds": 10, "alert_cooldown_ms": 120000},
                "subject_absent": {"alert_threshold_seconds": 30, "alert_cooldown_ms": 300000},
            },
        },
        "driver": {"tick_interval_ms": 500},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
