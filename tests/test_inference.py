"""
Tests for inference backends and the backend factory.
"""

import asyncio
import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from inference import create_backend_from_config, is_raw_output
from inference.onnx_backend import OnnxBackend, OnnxConfig
from models.config import DetectorConfig
from models.detection import Detection


class TestIsRawOutput:
    def test_ndarray_is_raw(self):
        assert is_raw_output(np.zeros((1, 84, 10))) is True

    def test_detection_list_is_not_raw(self):
        assert is_raw_output([]) is False


class TestOnnxBackend:
    def test_missing_model_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            OnnxBackend(OnnxConfig(model=str(tmp_path / "missing.onnx")))

    def test_infer_returns_forward_output(self, tmp_path):
        model = tmp_path / "yolo.onnx"
        model.write_bytes(b"onnx")
        net = MagicMock()
        output = np.zeros((1, 84, 8400), dtype=np.float32)
        net.forward.return_value = output

        with patch("inference.onnx_backend.cv2.dnn.readNetFromONNX", return_value=net), \
                patch("inference.onnx_backend.cv2.dnn.blobFromImage", return_value="blob") as blob:
            backend = OnnxBackend(OnnxConfig(model=str(model), input_size=320))
            result = asyncio.run(backend.infer(np.zeros((480, 640, 3), dtype=np.uint8)))

        assert result is output
        net.setInput.assert_called_once_with("blob")
        assert blob.call_args.kwargs["size"] == (320, 320)
        assert blob.call_args.kwargs["swapRB"] is True
        assert backend.name == "onnx"


class TestUltralyticsBackend:
    def test_converts_boxes_to_detections(self):
        boxes = MagicMock()
        boxes.xyxy = np.array([[10.0, 20.0, 50.0, 80.0], [0.0, 0.0, 5.0, 5.0]])
        boxes.conf = np.array([0.6, 0.9])
        boxes.cls = np.array([67.0, 0.0])
        result = MagicMock(boxes=boxes, names={0: "person", 67: "cell phone"})
        model = MagicMock()
        model.predict.return_value = [result]
        ultralytics = MagicMock()
        ultralytics.YOLO.return_value = model

        with patch.dict(sys.modules, {"ultralytics": ultralytics}):
            from inference.cpu_backend import CpuYoloConfig, UltralyticsCpuBackend
            backend = UltralyticsCpuBackend(CpuYoloConfig(model="yolo11n.pt"))
            dets = asyncio.run(backend.infer(np.zeros((4, 4, 3), dtype=np.uint8)))

        assert [d.category for d in dets] == ["person", "cell phone"]
        phone = dets[1]
        assert isinstance(phone, Detection)
        assert phone.class_id == 67
        assert phone.bbox.as_tuple() == (10.0, 20.0, 40.0, 60.0)


class TestCreateBackend:
    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_backend_from_config(DetectorConfig(backend="hailo"))

    def test_onnx_backend_selected(self, tmp_path):
        model = tmp_path / "yolo.onnx"
        model.write_bytes(b"onnx")
        with patch("inference.onnx_backend.cv2.dnn.readNetFromONNX", return_value=MagicMock()):
            backend = create_backend_from_config(DetectorConfig(backend="onnx", model=str(model)))

        assert isinstance(backend, OnnxBackend)

    def test_yolo_backend_uses_class_names(self):
        ultralytics = MagicMock()
        with patch.dict(sys.modules, {"ultralytics": ultralytics}):
            backend = create_backend_from_config(
                DetectorConfig(backend="yolo", model="desk.pt", class_names=["human", "phone"])
            )

        assert backend.name == "yolo"
        assert backend.config.label_overrides == {0: "human", 1: "phone"}
        assert backend._category(1, {1: "cell phone"}) == "phone"
        assert backend._category(5, {5: "cup"}) == "cup"
