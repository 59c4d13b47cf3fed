"""
ONNX inference backend on OpenCV's DNN module.

Runs a YOLO ONNX export and returns the raw output tensor, typically shaped
(1, 4 + num_classes, num_boxes). The frame is resized straight to the model
input size (no letterbox), which is what the decoder's scale factors assume.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Tuple, Union

import cv2
import numpy as np


@dataclass(frozen=True)
class OnnxConfig:
    model: str
    input_size: Union[int, Tuple[int, int]] = 640


class OnnxBackend:
    """
    cv2.dnn backend. forward() blocks, so infer() runs it in a worker thread.

    The network object is not shared across threads; the driver's in-flight
    guard ensures at most one forward pass runs at a time.
    """

    def __init__(self, cfg: OnnxConfig):
        self.cfg = cfg
        if not os.path.exists(cfg.model):
            raise FileNotFoundError(f"ONNX model not found: {cfg.model}")

        self._net = cv2.dnn.readNetFromONNX(cfg.model)
        if isinstance(cfg.input_size, int):
            self._input_wh = (cfg.input_size, cfg.input_size)
        else:
            self._input_wh = (int(cfg.input_size[0]), int(cfg.input_size[1]))
        logging.info(f"ONNX model loaded: {cfg.model} (input {self._input_wh[0]}x{self._input_wh[1]})")

    @property
    def name(self) -> str:
        return "onnx"

    def forward(self, frame: np.ndarray) -> np.ndarray:
        blob = cv2.dnn.blobFromImage(
            frame,
            scalefactor=1.0 / 255.0,
            size=self._input_wh,
            swapRB=True,
            crop=False,
        )
        self._net.setInput(blob)
        return self._net.forward()

    async def infer(self, frame: np.ndarray) -> np.ndarray:
        return await asyncio.to_thread(self.forward, frame)
