"""Run the viseme sequence model with the TensorFlow Lite interpreter."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

try:  # Lazy guard to provide helpful error when TF missing.
    import tensorflow as tf
except ImportError as exc:  # pragma: no cover - import guard
    raise ImportError(
        "tensorflow is required for lipstream.model.tflite_engine. Install tensorflow>=2.12."
    ) from exc

from lipstream.model.engine import EMPTY, resolve_input_shape
from lipstream.utils.errors import ModelLoadFailure, ModelNotLoaded, TensorShapeMismatch

logger = logging.getLogger(__name__)


class TFLiteEngine:
    """TFLite interpreter whose time dimension follows the context length.

    Models exported with a dynamic time axis (``shape_signature`` of
    ``[1, -1, n_mels]``) are resized on demand; fixed-shape models only accept
    inputs with exactly their element count.
    """

    def __init__(self, model_path: Optional[str | Path] = None, num_threads: int = 1) -> None:
        self.num_threads = num_threads
        self.interpreter = None
        self.input_detail: dict = {}
        self.output_detail: dict = {}
        self._signature: Tuple[int, ...] = ()
        self._shape: Tuple[int, ...] = ()
        if model_path is not None and not self.load_model(model_path):
            raise ModelLoadFailure(f"could not load {model_path}")

    @property
    def is_loaded(self) -> bool:
        return self.interpreter is not None

    def load_model(self, path: str | Path) -> bool:
        try:
            interpreter = tf.lite.Interpreter(model_path=str(path), num_threads=self.num_threads)
            interpreter.allocate_tensors()
        except (OSError, ValueError, RuntimeError) as exc:
            logger.warning("TFLiteEngine: failed to load %s: %s", path, exc)
            return False
        self.interpreter = interpreter
        self._refresh_details()
        self._signature = tuple(int(d) for d in self.input_detail.get("shape_signature", self.input_detail["shape"]))
        logger.info("TFLiteEngine: loaded %s, input signature %s", path, self._signature)
        return True

    def _refresh_details(self) -> None:
        self.input_detail = self.interpreter.get_input_details()[0]
        self.output_detail = self.interpreter.get_output_details()[0]
        self._shape = tuple(int(d) for d in self.input_detail["shape"])

    def _quantize(self, tensor: np.ndarray) -> np.ndarray:
        if self.input_detail["dtype"] == np.float32:
            return tensor.astype(np.float32)
        scale, zero_point = self.input_detail["quantization"]
        return (tensor / scale + zero_point).astype(self.input_detail["dtype"])

    def _dequantize(self, tensor: np.ndarray) -> np.ndarray:
        if self.output_detail["dtype"] == np.float32:
            return tensor.astype(np.float32)
        scale, zero_point = self.output_detail["quantization"]
        return (tensor.astype(np.float32) - zero_point) * scale

    def _ensure_shape(self, shape: Tuple[int, ...]) -> None:
        if shape == self._shape:
            return
        self.interpreter.resize_tensor_input(self.input_detail["index"], list(shape))
        self.interpreter.allocate_tensors()
        self._refresh_details()

    def run_inference(self, flat_input: np.ndarray) -> np.ndarray:
        flat_input = np.asarray(flat_input, dtype=np.float32).ravel()
        try:
            if self.interpreter is None:
                raise ModelNotLoaded("model not loaded")
            shape = resolve_input_shape(self._signature, flat_input.size)
            self._ensure_shape(shape)
            self.interpreter.set_tensor(self.input_detail["index"], self._quantize(flat_input.reshape(shape)))
            self.interpreter.invoke()
            output = self.interpreter.get_tensor(self.output_detail["index"])
        except (ModelNotLoaded, TensorShapeMismatch) as exc:
            logger.warning("TFLiteEngine: %s", exc)
            return EMPTY
        except (ValueError, RuntimeError) as exc:
            logger.warning("TFLiteEngine: inference error: %s", exc)
            return EMPTY
        return self._dequantize(output).ravel()
