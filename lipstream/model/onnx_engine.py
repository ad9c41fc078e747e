"""Run the viseme sequence model with onnxruntime."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np

try:
    import onnxruntime as ort
except ImportError:
    ort = None

from lipstream.model.engine import EMPTY, resolve_input_shape
from lipstream.utils.errors import ModelLoadFailure, ModelNotLoaded, TensorShapeMismatch

logger = logging.getLogger(__name__)


class OnnxEngine:
    """Single-threaded CPU session; the first input's dynamic axis takes the frame count."""

    def __init__(self, model_path: Optional[str | Path] = None, intra_op_threads: int = 1) -> None:
        if ort is None:
            raise RuntimeError("onnxruntime is not installed")
        self.intra_op_threads = intra_op_threads
        self.session = None
        if model_path is not None and not self.load_model(model_path):
            raise ModelLoadFailure(f"could not load {model_path}")

    @property
    def is_loaded(self) -> bool:
        return self.session is not None

    def load_model(self, path: str | Path) -> bool:
        options = ort.SessionOptions()
        options.intra_op_num_threads = self.intra_op_threads
        options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_BASIC
        try:
            session = ort.InferenceSession(
                str(path), sess_options=options, providers=["CPUExecutionProvider"]
            )
        # onnxruntime reports bad files through its own pybind exception types.
        except Exception as exc:
            logger.warning("OnnxEngine: failed to load %s: %s", path, exc)
            return False
        self.session = session
        logger.info("OnnxEngine: loaded %s, input shape %s", path, session.get_inputs()[0].shape)
        return True

    def run_inference(self, flat_input: np.ndarray) -> np.ndarray:
        flat_input = np.asarray(flat_input, dtype=np.float32).ravel()
        try:
            if self.session is None:
                raise ModelNotLoaded("model not loaded")
            model_input = self.session.get_inputs()[0]
            shape = resolve_input_shape(model_input.shape, flat_input.size)
        except (ModelNotLoaded, TensorShapeMismatch) as exc:
            logger.warning("OnnxEngine: %s", exc)
            return EMPTY
        output_name = self.session.get_outputs()[0].name
        try:
            output = self.session.run([output_name], {model_input.name: flat_input.reshape(shape)})[0]
        except Exception as exc:
            logger.warning("OnnxEngine: inference error: %s", exc)
            return EMPTY
        return np.asarray(output, dtype=np.float32).ravel()
