"""Inference engine boundary used by the lip-sync scheduler."""
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np

from lipstream.utils.errors import ModelNotLoaded, TensorShapeMismatch

logger = logging.getLogger(__name__)

EMPTY = np.zeros(0, dtype=np.float32)


@runtime_checkable
class InferenceEngine(Protocol):
    """Anything that can load a sequence model and run it on a flat tensor.

    ``run_inference`` receives ``frames * n_mels`` float32 values in
    chronological order and returns the model's flattened output, or an empty
    array when nothing could be computed.
    """

    @property
    def is_loaded(self) -> bool: ...

    def load_model(self, path: str) -> bool: ...

    def run_inference(self, flat_input: np.ndarray) -> np.ndarray: ...


def _is_dynamic(dim) -> bool:
    return dim is None or isinstance(dim, str) or int(dim) < 0


def resolve_input_shape(shape: Sequence, count: int) -> Tuple[int, ...]:
    """Fill the model's unknown input dimensions from the element count.

    The first unknown dimension absorbs ``count`` divided by the product of
    the known ones; any further unknown dimensions become 1. Raises
    ``TensorShapeMismatch`` when the count does not fit.
    """
    known = 1
    dynamic_index = -1
    resolved = []
    for i, dim in enumerate(shape):
        if _is_dynamic(dim):
            if dynamic_index == -1:
                dynamic_index = i
                resolved.append(-1)
            else:
                resolved.append(1)
        else:
            known *= int(dim)
            resolved.append(int(dim))

    if dynamic_index == -1:
        if count != known:
            raise TensorShapeMismatch(f"input size mismatch: expected {known}, got {count}")
        return tuple(resolved)
    if known == 0 or count % known:
        raise TensorShapeMismatch(
            f"input size {count} not divisible by known dimensions size {known}"
        )
    resolved[dynamic_index] = count // known
    return tuple(resolved)


class CallableEngine:
    """Adapts a plain ``array -> array`` callable to the engine interface.

    ``input_shape`` follows runtime conventions, e.g. ``(1, None, 80)``; the
    callable receives the reshaped tensor. ``loader`` maps a model path to a
    callable and defaults to "no loading": the engine is ready once it has a
    function.
    """

    def __init__(
        self,
        fn: Optional[Callable[[np.ndarray], np.ndarray]] = None,
        input_shape: Sequence = (1, None, 80),
        loader: Optional[Callable[[str], Callable[[np.ndarray], np.ndarray]]] = None,
    ) -> None:
        self.fn = fn
        self.input_shape = tuple(input_shape)
        self.loader = loader

    @property
    def is_loaded(self) -> bool:
        return self.fn is not None

    def load_model(self, path: str) -> bool:
        if self.loader is None:
            logger.warning("CallableEngine: no loader configured, cannot load %s", path)
            return False
        try:
            self.fn = self.loader(path)
        except (OSError, ValueError, RuntimeError) as exc:
            logger.warning("CallableEngine: failed to load %s: %s", path, exc)
            return False
        return True

    def run_inference(self, flat_input: np.ndarray) -> np.ndarray:
        flat_input = np.asarray(flat_input, dtype=np.float32).ravel()
        try:
            if self.fn is None:
                raise ModelNotLoaded("model not loaded")
            shape = resolve_input_shape(self.input_shape, flat_input.size)
        except (ModelNotLoaded, TensorShapeMismatch) as exc:
            logger.warning("CallableEngine: %s", exc)
            return EMPTY
        try:
            output = self.fn(flat_input.reshape(shape))
        except (ValueError, RuntimeError, TypeError) as exc:
            logger.warning("CallableEngine: inference error: %s", exc)
            return EMPTY
        return np.asarray(output, dtype=np.float32).ravel()


def engine_for_path(path: str) -> InferenceEngine:
    """Pick an unloaded engine from the model file extension."""
    if str(path).endswith(".onnx"):
        from lipstream.model.onnx_engine import OnnxEngine

        return OnnxEngine()
    from lipstream.model.tflite_engine import TFLiteEngine

    return TFLiteEngine()
