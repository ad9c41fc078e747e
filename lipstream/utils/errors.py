"""Error taxonomy for the streaming lip-sync pipeline."""
from __future__ import annotations


class LipStreamError(Exception):
    """Base class for lipstream errors."""


class ConfigError(LipStreamError, ValueError):
    """Rejected configuration change (non power-of-two FFT, bad lengths, ...)."""


class InputSizeMismatch(LipStreamError, ValueError):
    """Sample block does not match the configured hop length."""


class TensorShapeMismatch(LipStreamError, ValueError):
    """Flattened input cannot be mapped onto the model's input shape."""


class ModelNotLoaded(LipStreamError, RuntimeError):
    """Inference requested before a model was loaded."""


class ModelLoadFailure(LipStreamError, RuntimeError):
    """Model file missing, unreadable or rejected by the runtime."""
