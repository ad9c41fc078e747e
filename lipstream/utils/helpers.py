"""Utility helpers shared by multiple lipstream subsystems."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np
import soundfile as sf


FloatArray = np.ndarray


def ensure_mono(signal: FloatArray) -> FloatArray:
    """Ensure waveform is mono by averaging channels if necessary."""
    signal = np.asarray(signal, dtype=np.float32)
    if signal.ndim == 1:
        return signal
    return signal.mean(axis=1, dtype=np.float32)


def load_audio(path: str | Path, target_sr: Optional[int] = None) -> Tuple[FloatArray, int]:
    """Load an audio file, keeping its channels, and optionally resample using librosa."""
    data, sr = sf.read(str(path), always_2d=False, dtype="float32")
    if target_sr is None or sr == target_sr:
        return data, sr
    # Lazy import to avoid librosa dependency unless resampling needed.
    import librosa

    resampled = librosa.resample(y=data.T, orig_sr=sr, target_sr=target_sr).T
    return np.ascontiguousarray(resampled, dtype=np.float32), target_sr


def top_viseme(prediction: FloatArray, labels: Sequence[str]) -> Tuple[str, float]:
    """Return the arg-max label of a prediction and its weight.

    Falls back to the numeric index when the model width does not match the
    label set.
    """
    idx = int(np.argmax(prediction))
    label = labels[idx] if len(prediction) == len(labels) else str(idx)
    return label, float(prediction[idx])
