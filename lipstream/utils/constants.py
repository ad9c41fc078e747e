"""Global constants shared across lipstream modules."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AudioConstants:
    sample_rate: int = 16000
    hop_length: int = 160
    window_length: int = 400
    n_fft: int = 1024
    n_mels: int = 80
    f_min: float = 50.0
    f_max: float = 8000.0
    log_floor: float = 1e-10
    std_floor: float = 1e-8
    chunk_size: int = 735


@dataclass(frozen=True)
class ContextConstants:
    context_size: int = 100


@dataclass(frozen=True)
class ModelConstants:
    viseme_labels: tuple[str, ...] = (
        "sil",
        "PP",
        "FF",
        "TH",
        "DD",
        "kk",
        "CH",
        "SS",
        "nn",
        "RR",
        "aa",
        "E",
        "ih",
        "oh",
        "ou",
    )
    model_path: str = "lipstream/model/lipsync_tcn.tflite"


AUDIO = AudioConstants()
CONTEXT = ContextConstants()
MODEL = ModelConstants()
