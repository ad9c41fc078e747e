"""Offline log-mel extraction matching the streaming frame processor."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np

from lipstream.audio.frame_processor import FeatureConfig, FrameProcessor
from lipstream.utils.helpers import ensure_mono, load_audio


def stream_log_mel(signal: np.ndarray, config: Optional[FeatureConfig] = None) -> np.ndarray:
    """Run a fresh processor over a whole mono signal.

    Returns ``(frames, n_mels)`` float32; a trailing partial hop is dropped.
    Rows are identical to what ``FrameProcessor.process_frame`` emits when the
    same samples are streamed from a reset state.
    """
    processor = FrameProcessor(config)
    hop = processor.config.hop_length
    signal = np.asarray(signal, dtype=np.float32)
    usable = len(signal) - len(signal) % hop
    return processor.process_frames(signal[:usable])


def clip_features(path: str | Path, config: Optional[FeatureConfig] = None) -> np.ndarray:
    """Load an audio file at the feature sample rate and extract its frames."""
    config = config or FeatureConfig()
    data, _ = load_audio(path, config.sample_rate)
    return stream_log_mel(ensure_mono(data), config)
