"""Streaming scheduler: host audio blocks in, viseme predictions out."""
from __future__ import annotations

import logging
import numbers
from pathlib import Path
from typing import Optional

import numpy as np

from lipstream.audio.frame_processor import FeatureConfig, FrameProcessor
from lipstream.audio.resampler import StreamingResampler
from lipstream.audio.ring_buffer import FeatureWindow
from lipstream.model.engine import InferenceEngine
from lipstream.utils.constants import CONTEXT
from lipstream.utils.errors import ConfigError
from lipstream.utils.helpers import ensure_mono

logger = logging.getLogger(__name__)


def _check_context_size(frames) -> None:
    if isinstance(frames, bool) or not isinstance(frames, numbers.Integral) or frames < 1:
        raise ConfigError(f"context_size must be a positive integer, got {frames!r}")


class LipSyncContext:
    """Owns the feature pipeline for one audio stream and drives the model.

    Each ``process`` call downmixes the host block, resamples it to the
    processor's sample rate, turns every complete hop into a feature frame,
    and, if any frame was produced, runs the model over the whole context
    window and returns the newest timestep of its output. Hop length, band
    count and target rate are always read from ``processor.config``.

    Not thread-safe; use one instance per stream.
    """

    def __init__(
        self,
        engine: Optional[InferenceEngine] = None,
        processor: Optional[FrameProcessor] = None,
        context_size: int = CONTEXT.context_size,
    ) -> None:
        _check_context_size(context_size)
        self.engine = engine
        self.processor = processor or FrameProcessor()
        self._config = self.processor.config
        self.resampler = StreamingResampler(target_rate=self._config.sample_rate)
        self.window = FeatureWindow(capacity=context_size, width=self._config.n_mels)
        self._pending = np.zeros(0, dtype=np.float32)

    @property
    def context_size(self) -> int:
        return self.window.capacity

    @property
    def frame_count(self) -> int:
        return len(self.window)

    @property
    def pending_samples(self) -> int:
        return len(self._pending)

    def set_engine(self, engine: Optional[InferenceEngine]) -> None:
        self.engine = engine
        self.reset()

    def load_model(self, path: str | Path) -> bool:
        """Load a model through the attached engine; resets history on success."""
        if self.engine is None:
            logger.warning("LipSyncContext: no inference engine attached, cannot load %s", path)
            return False
        if not self.engine.load_model(str(path)):
            return False
        self.reset()
        return True

    def set_context_size(self, frames: int) -> None:
        _check_context_size(frames)
        self.window.resize(frames)

    def configure(self, **fields) -> None:
        """Change feature settings (see ``FeatureConfig``) and restart the stream."""
        self.processor.configure(**fields)
        self._sync_config()

    def reset(self) -> None:
        """Drop buffered audio, features, overlap and resampler phase; keep configuration."""
        self._pending = np.zeros(0, dtype=np.float32)
        self.window.clear()
        self.processor.reset()
        self.resampler.reset()

    def latest_features(self) -> Optional[np.ndarray]:
        return self.window.latest()

    def _sync_config(self) -> None:
        config: FeatureConfig = self.processor.config
        if config == self._config:
            return
        logger.info("LipSyncContext: feature config changed, restarting stream")
        if config.n_mels != self.window.width:
            self.window = FeatureWindow(capacity=self.window.capacity, width=config.n_mels)
        self.resampler.target_rate = config.sample_rate
        self._config = config
        self.reset()

    def _resample_and_push(self, mono: np.ndarray, source_rate: int) -> None:
        resampled = self.resampler.process(mono, source_rate)
        if len(resampled):
            self._pending = np.concatenate((self._pending, resampled))

    def process(self, audio, source_rate: int) -> Optional[np.ndarray]:
        """Consume one host block; return the newest viseme vector or ``None``.

        ``audio`` is ``(N, 2)`` stereo, ``(N, C)`` multichannel or ``(N,)``
        mono. ``None`` means no new prediction this tick.
        """
        if self.engine is None or not self.engine.is_loaded:
            logger.debug("LipSyncContext: model not loaded")
            return None
        block = np.asarray(audio, dtype=np.float32)
        if block.size == 0:
            return None
        if block.ndim > 2 or source_rate <= 0:
            logger.warning(
                "LipSyncContext: unsupported block shape %s at %s Hz", block.shape, source_rate
            )
            return None

        self._sync_config()
        self._resample_and_push(ensure_mono(block), source_rate)

        hop = self._config.hop_length
        hops = len(self._pending) // hop
        if hops == 0:
            return None
        consumed = hops * hop
        new_features = False
        for chunk in self._pending[:consumed].reshape(hops, hop):
            features = self.processor.process_frame(chunk)
            if features is not None:
                self.window.push(features)
                new_features = True
        self._pending = self._pending[consumed:].copy()

        if not new_features or len(self.window) == 0:
            return None
        return self._predict()

    def _predict(self) -> Optional[np.ndarray]:
        frames = self.window.frames()
        n_frames = len(frames)
        output = np.asarray(self.engine.run_inference(frames.ravel()), dtype=np.float32).ravel()
        if output.size == 0:
            return None
        if output.size % n_frames:
            logger.warning(
                "LipSyncContext: output size %d not divisible by %d frames", output.size, n_frames
            )
            return None
        width = output.size // n_frames
        return output[-width:].copy()
