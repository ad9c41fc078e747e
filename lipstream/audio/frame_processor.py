"""Streaming log-mel frame processor with overlap carry between hops."""
from __future__ import annotations

import dataclasses
import logging
import numbers
from dataclasses import dataclass
from typing import Optional

import numpy as np

from lipstream.audio.fft import FFTEngine, is_power_of_two
from lipstream.audio.melbank import mel_filterbank
from lipstream.utils.constants import AUDIO
from lipstream.utils.errors import ConfigError, InputSizeMismatch

logger = logging.getLogger(__name__)


_INT_FIELDS = ("sample_rate", "hop_length", "window_length", "n_fft", "n_mels")


@dataclass(frozen=True)
class FeatureConfig:
    sample_rate: int = AUDIO.sample_rate
    hop_length: int = AUDIO.hop_length
    window_length: int = AUDIO.window_length
    n_fft: int = AUDIO.n_fft
    n_mels: int = AUDIO.n_mels
    f_min: float = AUDIO.f_min
    f_max: float = AUDIO.f_max

    @property
    def overlap_length(self) -> int:
        return max(self.window_length - self.hop_length, 0)

    @property
    def num_bins(self) -> int:
        return self.n_fft // 2 + 1

    def validate(self) -> None:
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if not is_power_of_two(self.n_fft):
            raise ConfigError(f"n_fft must be a power of two, got {self.n_fft}")
        if self.sample_rate < 1:
            raise ConfigError(f"sample_rate must be positive, got {self.sample_rate}")
        if not 1 <= self.hop_length <= self.window_length:
            raise ConfigError(
                f"hop_length must be in [1, window_length={self.window_length}], got {self.hop_length}"
            )
        if self.window_length > self.n_fft:
            raise ConfigError(f"window_length {self.window_length} exceeds n_fft {self.n_fft}")
        if self.n_mels < 1:
            raise ConfigError(f"n_mels must be positive, got {self.n_mels}")
        if not 0.0 <= self.f_min < self.f_max:
            raise ConfigError(f"invalid frequency range [{self.f_min}, {self.f_max}]")


# Derived tables rebuilt when a given field changes.
_WINDOW_FIELDS = {"window_length"}
_FFT_FIELDS = {"n_fft"}
_MEL_FIELDS = {"sample_rate", "n_fft", "n_mels", "f_min", "f_max"}


class FrameProcessor:
    """Turns one hop of new samples into one normalized log-mel frame.

    Each call windows ``window_length`` samples: the overlap carried from the
    previous call followed by the new hop. The result does not depend on how
    the caller's audio was blocked, only on the sequence of hops.
    """

    def __init__(self, config: Optional[FeatureConfig] = None) -> None:
        self.config = config or FeatureConfig()
        self.config.validate()
        self._rebuild(set(f.name for f in dataclasses.fields(FeatureConfig)))
        self.reset()

    def _rebuild(self, changed: set[str]) -> None:
        cfg = self.config
        if changed & _WINDOW_FIELDS:
            self.window = np.hanning(cfg.window_length).astype(np.float32)
        if changed & _FFT_FIELDS:
            self.fft = FFTEngine(cfg.n_fft)
            self._fft_buffer = np.zeros(cfg.n_fft, dtype=np.complex128)
        if changed & _MEL_FIELDS:
            self.mel_filter_bank = mel_filterbank(
                cfg.sample_rate, cfg.n_fft, cfg.n_mels, cfg.f_min, cfg.f_max
            )

    def configure(self, **fields) -> None:
        """Apply several config fields at once; nothing changes if validation fails."""
        try:
            candidate = dataclasses.replace(self.config, **fields)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc
        candidate.validate()
        changed = {name for name, value in fields.items() if getattr(self.config, name) != value}
        self.config = candidate
        if changed:
            self._rebuild(changed)
        self.reset()

    def set_sample_rate(self, rate: int) -> None:
        self.configure(sample_rate=rate)

    def set_fft_size(self, size: int) -> None:
        self.configure(n_fft=size)

    def set_hop_length(self, length: int) -> None:
        self.configure(hop_length=length)

    def set_window_length(self, length: int) -> None:
        self.configure(window_length=length)

    def set_mel_bands(self, bands: int) -> None:
        self.configure(n_mels=bands)

    def set_frequency_range(self, f_min: float, f_max: float) -> None:
        self.configure(f_min=f_min, f_max=f_max)

    def reset(self) -> None:
        """Zero the overlap carried into the next hop."""
        self.previous_samples = np.zeros(self.config.overlap_length, dtype=np.float32)

    def _check_hop(self, samples: np.ndarray) -> None:
        if samples.ndim != 1 or len(samples) != self.config.hop_length:
            raise InputSizeMismatch(
                f"expected {self.config.hop_length} samples, got {samples.size}"
            )

    def process_frame(self, samples) -> Optional[np.ndarray]:
        """Consume exactly ``hop_length`` samples and return ``n_mels`` features.

        Returns ``None`` (and leaves the overlap untouched) when the block has
        the wrong size.
        """
        samples = np.asarray(samples, dtype=np.float32)
        try:
            self._check_hop(samples)
        except InputSizeMismatch as exc:
            logger.warning("FrameProcessor: %s", exc)
            return None
        return self._process_hop(samples)

    def process_frames(self, block) -> Optional[np.ndarray]:
        """Process a block of whole hops, returning a ``(hops, n_mels)`` matrix."""
        block = np.asarray(block, dtype=np.float32)
        hop = self.config.hop_length
        if block.ndim != 1 or len(block) % hop:
            logger.warning(
                "FrameProcessor: block of %d samples is not a multiple of hop %d", block.size, hop
            )
            return None
        frames = [self._process_hop(chunk) for chunk in block.reshape(-1, hop)]
        if not frames:
            return np.zeros((0, self.config.n_mels), dtype=np.float32)
        return np.stack(frames)

    def _process_hop(self, samples: np.ndarray) -> np.ndarray:
        cfg = self.config
        # hop_length <= window_length, so this is exactly window_length long.
        window_buffer = np.concatenate((self.previous_samples, samples))
        self.previous_samples = window_buffer[cfg.hop_length :].copy()

        spectrum = self._fft_buffer
        spectrum[:] = 0.0
        spectrum[: cfg.window_length] = window_buffer * self.window
        self.fft.transform(spectrum)

        half = spectrum[: cfg.num_bins]
        power = half.real ** 2 + half.imag ** 2
        mel = self.mel_filter_bank @ power
        log_mel = 10.0 * np.log10(np.maximum(mel, AUDIO.log_floor))
        return normalize_frame(log_mel)


def normalize_frame(features: np.ndarray) -> np.ndarray:
    """Zero mean, unit variance across the band axis of a single frame."""
    mean = features.mean()
    std = max(float(features.std()), AUDIO.std_floor)
    return ((features - mean) / std).astype(np.float32)
