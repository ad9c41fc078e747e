"""Triangular mel filter bank."""
from __future__ import annotations

import numpy as np


def hz_to_mel(hz):
    return 2595.0 * np.log10(1.0 + np.asarray(hz, dtype=np.float64) / 700.0)


def mel_to_hz(mel):
    return 700.0 * (10.0 ** (np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


def bin_positions(sample_rate: int, n_fft: int, n_mels: int, f_min: float, f_max: float) -> np.ndarray:
    """Fractional spectral-bin positions of the ``n_mels + 2`` filter edges.

    Uses ``(n_fft + 1) * hz / sample_rate`` so that weights line up with
    features the models were trained on.
    """
    mel_points = np.linspace(hz_to_mel(f_min), hz_to_mel(f_max), n_mels + 2)
    return (n_fft + 1) * mel_to_hz(mel_points) / sample_rate


def mel_filterbank(sample_rate: int, n_fft: int, n_mels: int, f_min: float, f_max: float) -> np.ndarray:
    """Row-major ``(n_mels, n_fft // 2 + 1)`` matrix of triangular weights.

    A bin equal to a filter's center belongs to the rising edge. Zero-width
    edges contribute no weight instead of dividing by zero.
    """
    edges = bin_positions(sample_rate, n_fft, n_mels, f_min, f_max)
    left = edges[:-2, np.newaxis]
    center = edges[1:-1, np.newaxis]
    right = edges[2:, np.newaxis]
    bins = np.arange(n_fft // 2 + 1, dtype=np.float64)[np.newaxis, :]

    rise_width = center - left
    fall_width = right - center
    rising = (bins >= left) & (bins <= center) & (rise_width > 0)
    falling = (bins > center) & (bins <= right) & (fall_width > 0)

    with np.errstate(divide="ignore", invalid="ignore"):
        rise = np.where(rising, (bins - left) / rise_width, 0.0)
        fall = np.where(falling, (right - bins) / fall_width, 0.0)
    return (rise + fall).astype(np.float32)
