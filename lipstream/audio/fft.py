"""Fixed-size radix-2 FFT with precomputed bit-reversal and twiddle tables."""
from __future__ import annotations

import numpy as np


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def bit_reverse_table(n: int) -> np.ndarray:
    """Bit-reversal permutation for ``n`` points. ``n`` must be a power of two."""
    levels = n.bit_length() - 1
    indices = np.arange(n, dtype=np.int64)
    rev = np.zeros(n, dtype=np.int64)
    for _ in range(levels):
        rev = (rev << 1) | (indices & 1)
        indices >>= 1
    return rev


def twiddle_table(n: int) -> np.ndarray:
    angles = -2.0 * np.pi * np.arange(n // 2) / n
    return np.exp(1j * angles)


class FFTEngine:
    """In-place iterative Cooley-Tukey transform for one fixed size.

    The size must be a power of two. Callers validate this up front
    (see ``FeatureConfig.validate``); the tables built for any other size are
    meaningless.
    """

    def __init__(self, n_fft: int) -> None:
        self.n_fft = n_fft
        self.bit_reverse = bit_reverse_table(n_fft)
        self.twiddles = twiddle_table(n_fft)

    def transform(self, data: np.ndarray) -> np.ndarray:
        """Overwrite ``data`` (complex, length ``n_fft``) with its DFT and return it."""
        n = self.n_fft
        # The permutation is an involution, so gathering equals pairwise swapping.
        data[:] = data[self.bit_reverse]
        length = 2
        while length <= n:
            half = length >> 1
            step = n // length
            groups = data.reshape(n // length, length)
            upper = groups[:, :half].copy()
            lower = groups[:, half:] * self.twiddles[: half * step : step]
            groups[:, :half] = upper + lower
            groups[:, half:] = upper - lower
            length <<= 1
        return data
