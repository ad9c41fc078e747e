"""Replay recorded audio as the blocks a host audio callback would deliver."""
from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Optional, Tuple

import numpy as np

from lipstream.utils.helpers import ensure_mono, load_audio


def to_stereo(signal: np.ndarray) -> np.ndarray:
    """Return ``(N, 2)`` float32 stereo; more than two channels are averaged to mono first."""
    signal = np.asarray(signal, dtype=np.float32)
    if signal.ndim == 1:
        return np.repeat(signal[:, np.newaxis], 2, axis=1)
    if signal.shape[1] == 1:
        return np.repeat(signal, 2, axis=1)
    if signal.shape[1] == 2:
        return signal
    return to_stereo(ensure_mono(signal))


@dataclass
class MicStream:
    """Splits a signal into host-sized stereo blocks.

    With ``jitter`` > 0 each block size is drawn uniformly from
    ``[chunk_size * (1 - jitter), chunk_size * (1 + jitter)]`` using ``seed``,
    mimicking hosts whose callback sizes vary between ticks. Unlike a live
    device, the final block is not padded.
    """

    sample_rate: int
    chunk_size: int
    jitter: float = 0.0
    seed: Optional[int] = None
    realtime: bool = False

    def block_sizes(self, total: int) -> Generator[int, None, None]:
        rng = np.random.default_rng(self.seed)
        low = max(1, int(self.chunk_size * (1.0 - self.jitter)))
        high = max(low, int(self.chunk_size * (1.0 + self.jitter)))
        emitted = 0
        while emitted < total:
            size = int(rng.integers(low, high + 1)) if self.jitter > 0 else self.chunk_size
            size = min(size, total - emitted)
            emitted += size
            yield size

    def from_array(self, data: np.ndarray) -> Generator[np.ndarray, None, None]:
        stereo = to_stereo(data)
        start = 0
        for size in self.block_sizes(len(stereo)):
            block = stereo[start : start + size]
            start += size
            if self.realtime:
                time.sleep(size / self.sample_rate)
            yield block

    @classmethod
    def from_wav(
        cls, path: str | Path, chunk_size: int, **kwargs
    ) -> Tuple["MicStream", Generator[np.ndarray, None, None]]:
        """Open a file at its native rate; returns the stream and its block generator."""
        data, sr = load_audio(path)
        stream = cls(sample_rate=sr, chunk_size=chunk_size, **kwargs)
        return stream, stream.from_array(data)
