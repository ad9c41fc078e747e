"""Streaming linear-interpolation resampler with fractional phase carry."""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from lipstream.utils.constants import AUDIO


@dataclass
class StreamingResampler:
    """Converts contiguous mono chunks at any source rate to ``target_rate``.

    The read cursor advances by ``source_rate / target_rate`` input samples
    per output sample. Whatever the cursor overshoots at the end of a chunk is
    carried as ``phase`` and applied to the next chunk, so output timing does
    not depend on block size.

    Chunk boundaries are approximate: the last sample of a chunk is never
    kept, so positions between it and the next chunk's first sample are
    extrapolated from the start of the next chunk.
    """

    target_rate: int = AUDIO.sample_rate
    phase: float = 0.0

    def process(self, samples: np.ndarray, source_rate: int) -> np.ndarray:
        samples = np.asarray(samples, dtype=np.float32)
        count = len(samples)
        if count == 0:
            return samples
        if source_rate == self.target_rate:
            return samples.copy()

        ratio = source_rate / self.target_rate
        last = count - 1
        if self.phase < last:
            candidates = int(np.floor((last - self.phase) / ratio)) + 1
            positions = self.phase + ratio * np.arange(candidates, dtype=np.float64)
            positions = positions[positions < last]
        else:
            positions = np.zeros(0, dtype=np.float64)

        # The carried cursor may start up to one sample before the chunk;
        # those positions extrapolate from the chunk's first two samples.
        idx = np.clip(positions.astype(np.int64), 0, last)
        frac = positions - idx
        s0 = samples[idx]
        s1 = samples[np.minimum(idx + 1, last)]
        out = (s0 + (s1 - s0) * frac).astype(np.float32)

        self.phase = float(self.phase + ratio * len(positions) - count)
        return out

    def reset(self) -> None:
        self.phase = 0.0
