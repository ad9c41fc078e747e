"""Circular buffer of feature frames for the model's context window."""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass
class FeatureWindow:
    """Fixed-capacity frame history; pushing onto a full window evicts the oldest frame."""

    capacity: int
    width: int
    dtype: type = np.float32
    buffer: np.ndarray = field(init=False)
    head: int = field(init=False, default=0)
    count: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.buffer = np.zeros((self.capacity, self.width), dtype=self.dtype)

    def __len__(self) -> int:
        return self.count

    def push(self, frame: np.ndarray) -> None:
        frame = np.asarray(frame, dtype=self.dtype)
        if frame.shape != (self.width,):
            raise ValueError(f"frame must have shape ({self.width},), got {frame.shape}")
        tail = (self.head + self.count) % self.capacity
        self.buffer[tail] = frame
        if self.count == self.capacity:
            self.head = (self.head + 1) % self.capacity
        else:
            self.count += 1

    def frames(self) -> np.ndarray:
        """Return buffered frames oldest first, shape ``(len(self), width)``."""
        order = (self.head + np.arange(self.count)) % self.capacity
        return self.buffer[order]

    def latest(self) -> np.ndarray | None:
        if self.count == 0:
            return None
        return self.buffer[(self.head + self.count - 1) % self.capacity].copy()

    def resize(self, capacity: int) -> None:
        """Change capacity, keeping the newest frames."""
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        kept = self.frames()[-capacity:]
        self.capacity = capacity
        self.buffer = np.zeros((capacity, self.width), dtype=self.dtype)
        self.buffer[: len(kept)] = kept
        self.head = 0
        self.count = len(kept)

    def clear(self) -> None:
        self.buffer.fill(0)
        self.head = 0
        self.count = 0
