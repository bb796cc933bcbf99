"""Circular sample buffer with independent write and read cursors."""

import numpy as np


class RingSampleBuffer:
    """Fixed-capacity circular store of samples.

    The read cursor trails the write cursor by `lag` slots. Both cursors
    advance together on every push, so the lag is preserved until it is
    changed with set_lag / add_lag.

    Usage:
        buf = RingSampleBuffer(capacity=1024, lag=200)
        buf.push(sample)
        delayed = buf.read()       # sample pushed `lag` pushes ago
        newer = buf.read(1)        # one slot closer to the write cursor

    All indexing wraps modulo capacity. A lag larger than the capacity
    silently aliases; callers must size the buffer for the largest lag
    they intend to use.
    """

    def __init__(self, capacity: int, lag: int = 0, init=None):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = int(capacity)
        if init is None:
            self.storage = np.zeros(self.capacity, dtype=np.float64)
        else:
            self.storage = np.array([init(i) for i in range(self.capacity)],
                                    dtype=np.float64)
        self.write_index = 0
        self.read_index = (0 - abs(int(lag))) % self.capacity

    @property
    def lag(self) -> int:
        """Slots between the read cursor and the write cursor."""
        return (self.write_index - self.read_index) % self.capacity

    def push(self, sample: float):
        """Write at the write cursor, then advance both cursors."""
        self.storage[self.write_index] = sample
        self.write_index = (self.write_index + 1) % self.capacity
        self.read_index = (self.read_index + 1) % self.capacity

    def read(self, offset: int = 0) -> float:
        """Sample at `offset` slots from the read cursor (0 = current)."""
        return self.storage[(self.read_index + offset) % self.capacity]

    def set_lag(self, n: int):
        """Place the read cursor |n| slots behind the write cursor."""
        self.read_index = (self.write_index - abs(int(n))) % self.capacity

    def add_lag(self, n: int):
        """Move the read cursor by n slots, regardless of the write cursor."""
        self.read_index = (self.read_index + int(n)) % self.capacity

    def window(self) -> np.ndarray:
        """Copy of the stored samples ordered oldest to newest."""
        w = self.write_index
        return np.concatenate((self.storage[w:], self.storage[:w]))

    def reset(self):
        """Zero the storage and rewind both cursors, keeping the lag."""
        lag = self.lag
        self.storage[:] = 0.0
        self.write_index = 0
        self.read_index = (0 - lag) % self.capacity
