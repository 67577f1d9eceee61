"""Filters that let each string through only once."""

from __future__ import annotations

import hashlib
import math
import threading


class StringFilter:
    """Exact filter backed by a set."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def duplicate(self, s: str) -> bool:
        """Return True if s was seen before; otherwise remember it and return False."""
        with self._lock:
            if s in self._seen:
                return True
            self._seen.add(s)
            return False

    def has(self, s: str) -> bool:
        """Return True if the filter already holds s."""
        with self._lock:
            return s in self._seen

    def __contains__(self, s: str) -> bool:
        return self.has(s)

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


class BloomFilter:
    """Probabilistic filter sized for num entries at a 1% false-positive rate."""

    def __init__(self, num: int, false_positive_rate: float = 0.01) -> None:
        entries = max(int(num), 1)
        size = math.ceil(-entries * math.log(false_positive_rate) / (math.log(2) ** 2))
        self._size = max(size, 64)
        self._hashes = max(1, round(self._size / entries * math.log(2)))
        self._bits = bytearray((self._size + 7) // 8)
        self._lock = threading.Lock()

    def _positions(self, s: str) -> list[int]:
        digest = hashlib.blake2b(s.encode("utf-8"), digest_size=16).digest()
        first = int.from_bytes(digest[:8], "little")
        step = int.from_bytes(digest[8:], "little") | 1
        return [(first + i * step) % self._size for i in range(self._hashes)]

    def _test(self, positions: list[int]) -> bool:
        return all(self._bits[p >> 3] & (1 << (p & 7)) for p in positions)

    def duplicate(self, s: str) -> bool:
        """Return True if s was (probably) seen before; otherwise add it and return False."""
        positions = self._positions(s)
        with self._lock:
            if self._test(positions):
                return True
            for p in positions:
                self._bits[p >> 3] |= 1 << (p & 7)
            return False

    def has(self, s: str) -> bool:
        """Return True if s is (probably) in the filter."""
        positions = self._positions(s)
        with self._lock:
            return self._test(positions)

    def __contains__(self, s: str) -> bool:
        return self.has(s)