"""Byte counters for read channels."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ReadMetrics:
    """
    A [BytesReadRecorder][obspec_adaptive.protocols.BytesReadRecorder] that
    counts what a channel delivers.

    Instances are owned by the caller and passed to a channel explicitly;
    several channels may share one instance as long as they are used from a
    single thread.
    """

    bytes_read: int = 0
    read_calls: int = 0

    def record_bytes_read(self, n: int) -> None:
        """Add one successful read of `n` bytes."""
        self.bytes_read += n
        self.read_calls += 1

    def reset(self) -> None:
        self.bytes_read = 0
        self.read_calls = 0


__all__ = ["ReadMetrics"]
