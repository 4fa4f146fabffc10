"""Protocols for range transports and read channels.

This module defines the core protocols used throughout obspec-adaptive.
"""

from obspec_adaptive.protocols._protocols import (
    END_OF_STREAM,
    BytesReadRecorder,
    RangeHandle,
    RangeTransport,
    ReadableFile,
    ReadChannel,
)

__all__ = [
    "END_OF_STREAM",
    "BytesReadRecorder",
    "RangeHandle",
    "RangeTransport",
    "ReadChannel",
    "ReadableFile",
]
