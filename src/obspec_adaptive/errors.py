"""Exceptions raised by read channels."""

from __future__ import annotations


class ReadChannelError(Exception):
    """Base class for every error raised by obspec-adaptive."""


class ClosedChannelError(ReadChannelError, ValueError):
    """An operation was attempted on a channel that has been closed."""

    def __init__(self, message: str = "I/O operation on closed channel") -> None:
        super().__init__(message)


class InvalidPositionError(ReadChannelError, ValueError):
    """A seek target lies outside ``[0, size]``."""

    def __init__(self, position: int, size: int) -> None:
        super().__init__(
            f"Invalid seek position {position}: must be within [0, {size}]"
        )
        self.position = position
        self.size = size


class TransportOpenError(ReadChannelError, OSError):
    """Opening or pinning a physical range failed."""


class UnexpectedEndOfStreamError(ReadChannelError, OSError):
    """A range stream ended before its declared end and before the object end."""


__all__ = [
    "ClosedChannelError",
    "InvalidPositionError",
    "ReadChannelError",
    "TransportOpenError",
    "UnexpectedEndOfStreamError",
]
