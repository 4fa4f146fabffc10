"""Helpers shared by the read channel implementations."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from obspec_adaptive.errors import InvalidPositionError, TransportOpenError
from obspec_adaptive.objects import ObjectHandle
from obspec_adaptive.protocols import RangeHandle, RangeTransport

logger = logging.getLogger(__name__)


@dataclass
class RangeState:
    """The physical range held by a channel.

    `position` is the range cursor and `end` its exclusive end; both are -1
    while no range is open.
    """

    handle: RangeHandle | None = None
    position: int = -1
    end: int = -1

    @property
    def is_open(self) -> bool:
        return self.handle is not None

    def reset(self) -> None:
        self.handle = None
        self.position = -1
        self.end = -1


def resolve_seek(
    offset: int, whence: int, position: int, size: int
) -> int:
    """Turn a ``seek(offset, whence)`` call into an absolute, validated position."""
    if whence == 0:  # SEEK_SET
        new_position = offset
    elif whence == 1:  # SEEK_CUR
        new_position = position + offset
    elif whence == 2:  # SEEK_END
        new_position = size + offset
    else:
        raise ValueError(f"Invalid whence value: {whence}")

    if not 0 <= new_position <= size:
        raise InvalidPositionError(new_position, size)
    return new_position


def open_pinned_range(
    transport: RangeTransport, obj: ObjectHandle, start: int, end: int
) -> RangeHandle:
    """
    Open ``[start, end)`` of `obj` and pin the handle to that window.

    Any failure is raised as
    [TransportOpenError][obspec_adaptive.errors.TransportOpenError]; a handle
    that was opened but could not be pinned is closed first.
    """
    try:
        handle = transport.open_range(obj, start, end)
    except Exception as e:
        raise TransportOpenError(
            f"Unable to open range [{start}, {end}) of '{obj}'"
        ) from e

    try:
        handle.seek(start)
        handle.limit(end)
    except Exception as e:
        close_quietly(handle, obj)
        raise TransportOpenError(
            f"Unable to update the boundaries of range [{start}, {end}) of '{obj}'"
        ) from e

    logger.debug("Opened range [%d, %d) of '%s'", start, end, obj)
    return handle


def close_quietly(handle: RangeHandle, obj: ObjectHandle) -> None:
    """Close a range handle, logging and ignoring any error."""
    try:
        handle.close()
    except Exception:
        logger.debug(
            "Got an exception on range close for '%s'; ignoring it.",
            obj,
            exc_info=True,
        )
