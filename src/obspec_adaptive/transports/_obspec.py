"""Range transport over obspec stores."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from obspec import Get

from obspec_adaptive.objects import ObjectHandle
from obspec_adaptive.protocols import END_OF_STREAM

if TYPE_CHECKING:
    from collections.abc import Buffer, Iterator

    from obspec import GetOptions

logger = logging.getLogger(__name__)


class ObspecRangeHandle:
    """
    One streaming range request against an obspec store.

    The request is issued lazily by the first
    [`readinto()`][obspec_adaptive.transports.ObspecRangeHandle.readinto] as
    a single [`get()`][obspec.Get] call with a ``range`` option. The response
    chunks are then copied into caller buffers as they arrive.
    """

    def __init__(
        self, store: ObspecRangeTransport.Store, obj: ObjectHandle, start: int, end: int
    ) -> None:
        self._store = store
        self._object = obj
        self._start = start
        self._end = end
        self._position = start
        self._chunks: Iterator[Buffer] | None = None
        self._pending = memoryview(b"")
        self._closed = False

    @property
    def position(self) -> int:
        """Offset of the next byte this handle will deliver."""
        return self._position

    def seek(self, offset: int) -> None:
        self._check_unstarted("seek")
        self._start = offset
        self._position = offset

    def limit(self, offset: int) -> None:
        self._check_unstarted("limit")
        self._end = offset

    def readinto(self, buffer: Buffer) -> int:
        """
        Copy the next bytes of the range into `buffer`.

        Returns
        -------
        int
            Number of bytes copied, or
            [END_OF_STREAM][obspec_adaptive.protocols.END_OF_STREAM] once the
            range or the response is exhausted.
        """
        if self._closed:
            raise ValueError("I/O operation on closed range")
        dst = memoryview(buffer).cast("B")
        if len(dst) == 0:
            return 0
        if self._position >= self._end:
            return END_OF_STREAM

        if self._chunks is None:
            self._chunks = self._request()
        while len(self._pending) == 0:
            chunk = next(self._chunks, None)
            if chunk is None:
                return END_OF_STREAM
            self._pending = memoryview(chunk).cast("B")

        n = min(len(dst), len(self._pending), self._end - self._position)
        dst[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        self._position += n
        return n

    def close(self) -> None:
        self._closed = True
        self._chunks = None
        self._pending = memoryview(b"")

    def _request(self) -> Iterator[Buffer]:
        options: GetOptions = {"range": (self._start, self._end)}
        if self._object.version is not None:
            options["version"] = self._object.version
        logger.debug(
            "Requesting bytes [%d, %d) of '%s'", self._start, self._end, self._object
        )
        return iter(self._store.get(self._object.path, options=options))

    def _check_unstarted(self, operation: str) -> None:
        if self._chunks is not None:
            raise OSError(f"Cannot {operation} a range after reading has started")


class ObspecRangeTransport:
    """
    A [RangeTransport][obspec_adaptive.protocols.RangeTransport] over any obspec store.

    Each opened range maps to one streaming [`get()`][obspec.Get] request, so
    the number of requests made against the store equals the number of ranges
    a channel reads from.
    """

    class Store(Get, Protocol):
        """
        Store protocol required by ObspecRangeTransport.

        Only [Get][obspec.Get] from obspec.
        """

        pass

    def __init__(self, store: ObspecRangeTransport.Store) -> None:
        """
        Parameters
        ----------
        store
            Any object implementing [Get][obspec.Get], e.g. an obstore
            ``S3Store`` or ``MemoryStore``.
        """
        self._store = store

    @property
    def store(self) -> ObspecRangeTransport.Store:
        return self._store

    def open_range(self, obj: ObjectHandle, start: int, end: int) -> ObspecRangeHandle:
        """Open ``[start, end)`` of `obj`; no request is made until the first read."""
        if not 0 <= start <= end:
            raise ValueError(f"Invalid range [{start}, {end})")
        return ObspecRangeHandle(self._store, obj, start, end)


__all__ = ["ObspecRangeHandle", "ObspecRangeTransport"]
