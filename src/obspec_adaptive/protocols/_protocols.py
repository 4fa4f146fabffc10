"""Core protocol definitions for range transports and read channels."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Buffer

    from obspec_adaptive.objects import ObjectHandle

END_OF_STREAM: Final = -1
"""Returned by ``readinto`` when no more bytes are available."""


@runtime_checkable
class RangeHandle(Protocol):
    """
    An open byte range of a remote object.

    A handle is pinned with [`seek()`][obspec_adaptive.protocols.RangeHandle.seek]
    and [`limit()`][obspec_adaptive.protocols.RangeHandle.limit] once, right
    after it is opened, and is then read front to back.

    !!! Warning
        It's recommended to define your own protocols. This protocol may change without warning.
    """

    def seek(self, offset: int) -> None:
        """Set the absolute offset of the first byte to read."""
        ...

    def limit(self, offset: int) -> None:
        """Set the absolute offset (exclusive) at which the range ends."""
        ...

    def readinto(self, buffer: Buffer) -> int:
        """
        Read bytes into a writable buffer.

        Returns
        -------
        int
            The number of bytes written to `buffer`, or
            [END_OF_STREAM][obspec_adaptive.protocols.END_OF_STREAM] once the
            range is exhausted.
        """
        ...

    def close(self) -> None:
        """Release the transport resources held by the range."""
        ...


@runtime_checkable
class RangeTransport(Protocol):
    """
    Capability to open byte ranges of remote objects.

    Authentication, connection pooling and retries belong to the transport;
    read channels only open, read and close ranges.
    """

    def open_range(self, obj: ObjectHandle, start: int, end: int) -> RangeHandle:
        """
        Open the byte range ``[start, end)`` of `obj`.

        Parameters
        ----------
        obj
            The object to read.
        start
            Offset of the first byte.
        end
            Offset one past the last byte.
        """
        ...


@runtime_checkable
class BytesReadRecorder(Protocol):
    """Sink for the byte counts delivered by a read channel."""

    def record_bytes_read(self, n: int) -> None: ...


@runtime_checkable
class ReadableFile(Protocol):
    """
    Protocol for read-only file-like objects.

    This protocol defines the minimal interface needed to read from a file-like
    object, compatible with libraries that expect file handles (e.g., pyarrow,
    h5py). Every read channel implements it.

    !!! Warning
        It's recommended to define your own protocols. This protocol may change without warning.
    """

    def read(self, size: int = -1, /) -> bytes:
        """
        Read up to `size` bytes from the file.

        Parameters
        ----------
        size
            Number of bytes to read. If -1, read until EOF.

        Returns
        -------
        bytes
            The data read from the file.
        """
        ...

    def seek(self, offset: int, whence: int = 0, /) -> int:
        """
        Move to a new file position.

        Parameters
        ----------
        offset
            Position offset.
        whence
            Reference point: 0=start (SEEK_SET), 1=current (SEEK_CUR), 2=end (SEEK_END).

        Returns
        -------
        int
            The new absolute position.
        """
        ...

    def tell(self) -> int:
        """
        Return the current file position.

        Returns
        -------
        int
            Current position in bytes from start of file.
        """
        ...


@runtime_checkable
class ReadChannel(ReadableFile, Protocol):
    """
    A seekable byte stream over one remote object.

    Implemented by [SimpleReadChannel][obspec_adaptive.channels.SimpleReadChannel]
    and [AdaptiveReadChannel][obspec_adaptive.channels.AdaptiveReadChannel],
    which differ only in how they issue range requests.
    """

    @property
    def object(self) -> ObjectHandle: ...

    @property
    def size(self) -> int: ...

    @property
    def closed(self) -> bool: ...

    def readinto(self, buffer: Buffer, /) -> int:
        """
        Read bytes at the current position into `buffer`.

        Returns
        -------
        int
            0 if `buffer` is empty,
            [END_OF_STREAM][obspec_adaptive.protocols.END_OF_STREAM] if the
            position is at the end of the object, otherwise the number of
            bytes read.
        """
        ...

    def close(self) -> None: ...


__all__ = [
    "END_OF_STREAM",
    "BytesReadRecorder",
    "RangeHandle",
    "RangeTransport",
    "ReadChannel",
    "ReadableFile",
]
