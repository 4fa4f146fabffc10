"""Passthrough read channel."""

from __future__ import annotations

from typing import TYPE_CHECKING

from obspec_adaptive.channels._common import (
    RangeState,
    close_quietly,
    open_pinned_range,
    resolve_seek,
)
from obspec_adaptive.errors import ClosedChannelError, UnexpectedEndOfStreamError
from obspec_adaptive.objects import ObjectHandle
from obspec_adaptive.options import ReadOptions
from obspec_adaptive.protocols import (
    END_OF_STREAM,
    BytesReadRecorder,
    RangeTransport,
)

if TYPE_CHECKING:
    from collections.abc import Buffer


class SimpleReadChannel:
    """
    A seekable byte stream that always reads to the end of the object.

    Every range runs from the current position to the end of the object.
    Seeking to a different position closes the open range and the next read
    opens a new one there. No access pattern detection is performed.

    When to Use
    -----------
    Use SimpleReadChannel when:

    - **Full scans**: The object is read front to back with few seeks.

    Consider alternatives when:

    - Reads jump around the object → use
      [AdaptiveReadChannel][obspec_adaptive.channels.AdaptiveReadChannel]
    """

    def __init__(
        self,
        transport: RangeTransport,
        obj: ObjectHandle,
        options: ReadOptions | None = None,
        *,
        recorder: BytesReadRecorder | None = None,
    ) -> None:
        """
        Create a passthrough channel over one object.

        Parameters
        ----------
        transport
            Used to open byte ranges of `obj`.
        obj
            The object to read.
        options
            Accepted for symmetry with
            [AdaptiveReadChannel][obspec_adaptive.channels.AdaptiveReadChannel];
            the range sizing options are not used.
        recorder
            Optional sink receiving the number of bytes delivered by each read.
        """
        if obj is None:
            raise ValueError("obj cannot be None")
        self._transport = transport
        self._object = obj
        self._options = options if options is not None else ReadOptions()
        self._recorder = recorder
        self._range = RangeState()
        self._position = 0
        self._closed = False

    @property
    def object(self) -> ObjectHandle:
        """The object this channel reads."""
        return self._object

    @property
    def size(self) -> int:
        """Size of the object in bytes."""
        return self._object.size

    @property
    def options(self) -> ReadOptions:
        return self._options

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def readinto(self, buffer: Buffer, /) -> int:
        """
        Read bytes at the current position into `buffer`.

        Returns
        -------
        int
            0 if `buffer` is empty,
            [END_OF_STREAM][obspec_adaptive.protocols.END_OF_STREAM] at the
            end of the object, otherwise the number of bytes read.
        """
        self._check_open()
        dst = memoryview(buffer).cast("B")
        if len(dst) == 0:
            return 0

        rng = self._range
        size = self._object.size
        start = self._position
        total = 0
        try:
            while total < len(dst):
                if rng.handle is None:
                    rng.handle = open_pinned_range(
                        self._transport, self._object, self._position, size
                    )
                    rng.position = self._position
                    rng.end = size
                n = rng.handle.readinto(dst[total:])
                if n == END_OF_STREAM:
                    if self._position != size:
                        raise UnexpectedEndOfStreamError(
                            f"Received end of stream at offset {self._position} "
                            f"before the end of '{self._object}' of size {size}"
                        )
                    if total == 0:
                        return END_OF_STREAM
                    break
                total += n
                self._position += n
                rng.position += n
        except Exception:
            self._close_range()
            self._position = start
            raise

        if total > 0 and self._recorder is not None:
            self._recorder.record_bytes_read(total)
        return total

    def read(self, size: int = -1, /) -> bytes:
        """
        Read up to `size` bytes from the object.

        Parameters
        ----------
        size
            Number of bytes to read. If -1, read from current position to end.

        Returns
        -------
        bytes
            The data read, or ``b""`` at the end of the object.
        """
        self._check_open()
        remaining = self._object.size - self._position
        if size is None or size < 0 or size > remaining:
            size = remaining
        if size <= 0:
            return b""

        buffer = bytearray(size)
        n = self.readinto(buffer)
        if n == END_OF_STREAM:
            return b""
        del buffer[n:]
        return bytes(buffer)

    def readall(self) -> bytes:
        """Read and return all bytes from the current position to the end."""
        return self.read(-1)

    def seek(self, offset: int, whence: int = 0, /) -> int:
        """
        Move the position, dropping the open range if the position changes.

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
        self._check_open()
        new_position = resolve_seek(offset, whence, self._position, self._object.size)
        if new_position != self._position:
            self._close_range()
            self._position = new_position
        return self._position

    def tell(self) -> int:
        """Return the current position."""
        self._check_open()
        return self._position

    def close(self) -> None:
        """Close the channel and any open range."""
        if self._closed:
            return
        try:
            self._close_range()
        finally:
            self._closed = True

    def __enter__(self) -> SimpleReadChannel:
        """Enter the context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit the context manager and close the channel."""
        self.close()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(object='{self._object}', "
            f"position={self._position}, closed={self._closed})"
        )

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedChannelError()

    def _close_range(self) -> None:
        handle = self._range.handle
        if handle is None:
            return
        try:
            close_quietly(handle, self._object)
        finally:
            self._range.reset()


__all__ = ["SimpleReadChannel"]
