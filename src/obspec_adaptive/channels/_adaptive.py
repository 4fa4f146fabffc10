"""Read channel that adapts its range requests to the access pattern."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from obspec_adaptive.channels._common import (
    RangeState,
    close_quietly,
    open_pinned_range,
    resolve_seek,
)
from obspec_adaptive.channels._strategy import AccessPatternStrategy
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

logger = logging.getLogger(__name__)


class AdaptiveReadChannel:
    """
    A seekable byte stream that sizes range requests from observed seeks.

    The channel holds at most one open range of the object. Seeks only move
    the logical position; the next read reconciles it with the open range.
    A short forward seek inside the range is served by reading and
    discarding bytes, anything else closes the range and a new one is
    opened at the new position. How far each new range reaches is decided by
    [AccessPatternStrategy][obspec_adaptive.channels.AccessPatternStrategy].

    When to Use
    -----------
    Use AdaptiveReadChannel when:

    - **Mixed workloads**: Columnar formats alternate between long scans and
      jumps to footers and column chunks.
    - **Unknown access patterns**: ``AUTO`` mode starts with whole-object
      ranges and falls back to bounded ranges after the first jump.

    Consider alternatives when:

    - Every read is a full sequential scan → use
      [SimpleReadChannel][obspec_adaptive.channels.SimpleReadChannel]

    A channel is not safe for concurrent use.
    """

    SKIP_BUFFER_SIZE = 8192

    def __init__(
        self,
        transport: RangeTransport,
        obj: ObjectHandle,
        options: ReadOptions | None = None,
        *,
        recorder: BytesReadRecorder | None = None,
    ) -> None:
        """
        Create an adaptive channel over one object.

        Parameters
        ----------
        transport
            Used to open byte ranges of `obj`.
        obj
            The object to read. Its size bounds every range and every seek.
        options
            Access pattern and range sizing options. Defaults to
            [ReadOptions()][obspec_adaptive.options.ReadOptions].
        recorder
            Optional sink receiving the number of bytes delivered by each read.
        """
        if obj is None:
            raise ValueError("obj cannot be None")
        self._transport = transport
        self._object = obj
        self._options = options if options is not None else ReadOptions()
        self._recorder = recorder
        self._strategy = AccessPatternStrategy(self._options, obj)
        self._range = RangeState()
        self._position = 0
        self._skip_buffer: bytearray | None = None
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
        """True once [`close()`][obspec_adaptive.channels.AdaptiveReadChannel.close] was called."""
        return self._closed

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def readinto(self, buffer: Buffer, /) -> int:
        """
        Read bytes at the current position into `buffer`.

        The call keeps reading until `buffer` is full or the object ends,
        opening new ranges as needed.

        Parameters
        ----------
        buffer
            A writable buffer, e.g. a `bytearray` or `memoryview`.

        Returns
        -------
        int
            0 if `buffer` is empty,
            [END_OF_STREAM][obspec_adaptive.protocols.END_OF_STREAM] if the
            position is at the end of the object, otherwise the number of
            bytes read.

        Raises
        ------
        ClosedChannelError
            If the channel is closed.
        UnexpectedEndOfStreamError
            If a range ended before its declared end and before the object end.
        TransportOpenError
            If a new range could not be opened.
        """
        self._check_open()
        dst = memoryview(buffer).cast("B")
        if len(dst) == 0:
            return 0

        start = self._position
        try:
            self._perform_pending_seek()
            total = self._read_content(dst)
        except Exception:
            # the range is gone; a retry starts again from the same position
            self._position = start
            raise

        if total > 0 and self._recorder is not None:
            self._recorder.record_bytes_read(total)
        return total

    def _read_content(self, dst: memoryview) -> int:
        rng = self._range
        size = self._object.size
        total = 0
        while total < len(dst):
            try:
                if rng.handle is None:
                    self._open_range(len(dst) - total)
                n = rng.handle.readinto(dst[total:])
                if n == 0:
                    logger.debug(
                        "Read 0 bytes at position %d with range ending at %d for '%s' of size %d",
                        self._position,
                        rng.end,
                        self._object,
                        size,
                    )
                if n == END_OF_STREAM:
                    if self._position != rng.end and self._position != size:
                        raise UnexpectedEndOfStreamError(
                            f"Received end of stream at offset {self._position} "
                            f"while the range was supposed to end at {rng.end} "
                            f"for '{self._object}' of size {size}"
                        )
                    if rng.end != size and self._position == rng.end:
                        # range was capped before the object end; continue in a new one
                        self._close_range()
                        continue
                    if total == 0:
                        return END_OF_STREAM
                    break
            except Exception:
                self._close_range()
                raise
            total += n
            self._position += n
            rng.position += n
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
        Move the logical position.

        No range is opened or closed here; the next read reconciles the open
        range with the new position.

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

        Raises
        ------
        InvalidPositionError
            If the target lies outside ``[0, size]``.
        """
        self._check_open()
        new_position = resolve_seek(offset, whence, self._position, self._object.size)
        if new_position != self._position:
            self._position = new_position
        return self._position

    def tell(self) -> int:
        """Return the current logical position."""
        self._check_open()
        return self._position

    def close(self) -> None:
        """
        Close the channel and any open range.

        Errors raised while closing the range are logged and ignored. Calling
        close more than once has no effect.
        """
        if self._closed:
            return
        try:
            self._close_range()
        finally:
            self._closed = True

    def __enter__(self) -> AdaptiveReadChannel:
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

    def _open_range(self, bytes_to_read: int) -> None:
        start = self._position
        end = self._strategy.compute_range_end(
            start, bytes_to_read, self._object.size
        )
        handle = open_pinned_range(self._transport, self._object, start, end)
        self._range.handle = handle
        self._range.position = start
        self._range.end = end

    def _close_range(self) -> None:
        handle = self._range.handle
        if handle is None:
            return
        try:
            close_quietly(handle, self._object)
        finally:
            self._range.reset()

    def _perform_pending_seek(self) -> None:
        rng = self._range
        if rng.is_open and self._position == rng.position:
            return
        if rng.is_open and self._strategy.can_seek_in_place(
            self._position, rng.position, rng.end
        ):
            self._skip_in_place()
        else:
            self._strategy.detect_pattern_change(self._position, rng.position)
            self._close_range()

    def _skip_in_place(self) -> None:
        if self._skip_buffer is None:
            self._skip_buffer = bytearray(self.SKIP_BUFFER_SIZE)
        rng = self._range
        scratch = memoryview(self._skip_buffer)
        distance = self._position - rng.position
        while distance > 0 and rng.handle is not None:
            try:
                n = rng.handle.readinto(scratch[: min(len(scratch), distance)])
            except Exception:
                self._close_range()
                raise
            if n == END_OF_STREAM:
                logger.debug(
                    "Range of '%s' ended while skipping to %d; closing it",
                    self._object,
                    self._position,
                )
                self._close_range()
            else:
                distance -= n
                rng.position += n


__all__ = ["AdaptiveReadChannel"]
