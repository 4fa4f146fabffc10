"""Access pattern detection and range sizing."""

from __future__ import annotations

import logging

from obspec_adaptive.objects import ObjectHandle
from obspec_adaptive.options import AccessPattern, ReadOptions

logger = logging.getLogger(__name__)


class AccessPatternStrategy:
    """
    Decide how large each range request should be.

    The strategy classifies the reads of one channel as sequential or random.
    Sequential reads open ranges that run to the end of the object, random
    reads open ranges that cover the requested bytes plus
    `min_range_request_size`.

    With [AccessPattern.AUTO][obspec_adaptive.options.AccessPattern] the
    classification starts sequential. A backward seek, or a forward seek
    beyond `inplace_seek_limit`, switches it to random. While random, more than
    `sequential_range_read_threshold` back-to-back range requests switch it
    to sequential again. ``SEQUENTIAL`` and ``RANDOM`` never change.

    The strategy performs no I/O; it only updates its own state.
    """

    def __init__(self, options: ReadOptions, obj: ObjectHandle) -> None:
        self._options = options
        self._object = obj
        self._random_access = options.access_pattern is AccessPattern.RANDOM
        self._last_range_request_end = -1
        self._sequential_read_count = 0

    @property
    def is_random_access(self) -> bool:
        """Whether reads are currently classified as random."""
        return self._random_access

    @property
    def should_detect_random_access(self) -> bool:
        """Whether seeks may still switch the classification to random."""
        return (
            not self._random_access
            and self._options.access_pattern is AccessPattern.AUTO
        )

    def compute_range_end(
        self, current_position: int, bytes_to_read: int, object_size: int
    ) -> int:
        """
        Compute the exclusive end offset of the next range request.

        Parameters
        ----------
        current_position
            Offset the range starts at.
        bytes_to_read
            Number of bytes the caller asked for.
        object_size
            Size of the object in bytes.

        Returns
        -------
        int
            ``object_size`` when reads are sequential, otherwise
            ``min(object_size, current_position + max(bytes_to_read, min_range_request_size))``.
        """
        if self._random_access:
            if current_position == self._last_range_request_end:
                self._sequential_read_count += 1
                if (
                    self._sequential_read_count
                    > self._options.sequential_range_read_threshold
                    and self._options.access_pattern is AccessPattern.AUTO
                ):
                    self._random_access = False
                    logger.debug(
                        "Detected sequential read pattern, switching to sequential IO for '%s'",
                        self._object,
                    )
            else:
                self._sequential_read_count = 0

        end = object_size
        if self._random_access:
            end = current_position + max(
                bytes_to_read, self._options.min_range_request_size
            )
        end = min(end, object_size)
        self._last_range_request_end = end
        return end

    def detect_pattern_change(self, new_position: int, physical_position: int) -> None:
        """
        Observe a seek that cannot be served in place.

        A backward seek, or a forward seek further than `inplace_seek_limit`
        past the physical position, switches ``AUTO`` mode to random reads
        for the rest of the channel's life.

        Parameters
        ----------
        new_position
            The logical position being sought to.
        physical_position
            Position of the open range's cursor, or -1 if no range is open.
        """
        if not self.should_detect_random_access:
            return

        if new_position < physical_position:
            logger.debug(
                "Detected backward read from %d to %d position, switching to random IO for '%s'",
                physical_position,
                new_position,
                self._object,
            )
            self._random_access = True
        elif (
            physical_position >= 0
            and physical_position + self._options.inplace_seek_limit < new_position
        ):
            logger.debug(
                "Detected forward read from %d to %d position over %d threshold, "
                "switching to random IO for '%s'",
                physical_position,
                new_position,
                self._options.inplace_seek_limit,
                self._object,
            )
            self._random_access = True

    def can_seek_in_place(
        self, new_position: int, physical_position: int, range_end: int
    ) -> bool:
        """
        Whether a seek can be served by skipping bytes of the open range.

        True only for strictly forward seeks no further than
        `inplace_seek_limit` whose target still lies inside the range.
        """
        distance = new_position - physical_position
        return (
            0 < distance <= self._options.inplace_seek_limit
            and new_position < range_end
        )


__all__ = ["AccessPatternStrategy"]
