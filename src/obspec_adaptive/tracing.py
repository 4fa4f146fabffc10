"""Request tracing for range transports.

This module provides a transport wrapper that records every range a channel
opens, useful for debugging, profiling, and visualizing access patterns.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from obspec_adaptive.protocols import END_OF_STREAM, RangeHandle, RangeTransport

if TYPE_CHECKING:
    from collections.abc import Buffer

    from obspec_adaptive.objects import ObjectHandle


@dataclass
class RequestRecord:
    """Record of a single range request.

    Note
    ----
    ``bytes_read`` counts the bytes actually pulled from the range, including
    bytes discarded by in-place seeks. It is updated while the range is read,
    so it may be smaller than ``length`` for ranges closed early.
    """

    path: str
    start: int
    length: int
    end: int  # start + length
    timestamp: float
    duration: float | None = None
    bytes_read: int = 0


@dataclass
class RequestTrace:
    """Collection of request records with analysis methods."""

    requests: list[RequestRecord] = field(default_factory=list)

    def add(
        self,
        path: str,
        start: int,
        length: int,
        timestamp: float,
        duration: float | None = None,
    ) -> RequestRecord:
        """Add a request record."""
        record = RequestRecord(
            path=path,
            start=start,
            length=length,
            end=start + length,
            timestamp=timestamp,
            duration=duration,
        )
        self.requests.append(record)
        return record

    def clear(self) -> None:
        """Clear all recorded requests."""
        self.requests.clear()

    def to_dataframe(self):
        """Convert to pandas DataFrame."""
        import pandas as pd

        columns = [
            "path",
            "start",
            "length",
            "end",
            "timestamp",
            "duration",
            "bytes_read",
        ]
        if not self.requests:
            return pd.DataFrame(columns=columns)

        return pd.DataFrame(
            [{name: getattr(r, name) for name in columns} for r in self.requests]
        )

    @property
    def total_bytes(self) -> int:
        """Total bytes requested."""
        return sum(r.length for r in self.requests)

    @property
    def total_bytes_read(self) -> int:
        """Total bytes pulled from the transport."""
        return sum(r.bytes_read for r in self.requests)

    @property
    def total_requests(self) -> int:
        """Total number of requests."""
        return len(self.requests)

    def summary(self) -> dict[str, Any]:
        """Get summary statistics."""
        if not self.requests:
            return {
                "total_requests": 0,
                "total_bytes": 0,
                "total_bytes_read": 0,
                "unique_files": 0,
            }

        paths = set(r.path for r in self.requests)
        lengths = [r.length for r in self.requests]

        return {
            "total_requests": len(self.requests),
            "total_bytes": sum(lengths),
            "total_bytes_read": self.total_bytes_read,
            "unique_files": len(paths),
            "min_request_size": min(lengths),
            "max_request_size": max(lengths),
            "mean_request_size": sum(lengths) / len(lengths),
        }


class _TracedRangeHandle:
    """Range handle that counts the bytes it delivers into its record."""

    def __init__(self, handle: RangeHandle, record: RequestRecord) -> None:
        self._handle = handle
        self._record = record

    def seek(self, offset: int) -> None:
        self._handle.seek(offset)

    def limit(self, offset: int) -> None:
        self._handle.limit(offset)

    def readinto(self, buffer: Buffer) -> int:
        n = self._handle.readinto(buffer)
        if n != END_OF_STREAM:
            self._record.bytes_read += n
        return n

    def close(self) -> None:
        self._handle.close()


class TracingTransport:
    """
    A wrapper that traces all ranges opened through an underlying transport.

    Examples
    --------
    ```python
    from obspec_adaptive.channels import AdaptiveReadChannel
    from obspec_adaptive.tracing import RequestTrace, TracingTransport
    from obspec_adaptive.transports import ObspecRangeTransport

    trace = RequestTrace()
    transport = TracingTransport(ObspecRangeTransport(store), trace)

    with AdaptiveReadChannel(transport, obj) as channel:
        ...

    print(trace.summary())
    ```
    """

    def __init__(
        self,
        transport: RangeTransport,
        trace: RequestTrace,
        *,
        on_request: Callable[[RequestRecord], None] | None = None,
    ) -> None:
        """
        Create a tracing wrapper around a transport.

        Parameters
        ----------
        transport
            The underlying transport to wrap.
        trace
            RequestTrace instance to record requests to.
        on_request
            Optional callback called for each request (e.g., for logging).
        """
        self._transport = transport
        self._trace = trace
        self._on_request = on_request

    @property
    def trace(self) -> RequestTrace:
        return self._trace

    def open_range(self, obj: ObjectHandle, start: int, end: int) -> RangeHandle:
        """Open a range (delegates to the underlying transport) and record it."""
        start_time = time.time()
        try:
            handle = self._transport.open_range(obj, start, end)
        finally:
            record = self._trace.add(
                path=obj.path,
                start=start,
                length=end - start,
                timestamp=start_time,
                duration=time.time() - start_time,
            )
            if self._on_request:
                self._on_request(record)
        return _TracedRangeHandle(handle, record)


__all__ = [
    "RequestRecord",
    "RequestTrace",
    "TracingTransport",
]
