"""Construction of read channels."""

from __future__ import annotations

from typing import Protocol

from obspec import Get, Head

from obspec_adaptive.channels._adaptive import AdaptiveReadChannel
from obspec_adaptive.channels._simple import SimpleReadChannel
from obspec_adaptive.objects import ObjectHandle
from obspec_adaptive.options import ReadOptions
from obspec_adaptive.protocols import BytesReadRecorder, RangeTransport, ReadChannel
from obspec_adaptive.transports import ObspecRangeTransport


class ChannelStore(Get, Head, Protocol):
    """
    Store protocol required by [open_store_channel][obspec_adaptive.channels.open_store_channel].

    Combines [Get][obspec.Get] and [Head][obspec.Head] from obspec.
    """

    pass


def open_read_channel(
    transport: RangeTransport,
    obj: ObjectHandle,
    options: ReadOptions | None = None,
    *,
    recorder: BytesReadRecorder | None = None,
) -> ReadChannel:
    """
    Open a read channel over `obj`.

    Parameters
    ----------
    transport
        Used to open byte ranges of `obj`.
    obj
        The object to read.
    options
        Read options. `adaptive_range_read_enabled` selects
        [AdaptiveReadChannel][obspec_adaptive.channels.AdaptiveReadChannel]
        over [SimpleReadChannel][obspec_adaptive.channels.SimpleReadChannel].
    recorder
        Optional sink receiving the number of bytes delivered by each read.
    """
    options = options if options is not None else ReadOptions()
    if options.adaptive_range_read_enabled:
        return AdaptiveReadChannel(transport, obj, options, recorder=recorder)
    return SimpleReadChannel(transport, obj, options, recorder=recorder)


def open_store_channel(
    store: ChannelStore,
    path: str,
    options: ReadOptions | None = None,
    *,
    obj: ObjectHandle | None = None,
    recorder: BytesReadRecorder | None = None,
) -> ReadChannel:
    """
    Open a read channel over an object of any obspec store.

    Parameters
    ----------
    store
        Any object implementing [Get][obspec.Get] and [Head][obspec.Head].
    path
        The path to the object within the store.
    options
        Read options, see [open_read_channel][obspec_adaptive.channels.open_read_channel].
    obj
        Handle of the object, if already known. When omitted, the size and
        generation are fetched with a `head()` call.
    recorder
        Optional sink receiving the number of bytes delivered by each read.

    Examples
    --------
    ```python
    from obstore.store import MemoryStore
    from obspec_adaptive.channels import open_store_channel

    store = MemoryStore()
    store.put("data.parquet", b"PAR1...PAR1")

    with open_store_channel(store, "data.parquet") as channel:
        channel.seek(-4, 2)
        assert channel.read(4) == b"PAR1"
    ```
    """
    if obj is None:
        obj = ObjectHandle.from_head(store, path)
    elif obj.path != path:
        raise ValueError(f"Handle path '{obj.path}' does not match '{path}'")
    return open_read_channel(
        ObspecRangeTransport(store), obj, options, recorder=recorder
    )


__all__ = ["ChannelStore", "open_read_channel", "open_store_channel"]
