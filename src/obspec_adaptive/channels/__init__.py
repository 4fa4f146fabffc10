"""Seekable read channels over range-addressable objects.

This module provides the two channel variants, the access pattern strategy
driving the adaptive one, and helpers that pick a variant from
[ReadOptions][obspec_adaptive.options.ReadOptions].
"""

from obspec_adaptive.channels._adaptive import AdaptiveReadChannel
from obspec_adaptive.channels._factory import (
    ChannelStore,
    open_read_channel,
    open_store_channel,
)
from obspec_adaptive.channels._simple import SimpleReadChannel
from obspec_adaptive.channels._strategy import AccessPatternStrategy

__all__ = [
    "AccessPatternStrategy",
    "AdaptiveReadChannel",
    "ChannelStore",
    "SimpleReadChannel",
    "open_read_channel",
    "open_store_channel",
]
