from ._version import __version__
from .channels import (
    AccessPatternStrategy,
    AdaptiveReadChannel,
    SimpleReadChannel,
    open_read_channel,
    open_store_channel,
)
from .errors import (
    ClosedChannelError,
    InvalidPositionError,
    ReadChannelError,
    TransportOpenError,
    UnexpectedEndOfStreamError,
)
from .metrics import ReadMetrics
from .objects import ObjectHandle
from .options import AccessPattern, ReadOptions
from .protocols import END_OF_STREAM
from .transports import ObspecRangeTransport

__all__ = [
    "__version__",
    "END_OF_STREAM",
    "AccessPattern",
    "AccessPatternStrategy",
    "AdaptiveReadChannel",
    "ClosedChannelError",
    "InvalidPositionError",
    "ObjectHandle",
    "ObspecRangeTransport",
    "ReadChannelError",
    "ReadMetrics",
    "ReadOptions",
    "SimpleReadChannel",
    "TransportOpenError",
    "UnexpectedEndOfStreamError",
    "open_read_channel",
    "open_store_channel",
]
