"""Range transports backed by object stores."""

from obspec_adaptive.transports._obspec import ObspecRangeHandle, ObspecRangeTransport

__all__ = ["ObspecRangeHandle", "ObspecRangeTransport"]
