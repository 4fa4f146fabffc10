"""Configuration for read channels."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any


class AccessPattern(Enum):
    """How a channel expects an object to be read."""

    SEQUENTIAL = "sequential"
    """Every range request runs to the end of the object."""

    RANDOM = "random"
    """Range requests cover only what is asked for, plus a minimum size."""

    AUTO = "auto"
    """Start sequential and adapt to the observed seeks."""


FILE_ACCESS_PATTERN_KEY = "read.adaptive-range.file-access-pattern"
MIN_RANGE_REQUEST_SIZE_KEY = "read.adaptive-range.min-range-request-size-bytes"
INPLACE_SEEK_LIMIT_KEY = "read.adaptive-range.inplace-seek-limit-bytes"
SEQUENTIAL_RANGE_READ_THRESHOLD_KEY = (
    "read.adaptive-range.sequential-range-read-threshold"
)
ADAPTIVE_RANGE_READ_ENABLED_KEY = "read.adaptive-range.enabled"

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class ReadOptions:
    """
    Immutable options shared by the read channels.

    Parameters
    ----------
    access_pattern
        Access pattern mode. Strings such as ``"auto"`` are accepted and
        converted to [AccessPattern][obspec_adaptive.options.AccessPattern].
    min_range_request_size
        Smallest range request issued in random mode, in bytes. Must be
        positive.
    inplace_seek_limit
        Largest forward seek, in bytes, that is served by discarding bytes
        from the open range instead of opening a new one.
    sequential_range_read_threshold
        Number of back-to-back range requests after which ``AUTO`` mode
        switches from random to sequential reads.
    adaptive_range_read_enabled
        Use [AdaptiveReadChannel][obspec_adaptive.channels.AdaptiveReadChannel]
        when true, [SimpleReadChannel][obspec_adaptive.channels.SimpleReadChannel]
        otherwise.
    """

    access_pattern: AccessPattern = AccessPattern.AUTO
    min_range_request_size: int = 2 * 1024 * 1024
    inplace_seek_limit: int = 8 * 1024 * 1024
    sequential_range_read_threshold: int = 1
    adaptive_range_read_enabled: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.access_pattern, AccessPattern):
            try:
                pattern = AccessPattern(str(self.access_pattern).lower())
            except ValueError:
                valid = ", ".join(p.value for p in AccessPattern)
                raise ValueError(
                    f"Invalid access pattern {self.access_pattern!r}, "
                    f"expected one of: {valid}"
                ) from None
            # frozen dataclass
            object.__setattr__(self, "access_pattern", pattern)

        for name in (
            "min_range_request_size",
            "inplace_seek_limit",
            "sequential_range_read_threshold",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

        if self.min_range_request_size == 0:
            raise ValueError("min_range_request_size must be greater than zero")

    @classmethod
    def from_mapping(cls, options: Mapping[str, str], prefix: str = "") -> ReadOptions:
        """
        Build options from a flat string mapping.

        Keys are looked up as ``prefix + key``; keys that are not recognised
        are ignored and missing keys keep their defaults.

        Parameters
        ----------
        options
            Mapping of option names to string values, e.g. the properties of
            a host query engine.
        prefix
            Prefix prepended to every recognised key, e.g. ``"gs."``.

        Returns
        -------
        ReadOptions
            The parsed options.

        Examples
        --------
        ```python
        options = ReadOptions.from_mapping(
            {"gs.read.adaptive-range.file-access-pattern": "random"},
            prefix="gs.",
        )
        assert options.access_pattern is AccessPattern.RANDOM
        ```
        """
        kwargs: dict[str, Any] = {}

        def lookup(key: str) -> str | None:
            return options.get(prefix + key)

        if (value := lookup(FILE_ACCESS_PATTERN_KEY)) is not None:
            kwargs["access_pattern"] = value.strip()
        for key, name in (
            (MIN_RANGE_REQUEST_SIZE_KEY, "min_range_request_size"),
            (INPLACE_SEEK_LIMIT_KEY, "inplace_seek_limit"),
            (SEQUENTIAL_RANGE_READ_THRESHOLD_KEY, "sequential_range_read_threshold"),
        ):
            if (value := lookup(key)) is not None:
                kwargs[name] = _parse_int(prefix + key, value)
        if (value := lookup(ADAPTIVE_RANGE_READ_ENABLED_KEY)) is not None:
            kwargs["adaptive_range_read_enabled"] = _parse_bool(
                prefix + ADAPTIVE_RANGE_READ_ENABLED_KEY, value
            )

        return cls(**kwargs)

    def replace(self, **changes: Any) -> ReadOptions:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Return the options as a plain dictionary."""
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result["access_pattern"] = self.access_pattern.value
        return result


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ValueError(f"{key}={value!r} is not an integer") from None


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{key}={value!r} is not a boolean")


__all__ = ["AccessPattern", "ReadOptions"]
