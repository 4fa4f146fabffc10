"""Identity and size of a remote object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from obspec import Head


@dataclass(frozen=True)
class ObjectHandle:
    """
    A remote object pinned to a known size and, optionally, a generation.

    Parameters
    ----------
    path
        The path to the object within its store.
    size
        Size of the object in bytes.
    e_tag
        Entity tag reported by the store, if any.
    version
        Version (generation) token. When set, range requests are pinned to
        this version of the object.
    store_id
        Optional label for the store or bucket, used in messages only.
    """

    path: str
    size: int
    e_tag: str | None = None
    version: str | None = None
    store_id: str | None = None

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"Object size must be non-negative, got {self.size}")

    @classmethod
    def from_head(
        cls, store: Head, path: str, *, store_id: str | None = None
    ) -> ObjectHandle:
        """
        Create a handle from the metadata returned by [`head()`][obspec.Head].

        Parameters
        ----------
        store
            Any object implementing [Head][obspec.Head].
        path
            The path to the object within the store.
        store_id
            Optional label for the store, used in messages only.
        """
        meta = store.head(path)
        return cls(
            path=path,
            size=meta["size"],
            e_tag=meta.get("e_tag"),
            version=meta.get("version"),
            store_id=store_id,
        )

    def __str__(self) -> str:
        name = f"{self.store_id}/{self.path}" if self.store_id else self.path
        if self.version is not None:
            return f"{name}#{self.version}"
        return name


__all__ = ["ObjectHandle"]
