"""Object model and interface of an object store."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import BinaryIO, Union

Content = Union[bytes, BinaryIO]


class StoreError(Exception):
    """Base class for object store errors."""

    reason = "object store error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        message = f"{self.reason}: {detail}" if detail else self.reason
        super().__init__(message)


class AccessingObjectError(StoreError):
    """An object exists but could not be read."""

    reason = "accessing object"


class CreatingObjectError(StoreError):
    """An object could not be created."""

    reason = "creating object"


class InitializingStoreError(StoreError):
    """The store could not be initialized."""

    reason = "initializing store"


class InvalidURLError(StoreError):
    """An object's URL is malformed or unsupported."""

    reason = "invalid object URL"


class ObjectNotFoundError(StoreError):
    """The requested object does not exist."""

    reason = "object not found"


class NotSupportedError(StoreError):
    """The operation is not supported by the store."""

    reason = "not supported"


class DuplicateObjectError(StoreError):
    """An object with the same id already exists."""

    reason = "duplicate object"


@dataclass(frozen=True)
class Object:
    """Metadata of a stored object; ``url`` points at its content."""

    id: str = ""
    checksum: str = ""
    url: str = ""

    def __str__(self) -> str:
        return f"id: {self.id} checksum: {self.checksum} url: {self.url}"


class ObjectStore(abc.ABC):
    """A store of immutable blobs addressed by id."""

    @abc.abstractmethod
    def get(self, object_id: str) -> Object:
        """Return the object's metadata or raise ObjectNotFoundError."""

    @abc.abstractmethod
    def put(self, object_id: str, content: Content) -> Object:
        """Store the content under the id and return its metadata."""