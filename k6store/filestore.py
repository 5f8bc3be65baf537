"""An object store kept in a directory of the local file system."""

from __future__ import annotations

import hashlib
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager

from k6store.lock import DirLock, LockedError, LockFailedError
from k6store.store import (
    AccessingObjectError,
    Content,
    CreatingObjectError,
    DuplicateObjectError,
    InitializingStoreError,
    Object,
    ObjectNotFoundError,
    ObjectStore,
)
from k6store.urls import url_from_file_path

_DATA_FILE = "data"
_CHECKSUM_FILE = "checksum"
_CHUNK_SIZE = 64 * 1024


def _chunks(content: Content) -> Iterator[bytes]:
    if isinstance(content, (bytes, bytearray, memoryview)):
        yield bytes(content)
        return
    while True:
        chunk = content.read(_CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


class FileStore(ObjectStore):
    """Objects stored as ``<directory>/<id>/data`` with a ``checksum`` file beside it."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = os.path.abspath(os.fspath(directory))
        try:
            os.makedirs(self.directory, mode=0o750, exist_ok=True)
        except OSError as exc:
            raise InitializingStoreError(str(exc)) from exc

    @contextmanager
    def _locked(self, object_id: str, error: type[Exception]) -> Iterator[None]:
        lock = DirLock(os.path.join(self.directory, object_id))
        try:
            lock.lock(0)
        except (LockedError, LockFailedError) as exc:
            raise error(str(exc)) from exc
        try:
            yield
        finally:
            try:
                lock.unlock()
            except Exception:  # noqa: BLE001 - releasing is best effort
                pass

    def put(self, object_id: str, content: Content) -> Object:
        """Store the content; fails if an object with this id already exists."""
        if not object_id:
            raise CreatingObjectError("id cannot be empty")
        if "/" in object_id:
            raise CreatingObjectError("id cannot contain '/'")

        object_dir = os.path.join(self.directory, object_id)
        try:
            os.stat(object_dir)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise DuplicateObjectError(repr(object_id)) from exc
        else:
            raise DuplicateObjectError(repr(object_id))

        try:
            os.makedirs(object_dir, mode=0o750, exist_ok=True)
        except OSError as exc:
            raise CreatingObjectError(str(exc)) from exc

        data_path = os.path.join(object_dir, _DATA_FILE)
        with self._locked(object_id, CreatingObjectError):
            digest = hashlib.sha256()
            try:
                with open(data_path, "wb") as data_file:
                    for chunk in _chunks(content):
                        data_file.write(chunk)
                        digest.update(chunk)
            except OSError as exc:
                raise CreatingObjectError(str(exc)) from exc

            checksum = digest.hexdigest()
            try:
                with open(os.path.join(object_dir, _CHECKSUM_FILE), "w", encoding="ascii") as out:
                    out.write(checksum)
            except OSError as exc:
                raise CreatingObjectError(str(exc)) from exc

        return Object(id=object_id, checksum=checksum, url=url_from_file_path(data_path))

    def get(self, object_id: str) -> Object:
        """Return the metadata of a stored object or raise ObjectNotFoundError."""
        object_dir = os.path.join(self.directory, object_id)
        try:
            os.stat(object_dir)
        except FileNotFoundError as exc:
            raise ObjectNotFoundError(f"({object_id})") from exc
        except OSError as exc:
            raise AccessingObjectError(str(exc)) from exc

        with self._locked(object_id, CreatingObjectError):
            try:
                with open(os.path.join(object_dir, _CHECKSUM_FILE), encoding="ascii") as src:
                    checksum = src.read()
            except OSError as exc:
                raise AccessingObjectError(str(exc)) from exc

            try:
                url = url_from_file_path(os.path.join(object_dir, _DATA_FILE))
            except ValueError as exc:
                raise AccessingObjectError(str(exc)) from exc

        return Object(id=object_id, checksum=checksum, url=url)


def temp_file_store() -> FileStore:
    """Return a file store in the system's temporary directory."""
    return FileStore(os.path.join(tempfile.gettempdir(), "k6build", "objectstore"))