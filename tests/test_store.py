import dataclasses

import pytest

from k6store.store import (
    AccessingObjectError,
    CreatingObjectError,
    DuplicateObjectError,
    InitializingStoreError,
    InvalidURLError,
    NotSupportedError,
    Object,
    ObjectNotFoundError,
    ObjectStore,
    StoreError,
)


class MemoryStore(ObjectStore):
    def __init__(self):
        self.objects = {}

    def get(self, object_id):
        if object_id not in self.objects:
            raise ObjectNotFoundError(object_id)
        return self.objects[object_id]

    def put(self, object_id, content):
        if object_id in self.objects:
            raise DuplicateObjectError(object_id)
        data = content if isinstance(content, bytes) else content.read()
        obj = Object(id=object_id, checksum=str(len(data)), url=f"mem://{object_id}")
        self.objects[object_id] = obj
        return obj


@pytest.mark.parametrize(
    "error_class, message",
    [
        (AccessingObjectError, "accessing object"),
        (CreatingObjectError, "creating object"),
        (InitializingStoreError, "initializing store"),
        (InvalidURLError, "invalid object URL"),
        (ObjectNotFoundError, "object not found"),
        (NotSupportedError, "not supported"),
        (DuplicateObjectError, "duplicate object"),
    ],
)
def test_error_messages(error_class, message):
    error = error_class()
    assert str(error) == message
    assert isinstance(error, StoreError)


def test_error_detail_is_appended():
    error = CreatingObjectError("id cannot be empty")
    assert str(error).startswith("creating object")
    assert "id cannot be empty" in str(error)
    assert error.detail == "id cannot be empty"


def test_object_str_contains_fields():
    text = str(Object(id="abc", checksum="deadbeef", url="file:///tmp/abc"))
    assert "id: abc" in text
    assert "checksum: deadbeef" in text
    assert "url: file:///tmp/abc" in text


def test_object_defaults_are_empty():
    obj = Object()
    assert (obj.id, obj.checksum, obj.url) == ("", "", "")


def test_object_is_immutable():
    obj = Object(id="abc")
    with pytest.raises(dataclasses.FrozenInstanceError):
        obj.id = "other"  # type: ignore[misc]
    assert obj.id == "abc"
    assert obj == Object(id="abc")


def test_object_store_is_abstract():
    with pytest.raises(TypeError):
        ObjectStore()  # type: ignore[abstract]


def test_object_store_implementation_round_trip():
    store = MemoryStore()
    stored = store.put("object", b"content")
    fetched = store.get("object")
    assert fetched == Object(id="object", checksum="7", url="mem://object")
    assert "id: object" in str(fetched)
    assert "checksum: 7" in str(fetched)
    assert "url: mem://object" in str(stored)
    with pytest.raises(DuplicateObjectError) as duplicate:
        store.put("object", b"other")
    assert str(duplicate.value).startswith("duplicate object")
    assert duplicate.value.detail == "object"
    with pytest.raises(ObjectNotFoundError) as missing:
        store.get("missing")
    assert str(missing.value).startswith("object not found")
    assert missing.value.detail == "missing"