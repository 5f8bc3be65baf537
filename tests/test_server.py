import hashlib
import io
import json
import logging
import threading
from wsgiref.simple_server import WSGIRequestHandler, make_server
from wsgiref.util import setup_testing_defaults

import pytest

from k6store.client import StoreClient
from k6store.filestore import FileStore
from k6store.server import StoreServer


def _call(app, method, path, body=b""):
    environ = {
        "REQUEST_METHOD": method,
        "PATH_INFO": path,
        "wsgi.input": io.BytesIO(body),
        "CONTENT_LENGTH": str(len(body)) if body else "",
    }
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers):
        captured["status"] = int(status.split(" ", 1)[0])
        captured["headers"] = dict(headers)

    result = app(environ, start_response)
    try:
        content = b"".join(result)
    finally:
        close = getattr(result, "close", None)
        if close is not None:
            close()
    return captured["status"], captured["headers"], content


@pytest.fixture
def store(tmp_path):
    file_store = FileStore(tmp_path / "store")
    file_store.put("object1", b"content object 1")
    return file_store


@pytest.fixture
def app(store):
    return StoreServer(store)


@pytest.mark.parametrize(
    "object_id,status",
    [("object1", 200), ("not_found", 404)],
)
def test_get(app, object_id, status):
    code, headers, body = _call(app, "GET", f"/store/{object_id}")
    assert code == status
    assert headers["Content-Type"] == "application/json"
    data = json.loads(body)
    if status == 200:
        assert data["Error"] is None
        assert data["Object"]["ID"] == object_id
    else:
        assert data["Error"] is not None
        assert data["Error"]["error"] == "store access failed"


def test_get_returns_checksum_and_download_url(app):
    _, _, body = _call(app, "GET", "/store/object1")
    data = json.loads(body)["Object"]
    assert data["Checksum"] == hashlib.sha256(b"content object 1").hexdigest()
    assert data["URL"] == "http://127.0.0.1/store/object1/download"


def test_get_with_base_url(store):
    app = StoreServer(store, base_url="https://store.example.com/base/")
    _, _, body = _call(app, "GET", "/store/object1")
    assert json.loads(body)["Object"]["URL"] == (
        "https://store.example.com/base/store/object1/download"
    )


def test_put(app):
    code, _, body = _call(app, "POST", "/store/object2", b"object 2 content")
    assert code == 200
    data = json.loads(body)
    assert data["Error"] is None
    assert data["Object"]["ID"] == "object2"
    assert data["Object"]["Checksum"] == hashlib.sha256(b"object 2 content").hexdigest()


def test_put_duplicate_reports_error(store, caplog):
    app = StoreServer(store, log=logging.getLogger("test.storeserver"))
    with caplog.at_level(logging.ERROR, logger="test.storeserver"):
        code, _, body = _call(app, "POST", "/store/object1", b"new content")
    assert code == 200
    error = json.loads(body)["Error"]
    assert error["error"] == "store access failed"
    assert "duplicate object" in error["reason"]["error"]
    assert any("store access failed" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize(
    "object_id,status,content",
    [("object1", 200, b"content object 1"), ("not_found", 404, b"")],
)
def test_download(app, object_id, status, content):
    code, headers, body = _call(app, "GET", f"/store/{object_id}/download")
    assert code == status
    assert body == content
    if status == 200:
        assert headers["ETag"] == object_id
        assert headers["Content-Type"] == "application/octet-stream"


def test_empty_id_is_bad_request(app):
    code, _, body = _call(app, "GET", "/store/")
    assert code == 400
    assert json.loads(body)["Error"]["reason"]["error"] == "object id is required"


def test_unknown_path_not_found(app):
    code, _, _ = _call(app, "GET", "/other")
    assert code == 404


def test_wrong_method_not_allowed(app):
    code, headers, _ = _call(app, "POST", "/store/object1/download")
    assert code == 405
    assert headers["Allow"] == "GET, HEAD"


def test_direct_methods(app):
    environ = {}
    setup_testing_defaults(environ)
    environ["PATH_INFO"] = "/store/object1"
    reply = app.get("object1", environ)
    assert reply.status == 200
    assert app.download("missing").status == 404


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):
        pass


def test_round_trip_over_http(tmp_path):
    app = StoreServer(FileStore(tmp_path / "store"))
    httpd = make_server("127.0.0.1", 0, app, handler_class=_QuietHandler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        client = StoreClient(f"http://127.0.0.1:{httpd.server_port}")
        created = client.put("object1", b"object 1 content")
        assert created.id == "object1"
        fetched = client.get("object1")
        assert fetched.checksum == hashlib.sha256(b"object 1 content").hexdigest()
        assert fetched.url == f"http://127.0.0.1:{httpd.server_port}/store/object1/download"
        content = client.download(fetched)
        try:
            assert content.read() == b"object 1 content"
        finally:
            content.close()
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join()