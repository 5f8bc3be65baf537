"""A WSGI application serving an object store over HTTP."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from http import HTTPStatus
from typing import Any, BinaryIO, NamedTuple
from urllib.parse import SplitResult, quote, urlsplit, urlunsplit

import requests

from k6store.api import ErrorInfo, InvalidRequestError, ObjectStoreAccessError, StoreResponse
from k6store.downloader import download_object
from k6store.store import Object, ObjectNotFoundError, ObjectStore

_CHUNK_SIZE = 64 * 1024
_PATH_SAFE = "/$&+,:;=@"
_JSON_HEADERS = [("Content-Type", "application/json")]

_discard_log = logging.Logger("k6store.server")
_discard_log.addHandler(logging.NullHandler())


class _Reply(NamedTuple):
    status: int
    headers: list[tuple[str, str]]
    body: Iterable[bytes]


def _json_reply(status: int, response: StoreResponse) -> _Reply:
    body = (response.to_json() + "\n").encode("utf-8")
    return _Reply(status, list(_JSON_HEADERS), [body])


def _text_reply(status: int, text: str, headers: list[tuple[str, str]] | None = None) -> _Reply:
    all_headers = [("Content-Type", "text/plain; charset=utf-8"), *(headers or [])]
    return _Reply(status, all_headers, [(text + "\n").encode("utf-8")])


def _wrapped(error: Exception, cause: BaseException) -> ErrorInfo:
    return ErrorInfo(str(error), ErrorInfo.from_exception(cause))


def _wsgi_str(value: str) -> str:
    return value.encode("latin-1").decode("utf-8", errors="replace")


def _request_path(environ: dict[str, Any]) -> str:
    return _wsgi_str(environ.get("PATH_INFO", "") or "/")


def _match(path: str) -> tuple[str, str] | None:
    prefix = "/store/"
    if not path.startswith(prefix):
        return None
    rest = path[len(prefix):]
    if "/" not in rest:
        return "object", rest
    object_id, _, tail = rest.partition("/")
    if tail == "download":
        return "download", object_id
    return None


def _read_body(environ: dict[str, Any]) -> bytes:
    stream = environ["wsgi.input"]
    try:
        length = int(environ.get("CONTENT_LENGTH") or "")
    except ValueError:
        length = -1
    if length > 0:
        return stream.read(length)
    if length < 0 and environ.get("wsgi.input_terminated"):
        return stream.read()
    return b""


def _stream(content: BinaryIO) -> Iterator[bytes]:
    try:
        while chunk := content.read(_CHUNK_SIZE):
            yield chunk
    finally:
        content.close()


class StoreServer:
    """Serves GET and POST on /store/{id} and GET on /store/{id}/download."""

    def __init__(
        self,
        store: ObjectStore,
        base_url: str | None = None,
        log: logging.Logger | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._store = store
        self._log = log if log is not None else _discard_log
        self._session = session
        self._base_url: SplitResult | None = None
        if base_url:
            try:
                self._base_url = urlsplit(base_url)
            except ValueError as exc:
                raise ValueError(f"invalid configuration {exc}") from exc

    def __call__(
        self, environ: dict[str, Any], start_response: Callable[..., Any]
    ) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET").upper()
        route = _match(_request_path(environ))
        if route is None:
            reply = _text_reply(HTTPStatus.NOT_FOUND, "404 page not found")
        else:
            kind, object_id = route
            allowed = ("GET", "HEAD") if kind == "download" else ("GET", "HEAD", "POST")
            if method not in allowed:
                reply = _text_reply(
                    HTTPStatus.METHOD_NOT_ALLOWED,
                    "Method Not Allowed",
                    [("Allow", ", ".join(allowed))],
                )
            elif kind == "download":
                reply = self.download(object_id)
            elif method == "POST":
                reply = self.store(object_id, environ)
            else:
                reply = self.get(object_id, environ)

        status = HTTPStatus(reply.status)
        start_response(f"{status.value} {status.phrase}", reply.headers)
        if method == "HEAD":
            close = getattr(reply.body, "close", None)
            if close is not None:
                close()
            return []
        return reply.body

    def _download_url(self, object_id: str, environ: dict[str, Any]) -> str:
        if self._base_url is not None:
            base_path = self._base_url.path.rstrip("/")
            path = f"{base_path}/store/{quote(object_id, safe='')}/download"
            return urlunsplit(self._base_url._replace(path=path))

        scheme = environ.get("wsgi.url_scheme", "http")
        host = environ.get("HTTP_HOST")
        if not host:
            host = environ.get("SERVER_NAME", "")
            port = environ.get("SERVER_PORT", "")
            default_port = "443" if scheme == "https" else "80"
            if port and port != default_port:
                host = f"{host}:{port}"
        path = _wsgi_str(environ.get("SCRIPT_NAME", "")) + _request_path(environ)
        path = path.rstrip("/") + "/download"
        return f"{scheme}://{host}{quote(path, safe=_PATH_SAFE)}"

    def get(self, object_id: str, environ: dict[str, Any]) -> _Reply:
        """Answer with the object's metadata and its download URL."""
        if not object_id:
            response = StoreResponse(
                error=ErrorInfo(InvalidRequestError.reason, ErrorInfo("object id is required"))
            )
            self._log.error(str(response.error))
            return _json_reply(HTTPStatus.BAD_REQUEST, response)

        try:
            found = self._store.get(object_id)
        except Exception as exc:  # noqa: BLE001 - every failure is reported to the caller
            status = HTTPStatus.OK
            if isinstance(exc, ObjectNotFoundError):
                self._log.debug(str(exc))
                status = HTTPStatus.NOT_FOUND
            response = StoreResponse(error=_wrapped(ObjectStoreAccessError(), exc))
            return _json_reply(status, response)

        obj = Object(
            id=object_id,
            checksum=found.checksum,
            url=self._download_url(object_id, environ),
        )
        return _json_reply(HTTPStatus.OK, StoreResponse(obj=obj))

    def store(self, object_id: str, environ: dict[str, Any]) -> _Reply:
        """Store the request body under the id and answer with its metadata."""
        if not object_id:
            response = StoreResponse(
                error=ErrorInfo(InvalidRequestError.reason, ErrorInfo("object id is required"))
            )
            self._log.error(str(response.error))
            return _json_reply(HTTPStatus.BAD_REQUEST, response)

        try:
            created = self._store.put(object_id, _read_body(environ))
        except Exception as exc:  # noqa: BLE001 - every failure is reported to the caller
            response = StoreResponse(error=_wrapped(ObjectStoreAccessError(), exc))
            self._log.error(str(response.error))
            return _json_reply(HTTPStatus.OK, response)

        obj = Object(
            id=object_id,
            checksum=created.checksum,
            url=self._download_url(object_id, environ),
        )
        return _json_reply(HTTPStatus.OK, StoreResponse(obj=obj))

    def download(self, object_id: str) -> _Reply:
        """Stream the object's content."""
        if not object_id:
            return _Reply(HTTPStatus.BAD_REQUEST, [], [])

        try:
            found = self._store.get(object_id)
        except ObjectNotFoundError:
            return _Reply(HTTPStatus.NOT_FOUND, [], [])
        except Exception:  # noqa: BLE001 - any other failure is a server error
            return _Reply(HTTPStatus.INTERNAL_SERVER_ERROR, [], [])

        try:
            content = download_object(found, self._session)
        except Exception:  # noqa: BLE001 - any failure is a server error
            return _Reply(HTTPStatus.INTERNAL_SERVER_ERROR, [], [])

        headers = [("Content-Type", "application/octet-stream"), ("ETag", found.id)]
        return _Reply(HTTPStatus.OK, headers, _stream(content))