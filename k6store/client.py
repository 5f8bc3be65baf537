"""A client for a remote object store server."""

from __future__ import annotations

from typing import BinaryIO
from urllib.parse import quote, urlsplit, urlunsplit

import requests

from k6store.api import ApiError, InvalidRequestError, RequestFailedError, StoreResponse
from k6store.store import Content, Object, ObjectNotFoundError


class InvalidConfigError(ApiError):
    """The client configuration is invalid."""

    reason = "invalid configuration"


class StoreClient:
    """Accesses objects kept by an object store server."""

    def __init__(self, server: str, session: requests.Session | None = None) -> None:
        try:
            parts = urlsplit(server)
        except ValueError as exc:
            raise InvalidConfigError(str(exc)) from exc
        self.server = parts
        self.session = session if session is not None else requests.Session()

    def _object_url(self, object_id: str) -> str:
        base_path = self.server.path.rstrip("/")
        path = f"{base_path}/store/{quote(object_id, safe='')}"
        return urlunsplit(self.server._replace(path=path, query="", fragment=""))

    def _request(self, method: str, url: str, **kwargs: object) -> requests.Response:
        try:
            return self.session.request(method, url, **kwargs)
        except requests.exceptions.InvalidURL as exc:
            raise InvalidRequestError(str(exc)) from exc
        except requests.RequestException as exc:
            raise RequestFailedError(str(exc)) from exc

    @staticmethod
    def _parse(response: requests.Response) -> Object:
        if response.status_code != requests.codes.ok:
            raise RequestFailedError(f"status {response.status_code} {response.reason}")
        try:
            store_response = StoreResponse.from_json(response.content)
        except ValueError as exc:
            raise RequestFailedError(str(exc)) from exc
        if store_response.error is not None:
            raise store_response.error
        return store_response.obj

    def get(self, object_id: str) -> Object:
        """Return the object's metadata or raise ObjectNotFoundError."""
        with self._request("GET", self._object_url(object_id)) as response:
            if response.status_code == requests.codes.not_found:
                raise ObjectNotFoundError()
            return self._parse(response)

    def put(self, object_id: str, content: Content) -> Object:
        """Upload the content under the id and return its metadata."""
        with self._request(
            "POST",
            self._object_url(object_id),
            data=content,
            headers={"Content-Type": "application/octet-stream"},
        ) as response:
            return self._parse(response)

    def download(self, obj: Object) -> BinaryIO:
        """Open the content at the object's URL; the caller closes it."""
        response = self._request("GET", obj.url, stream=True)
        if response.status_code != requests.codes.ok:
            response.close()
            raise RequestFailedError(f"status {response.status_code} {response.reason}")
        response.raw.decode_content = True
        return response.raw