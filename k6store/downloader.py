"""Fetching the content of a stored object from its URL."""

from __future__ import annotations

import os
from typing import BinaryIO
from urllib.parse import urlsplit

import requests

from k6store.store import (
    AccessingObjectError,
    InvalidURLError,
    Object,
    ObjectNotFoundError,
)
from k6store.urls import url_to_file_path


def _sanitize_path(path: str) -> str:
    path = os.path.normpath(path)
    if not os.path.isabs(path):
        raise InvalidURLError(f"invalid path {path}")
    return path


def _open_file(url: str) -> BinaryIO:
    try:
        path = url_to_file_path(url)
    except ValueError as exc:
        raise InvalidURLError(str(exc)) from exc
    path = _sanitize_path(path)
    try:
        return open(path, "rb")
    except FileNotFoundError as exc:
        raise ObjectNotFoundError() from exc
    except OSError as exc:
        raise AccessingObjectError(str(exc)) from exc


def _open_http(url: str, session: requests.Session | None) -> BinaryIO:
    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, stream=True)
    except requests.RequestException as exc:
        raise AccessingObjectError(str(exc)) from exc

    if response.status_code == requests.codes.not_found:
        response.close()
        raise ObjectNotFoundError()
    if response.status_code != requests.codes.ok:
        response.close()
        raise AccessingObjectError(
            f"HTTP response: {response.status_code} {response.reason}"
        )
    response.raw.decode_content = True
    return response.raw


def download_object(obj: Object, session: requests.Session | None = None) -> BinaryIO:
    """Open the object's content for reading; the caller closes it."""
    try:
        scheme = urlsplit(obj.url).scheme
    except ValueError as exc:
        raise AccessingObjectError(str(exc)) from exc

    if scheme == "file":
        return _open_file(obj.url)
    if scheme in ("http", "https"):
        return _open_http(obj.url, session)
    raise InvalidURLError(f"unsupported schema: {scheme}")