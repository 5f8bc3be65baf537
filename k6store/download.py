"""Downloading files over HTTP and parsing log levels."""

from __future__ import annotations

import logging
import os
import re

import requests

_CHUNK_SIZE = 64 * 1024


class _DetailError(Exception):
    reason = ""

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(f"{self.reason} {detail}" if detail else self.reason)


class DownloadFailedError(_DetailError):
    """The file could not be fetched."""

    reason = "downloading file failed"


class WritingFileError(_DetailError):
    """The output file could not be opened or written."""

    reason = "opening output file failed"


def download(url: str, output: str | os.PathLike[str], timeout: float | None = None) -> None:
    """Fetch ``url`` and save its content as an executable file at ``output``."""
    try:
        response = requests.get(url, stream=True, timeout=timeout)
    except requests.RequestException as exc:
        raise DownloadFailedError(str(exc)) from exc

    with response:
        if response.status_code != requests.codes.ok:
            raise DownloadFailedError(f"status {response.status_code}")

        flags = os.O_TRUNC | os.O_WRONLY | os.O_CREAT | getattr(os, "O_BINARY", 0)
        try:
            fd = os.open(output, flags, 0o700)
        except OSError as exc:
            raise WritingFileError(str(exc)) from exc

        try:
            with os.fdopen(fd, "wb") as out:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    out.write(chunk)
        except (OSError, requests.RequestException) as exc:
            raise WritingFileError(str(exc)) from exc


_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}
_LEVEL_PATTERN = re.compile(r"(?P<name>[^+-]*)(?P<offset>[+-]\d+)?")


def parse_log_level(level_string: str) -> int:
    """Parse DEBUG, INFO, WARN or ERROR, optionally followed by a signed offset."""
    match = _LEVEL_PATTERN.fullmatch(level_string)
    if match is None:
        raise ValueError(
            f"parsing log level from string: invalid offset in {level_string!r}"
        )
    level = _LEVELS.get(match["name"].upper())
    if level is None:
        raise ValueError(
            f"parsing log level from string: unknown level name {match['name']!r}"
        )
    return level + int(match["offset"] or 0)