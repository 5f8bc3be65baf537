"""Conversion between absolute file paths and file-scheme URLs."""

from __future__ import annotations

import json
import ntpath
import os
import posixpath
from urllib.parse import quote, unquote, urlsplit

_WINDOWS = os.name == "nt"
_PATH_SAFE = "/$&+,:;=@"


def _quoted(path: str) -> str:
    return json.dumps(path, ensure_ascii=False)


def _volume_name(path: str) -> str:
    return ntpath.splitdrive(path)[0]


def _is_abs(path: str, windows: bool) -> bool:
    if not windows:
        return posixpath.isabs(path)
    drive, rest = ntpath.splitdrive(path)
    if not drive:
        return False
    if drive[:2] in ("\\\\", "//"):
        return True
    return rest[:1] in ("\\", "/")


def _to_slash(path: str, windows: bool) -> str:
    return path.replace("\\", "/") if windows else path


def _from_slash(path: str, windows: bool) -> str:
    return path.replace("/", "\\") if windows else path


def _file_url(host: str, path: str) -> str:
    return f"file://{host}{quote(path, safe=_PATH_SAFE)}"


def _check_abs(path: str, windows: bool) -> str:
    if not _is_abs(path, windows):
        raise ValueError(f"path is not absolute {_quoted(path)}")
    return path


def _url_from_file_path(path: str, windows: bool) -> str:
    _check_abs(path, windows)
    volume = _volume_name(path) if windows else ""
    if volume:
        if volume.startswith("\\\\"):
            # \\host\Share\file becomes file://host/Share/file
            rest = _to_slash(path[2:], True)
            host, sep, tail = rest.partition("/")
            if not sep:
                return _file_url(rest, "/")
            return _file_url(host, "/" + tail)
        # C:\path\file becomes file:///C:/path/file
        return _file_url("", "/" + _to_slash(path, True))
    return _file_url("", _to_slash(path, windows))


def _convert_windows_path(host: str, path: str) -> str:
    if not path.startswith("/"):
        raise ValueError(f"path is not absolute {_quoted(path)}")
    path = _from_slash(path, True)
    if host and host != "localhost":
        if _volume_name(host):
            raise ValueError("file URL encodes volume in host field: too few slashes?")
        return "\\\\" + host + path
    volume = _volume_name(path[1:])
    if not volume or volume.startswith("\\\\"):
        raise ValueError("file URL missing drive letter")
    return path[1:]


def _url_to_file_path(url: str, windows: bool) -> str:
    parts = urlsplit(url)
    if parts.scheme != "file":
        raise ValueError("non-file URL")
    host = parts.netloc.rpartition("@")[2]
    if not parts.path.startswith("/"):
        # no path, or an opaque one such as file:c:/path
        if host or not parts.path:
            raise ValueError("file URL missing path")
        return _check_abs(_from_slash(parts.path, windows), windows)

    path = unquote(parts.path)
    if windows:
        path = _convert_windows_path(host, path)
    elif host not in ("", "localhost"):
        raise ValueError("file URL specifies non-local host")
    return _check_abs(path, windows)


def url_from_file_path(path: str | os.PathLike[str]) -> str:
    """Return the file URL of an absolute path; raises ValueError otherwise."""
    return _url_from_file_path(os.fspath(path), _WINDOWS)


def url_to_file_path(url: str) -> str:
    """Return the absolute path a file URL refers to; raises ValueError otherwise."""
    return _url_to_file_path(url, _WINDOWS)