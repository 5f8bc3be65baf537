import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from k6store.download import (
    DownloadFailedError,
    WritingFileError,
    download,
    parse_log_level,
)

FILE_CONTENT = b"hello, world\n"


class _FileHandler(BaseHTTPRequestHandler):
    def do_GET(self):  # noqa: N802
        if self.path == "/file":
            self.send_response(200)
            self.send_header("Content-Length", str(len(FILE_CONTENT)))
            self.end_headers()
            self.wfile.write(FILE_CONTENT)
        else:
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()

    def log_message(self, format, *args):
        pass


@pytest.fixture
def file_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _FileHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join()


def test_download_file(file_server, tmp_path):
    output = tmp_path / "file"
    download(file_server + "/file", output, timeout=10)
    assert output.read_bytes() == FILE_CONTENT


def test_download_overwrites_existing_file(file_server, tmp_path):
    output = tmp_path / "file"
    output.write_bytes(b"previous content that is longer")
    download(file_server + "/file", output, timeout=10)
    assert output.read_bytes() == FILE_CONTENT


def test_download_non_existing_file(file_server, tmp_path):
    output = tmp_path / "non-existing"
    with pytest.raises(DownloadFailedError):
        download(file_server + "/non-existing", output, timeout=10)
    assert not output.exists()


def test_download_to_non_existing_directory(file_server, tmp_path):
    with pytest.raises(WritingFileError):
        download(file_server + "/file", tmp_path / "non-existing" / "file", timeout=10)


def test_download_invalid_url(tmp_path):
    with pytest.raises(DownloadFailedError) as excinfo:
        download("not a url", tmp_path / "file")
    assert str(excinfo.value).startswith("downloading file failed")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        ("warn", logging.WARNING),
        ("Error", logging.ERROR),
        ("WARN+1", logging.WARNING + 1),
        ("info-2", logging.INFO - 2),
    ],
)
def test_parse_log_level(text, expected):
    assert parse_log_level(text) == expected


@pytest.mark.parametrize("text", ["verbose", "", "INFO+", "INFO+x", "WARN+1-2"])
def test_parse_log_level_invalid(text):
    with pytest.raises(ValueError) as excinfo:
        parse_log_level(text)
    assert str(excinfo.value).startswith("parsing log level from string")