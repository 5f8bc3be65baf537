# k6store

A small object store for build artifacts. Objects are blobs identified by an
id; each stored object reports the hex SHA-256 checksum of its content and a
URL its content can be downloaded from.

## Modules

- `k6store.store` – the `Object` record (`id`, `checksum`, `url`), the
  abstract `ObjectStore` interface (`get`, `put`) and the errors, all
  derived from `StoreError`: `AccessingObjectError`, `CreatingObjectError`,
  `InitializingStoreError`, `InvalidURLError`, `ObjectNotFoundError`,
  `NotSupportedError`, `DuplicateObjectError`.
- `k6store.filestore` – `FileStore`, a store kept in a directory, one
  sub-directory per object holding a `data` file and a `checksum` file.
  `temp_file_store()` returns one under the system's temporary directory
  (`k6build/objectstore`).
- `k6store.lock` – `DirLock`, an advisory lock on a directory held through a
  lock file inside it. `try_lock()` fails at once with `LockedError`;
  `lock(timeout)` retries with a back-off that starts at one second and
  doubles, and a timeout of `0` waits forever. Used as a context manager it
  waits for the lock and releases it on exit.
- `k6store.server` – `StoreServer`, a WSGI application exposing a store:
  - `POST /store/{id}` stores the request body,
  - `GET /store/{id}` returns the object's metadata as JSON,
  - `GET /store/{id}/download` streams the object's content.
- `k6store.client` – `StoreClient`, a client for that server.
- `k6store.api` – the JSON `StoreResponse`, the serializable `ErrorInfo`
  and the client-side errors `InvalidRequestError`, `RequestFailedError` and
  `ObjectStoreAccessError`.
- `k6store.downloader` – `download_object(obj, session=None)` opens an
  object's content from a `file://`, `http://` or `https://` URL.
- `k6store.urls` – `url_from_file_path` and `url_to_file_path`, conversions
  between absolute paths and `file://` URLs (Windows drive and UNC paths
  included when running on Windows).
- `k6store.download` – `download(url, output, timeout=None)` saves a URL's
  content to an executable file, and `parse_log_level` turns `DEBUG`, `INFO`,
  `WARN` or `ERROR` (optionally with an offset such as `INFO+2`) into a
  `logging` level.

## Storing and reading objects

```python
from k6store.filestore import FileStore
from k6store.downloader import download_object

store = FileStore("/var/lib/artifacts")
obj = store.put("k6-v0.50.0-linux-amd64", b"binary content")
print(obj.checksum)   # hex SHA-256 of the content
print(obj.url)        # file:///var/lib/artifacts/k6-v0.50.0-linux-amd64/data

same = store.get("k6-v0.50.0-linux-amd64")
with download_object(same) as content:
    data = content.read()
```

`put` accepts bytes or a readable binary file. Storing an id twice raises
`DuplicateObjectError`; an empty id or one containing `/` raises
`CreatingObjectError`; reading an unknown id raises `ObjectNotFoundError`.

## Serving a store over HTTP

`StoreServer` is a plain WSGI callable, so any WSGI server can host it:

```python
from wsgiref.simple_server import make_server

from k6store.filestore import FileStore
from k6store.server import StoreServer

app = StoreServer(FileStore("/var/lib/artifacts"))
make_server("127.0.0.1", 9000, app).serve_forever()
```

The URL returned for an object points at its `/download` route. When a
`base_url` is given it is built from that, otherwise from the host of each
request. A missing object answers `404`; other store failures are reported
in the JSON body's `Error` field with status `200`.

## Talking to a store server

```python
from k6store.client import StoreClient

client = StoreClient("http://127.0.0.1:9000")
obj = client.put("artifact", b"content")
obj = client.get("artifact")
with client.download(obj) as content:
    data = content.read()
```

Network failures and non-`200` answers raise `RequestFailedError`; a missing
object raises `ObjectNotFoundError`; an error reported by the server in its
response is raised as an `ErrorInfo`.

## What it does not do

The package has no command-line program: a server is started by handing
`StoreServer` to a WSGI server yourself. The only storage backend is the
local file system (`FileStore`), and the server has no authentication.

## Running the tests

Install the `test` extra and run pytest from the project directory.