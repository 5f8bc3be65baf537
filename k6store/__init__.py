"""Object store for build artifacts: file backend, directory locks, HTTP client and WSGI server."""

__version__ = "0.1.0"