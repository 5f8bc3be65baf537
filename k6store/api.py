"""Messages exchanged with an object store server."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from k6store.store import Object


class ApiError(Exception):
    """Base class for store API errors."""

    reason = "store api error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        message = f"{self.reason}: {detail}" if detail else self.reason
        super().__init__(message)


class InvalidRequestError(ApiError):
    """The request could not be processed due to erroneous parameters."""

    reason = "invalid request"


class RequestFailedError(ApiError):
    """The request failed, probably due to a network error."""

    reason = "request failed"


class ObjectStoreAccessError(ApiError):
    """The access to the store failed."""

    reason = "store access failed"


class ErrorInfo(Exception):
    """A serializable error together with the chain of its reasons."""

    def __init__(self, error: str, reason: ErrorInfo | None = None) -> None:
        super().__init__(error)
        self.error = error
        self.reason = reason

    def __str__(self) -> str:
        if self.reason is None:
            return self.error
        return f"{self.error}: {self.reason}"

    def __repr__(self) -> str:
        return f"ErrorInfo(error={self.error!r}, reason={self.reason!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorInfo):
            return NotImplemented
        return self.error == other.error and self.reason == other.reason

    def __hash__(self) -> int:
        return hash((self.error, self.reason))

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorInfo:
        """Build an ErrorInfo from an exception and its explicit causes."""
        if isinstance(exc, ErrorInfo):
            return exc
        message = str(exc) or type(exc).__name__
        cause = exc.__cause__
        return cls(message, cls.from_exception(cause) if cause is not None else None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"error": self.error}
        if self.reason is not None:
            data["reason"] = self.reason.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> ErrorInfo:
        if not isinstance(data, dict) or not isinstance(data.get("error"), str):
            raise ValueError(f"invalid error description: {data!r}")
        reason = data.get("reason")
        return cls(data["error"], cls.from_dict(reason) if reason is not None else None)


@dataclass
class StoreResponse:
    """The response to a store server request."""

    error: ErrorInfo | None = None
    obj: Object = field(default_factory=Object)

    def to_json(self) -> str:
        return json.dumps(
            {
                "Error": self.error.to_dict() if self.error is not None else None,
                "Object": {
                    "ID": self.obj.id,
                    "Checksum": self.obj.checksum,
                    "URL": self.obj.url,
                },
            }
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> StoreResponse:
        """Parse a response; raises ValueError if it is malformed."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("store response must be a JSON object")
        error_data = data.get("Error")
        object_data = data.get("Object") or {}
        if not isinstance(object_data, dict):
            raise ValueError("store response object must be a JSON object")
        fields = {}
        for key, name in (("ID", "id"), ("Checksum", "checksum"), ("URL", "url")):
            value = object_data.get(key, "")
            if not isinstance(value, str):
                raise ValueError(f"store response field {key} must be a string")
            fields[name] = value
        error = ErrorInfo.from_dict(error_data) if error_data is not None else None
        return cls(error=error, obj=Object(**fields))