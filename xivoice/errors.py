"""Error taxonomy for ElevenLabs API failures.

Every failure surfaced by the client is an ``XIVoiceError``. The ``kind``
field tells callers what went wrong; ``status_code`` carries the remote HTTP
status when there was one, and ``message`` the detail text extracted from
the remote error body.
"""

import json
from enum import Enum

import httpx


class ErrorKind(str, Enum):
    """Classification of a failed request."""

    BAD_REQUEST = "bad_request"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    UNPROCESSABLE_ENTITY = "unprocessable_entity"
    API = "api"
    TRANSPORT = "transport"


_STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.AUTHENTICATION,
    404: ErrorKind.NOT_FOUND,
    422: ErrorKind.UNPROCESSABLE_ENTITY,
}


def classify_status(status_code: int) -> ErrorKind:
    """Map a non-success HTTP status to its ``ErrorKind``."""
    return _STATUS_KINDS.get(status_code, ErrorKind.API)


def extract_message(body: str) -> str:
    """Pull a human-readable message out of an ElevenLabs error body.

    The API reports errors as ``{"detail": ...}`` where detail is a string,
    an object with a ``message`` field, or a list of validation items with
    ``msg`` fields. Anything else falls back to the raw body.
    """
    try:
        payload = json.loads(body)
    except ValueError:
        return body

    if not isinstance(payload, dict) or "detail" not in payload:
        return body

    detail = payload["detail"]
    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict):
        message = detail.get("message")
        return str(message) if message is not None else json.dumps(detail)
    if isinstance(detail, list):
        messages = [
            str(item["msg"]) for item in detail if isinstance(item, dict) and "msg" in item
        ]
        if messages:
            return "; ".join(messages)
    return body


class XIVoiceError(Exception):
    """A classified failure from the ElevenLabs API or its transport."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"XIVoiceError(kind={self.kind.value!r}, "
            f"status_code={self.status_code!r}, message={self.message!r})"
        )

    @classmethod
    def from_response(cls, response: httpx.Response) -> "XIVoiceError":
        """Build an error from a non-success response whose body was read."""
        return cls(
            classify_status(response.status_code),
            extract_message(response.text),
            status_code=response.status_code,
        )

    @classmethod
    def from_transport(cls, exc: httpx.RequestError) -> "XIVoiceError":
        """Build an error from a connection, protocol, decoding or timeout failure."""
        return cls(ErrorKind.TRANSPORT, str(exc) or type(exc).__name__)
