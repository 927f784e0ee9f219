"""Classified error taxonomy for the sync cycle.

WHY: A failed sync has to tell the user what to do next: fix the API key,
wait for the service, or check local disk permissions. Raw httpx or OS
errors say none of that, so every failure is re-raised as one of these
types with a display-ready message.

HOW: KlaritySyncError is the common base and carries ``message``. HTTP
status failures share HTTPStatusFailure, which also carries
``status_code``. WriteError carries the vault path of the note that failed.

RULES:
- Every message must be readable as-is in a notice or on stderr
- Fetch-side errors abort the whole cycle; WriteError is per note
"""

from __future__ import annotations


class KlaritySyncError(Exception):
    """Base class for all classified sync failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(KlaritySyncError):
    """The API key or settings are missing or invalid. The user must fix settings."""


class HTTPStatusFailure(KlaritySyncError):
    """Base for failures derived from a non-200 HTTP response."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message)


class AuthenticationError(HTTPStatusFailure):
    """The server rejected the API key (401/403)."""


class EndpointError(HTTPStatusFailure):
    """The notes endpoint was not found (404)."""


class ServerError(HTTPStatusFailure):
    """The server failed (5xx). Transient, safe to retry on the next trigger."""


class UnexpectedStatusError(HTTPStatusFailure):
    """Any other non-200 response."""


class MalformedResponseError(KlaritySyncError):
    """A 200 response whose body does not have the expected ``notes`` shape."""


class NetworkError(KlaritySyncError):
    """DNS failure, refused connection, timeout, or other transport error."""


class WriteError(KlaritySyncError):
    """Writing one note into the vault failed."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)
