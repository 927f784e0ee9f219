"""Async HTTP client for the Klarity notes API.

WHY: The sync cycle needs the user's full note set from Klarity. Every way
that request can fail (bad key, moved endpoint, server outage, garbage
body, no network) must come back as a classified error with a message the
user can act on, never as a raw httpx exception.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. KlarityClient is an
async context manager: enter it to get an authenticated client, exit to
close the connection pool. fetch_notes() checks the key locally, issues a
single GET, classifies the status code, then validates the JSON body
against NOTE_SET_SCHEMA with jsonschema.

RULES:
- Always use the async context manager (async with KlarityClient(key) as client:)
- Key checks run before any network I/O: empty → ConfigurationError("missing key"),
  shorter than 32 chars → ConfigurationError("invalid key")
- Status classification order: 401/403, 404, >=500, any other non-200
- A 200 with an unexpected body raises MalformedResponseError
- A body that fails Content-Encoding decoding raises MalformedResponseError
- Any other httpx.RequestError (DNS, refused, timeout) becomes NetworkError
- No retries here; the next trigger is the retry
- The API key is never logged
"""

from __future__ import annotations

import logging

import httpx
import jsonschema

from klarity_sync.api.models import NOTE_SET_SCHEMA, NoteSet
from klarity_sync.config import KLARITY_BASE_URL, KLARITY_TIMEOUT_S, MIN_API_KEY_LENGTH
from klarity_sync.errors import (
    AuthenticationError,
    ConfigurationError,
    EndpointError,
    MalformedResponseError,
    NetworkError,
    ServerError,
    UnexpectedStatusError,
)

logger = logging.getLogger(__name__)

NOTES_PATH = "/notes"


def check_api_key(api_key: str | None) -> str:
    """Validate the API key locally, before any request is made.

    Raises:
        ConfigurationError: Key is empty or shorter than MIN_API_KEY_LENGTH.
    """
    key = (api_key or "").strip()
    if not key:
        raise ConfigurationError(
            "Klarity API key is missing (missing key). Add it in the sync settings."
        )
    if len(key) < MIN_API_KEY_LENGTH:
        raise ConfigurationError(
            "Klarity API key looks wrong (invalid key): expected at least "
            "{} characters, got {}.".format(MIN_API_KEY_LENGTH, len(key))
        )
    return key


def classify_response(resp: httpx.Response) -> NoteSet:
    """Turn an HTTP response into a NoteSet or a classified error.

    Args:
        resp: The response to the notes request.

    Returns:
        The parsed NoteSet for a well-formed 200 response.

    Raises:
        AuthenticationError: 401 or 403.
        EndpointError: 404.
        ServerError: 500 and above.
        UnexpectedStatusError: Any other status that is not 200.
        MalformedResponseError: 200 with a body that is not a notes object.
    """
    status = resp.status_code

    if status in (401, 403):
        raise AuthenticationError(
            status,
            "Klarity rejected the API key (HTTP {}). Check the key in settings.".format(status),
        )
    if status == 404:
        raise EndpointError(
            status,
            "Klarity notes endpoint not found (HTTP 404): the service moved or is unavailable.",
        )
    if status >= 500:
        raise ServerError(
            status,
            "Klarity server error (HTTP {}). Try again later.".format(status),
        )
    if status != 200:
        raise UnexpectedStatusError(
            status,
            "Unexpected response from Klarity (HTTP {}).".format(status),
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise MalformedResponseError(
            "Klarity returned a response that is not valid JSON."
        ) from e

    try:
        jsonschema.validate(instance=data, schema=NOTE_SET_SCHEMA)
    except jsonschema.ValidationError as e:
        raise MalformedResponseError(
            "Klarity returned an unexpected response shape: {}".format(e.message)
        ) from e

    return NoteSet.from_dict(data)


class KlarityClient:
    """Async client for the Klarity notes endpoint.

    WHY: Gives the orchestrator one call, fetch_notes(), with all auth,
    transport, and response-shape handling behind it.

    HOW: Wraps httpx.AsyncClient with Bearer token auth. The transport can
    be swapped (httpx.MockTransport in tests).

    RULES:
    - Use as: async with KlarityClient(api_key) as client: ...
    - base_url defaults to KLARITY_BASE_URL from config
    - timeout defaults to KLARITY_TIMEOUT_S from config
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip()
        self._base_url = (base_url or KLARITY_BASE_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else KLARITY_TIMEOUT_S
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> KlarityClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "KlarityClient must be used as an async context manager: "
                "async with KlarityClient(api_key) as client: ..."
            )
        return self._client

    async def fetch_notes(self) -> NoteSet:
        """Fetch every note for the account.

        Returns:
            NoteSet in the order the server sent them.

        Raises:
            ConfigurationError: Key missing or too short (no request made).
            NetworkError: The request never got a response.
            MalformedResponseError: The body could not be decoded.
            KlaritySyncError: Any classified HTTP or body failure, see
                classify_response().
        """
        check_api_key(self._api_key)
        client = self._ensure_client()

        logger.debug("GET %s%s", self._base_url, NOTES_PATH)
        try:
            resp = await client.get(NOTES_PATH)
        except httpx.DecodingError as e:
            raise MalformedResponseError(
                "Klarity sent a response body that could not be decoded: {}".format(e)
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                "Could not reach Klarity at {}: {}".format(
                    self._base_url, str(e) or type(e).__name__
                )
            ) from e

        note_set = classify_response(resp)
        logger.info("Fetched %d notes from Klarity", len(note_set))
        return note_set


async def fetch_notes(
    api_key: str,
    base_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> NoteSet:
    """One-shot helper: open a client, fetch the notes, close the client."""
    check_api_key(api_key)
    async with KlarityClient(api_key, base_url=base_url, transport=transport) as client:
        return await client.fetch_notes()
