"""Shared test fixtures for the klarity_sync test suite.

WHY: Most test modules need the same sample notes, a throwaway vault, a
settings store with a valid-looking key, and a KlarityClient that talks to
a fake server instead of the network.

HOW: Fixtures build everything under pytest's tmp_path. HTTP is faked with
httpx.MockTransport; FakeKlarity records every request it receives so tests
can assert on request counts and headers.

RULES:
- No test ever reaches the real Klarity API
- VALID_API_KEY is exactly 40 characters, above the 32-character minimum
- The environment's KLARITY_API_KEY is cleared so defaults are predictable
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from klarity_sync.api.client import KlarityClient
from klarity_sync.config import SettingsStore, SyncSettings
from klarity_sync.sync.orchestrator import SyncOrchestrator
from klarity_sync.sync.status import RecordingStatusSink
from klarity_sync.vault.writer import VaultWriter

VALID_API_KEY = "kl_" + "a1b2c3d4" * 4 + "wxyzw"
TEST_BASE_URL = "https://klarity.test/api"

SAMPLE_NOTE: Dict[str, Any] = {
    "id": "1",
    "title": "A",
    "transcription": "x",
    "createdAt": "2024-01-01T00:00:00Z",
    "updatedAt": "2024-01-01T00:00:00Z",
}


def make_note(**overrides: Any) -> Dict[str, Any]:
    """Build a raw note dict, starting from SAMPLE_NOTE."""
    note = dict(SAMPLE_NOTE)
    note.update(overrides)
    return note


class FakeKlarity:
    """A scripted notes endpoint.

    Set ``status``/``body`` (or ``raw_body`` with ``headers``, or
    ``raise_exc``) before the request; inspect ``requests`` afterwards.
    """

    def __init__(self, notes: Optional[List[Dict[str, Any]]] = None) -> None:
        self.status = 200
        self.body: Any = {"notes": list(notes or [])}
        self.raw_body: Optional[bytes] = None
        self.headers: Dict[str, str] = {}
        self.raise_exc: Optional[Exception] = None
        self.requests: List[httpx.Request] = []

    def set_notes(self, notes: List[Dict[str, Any]]) -> None:
        self.body = {"notes": list(notes)}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.raw_body is not None:
            return httpx.Response(self.status, headers=self.headers, content=self.raw_body)
        return httpx.Response(self.status, json=self.body)

    def client_factory(self) -> Callable[[str], KlarityClient]:
        def _factory(api_key: str) -> KlarityClient:
            return KlarityClient(
                api_key,
                base_url=TEST_BASE_URL,
                transport=httpx.MockTransport(self.handler),
            )
        return _factory


@pytest.fixture(autouse=True)
def _clear_klarity_env(monkeypatch):
    """Keep the developer's own Klarity environment out of the tests."""
    monkeypatch.delenv("KLARITY_API_KEY", raising=False)


@pytest.fixture
def fake_klarity():
    return FakeKlarity()


@pytest.fixture
def vault(tmp_path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def store(tmp_path) -> SettingsStore:
    """A SettingsStore with a valid key, persisted under tmp_path."""
    return SettingsStore(
        tmp_path / "settings.json",
        settings=SyncSettings(api_key=VALID_API_KEY),
    )


@pytest.fixture
def sink() -> RecordingStatusSink:
    return RecordingStatusSink()


@pytest.fixture
def orchestrator(store, vault, sink, fake_klarity) -> SyncOrchestrator:
    return SyncOrchestrator(
        settings_store=store,
        writer=VaultWriter(vault),
        status_sink=sink,
        client_factory=fake_klarity.client_factory(),
        status_clear_delay=0.01,
    )
