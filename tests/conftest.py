"""Shared fixtures for xivoice tests.

Tests talk to a stub ElevenLabs server built from ``httpx.MockTransport``:
each test supplies a handler that receives the outgoing ``httpx.Request``
and returns the ``httpx.Response`` the server should send.
"""

from typing import Callable

import httpx
import pytest

from xivoice.client import VoiceClient
from xivoice.config import ClientConfig, reset_default_config

STUB_BASE_URL = "https://api.elevenlabs.test"


class RequestLog:
    """Wraps a stub handler and records every request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture(autouse=True)
def _clean_default_config():
    """Ensure no test leaks a process-wide default credential."""
    reset_default_config()
    yield
    reset_default_config()


@pytest.fixture
async def make_client():
    """Return a factory building VoiceClients wired to a stub handler.

    Returns ``(client, log)`` where *log* records the requests sent.
    """
    clients: list[VoiceClient] = []

    def _make(handler, api_key: str | None = "test-key") -> tuple[VoiceClient, RequestLog]:
        log = RequestLog(handler)
        client = VoiceClient(
            api_key,
            config=ClientConfig(api_key=None, base_url=STUB_BASE_URL, timeout=None),
            transport=httpx.MockTransport(log),
        )
        clients.append(client)
        return client, log

    yield _make

    for client in clients:
        await client.stop()
