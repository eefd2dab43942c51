"""
Pytest configuration and shared fixtures for nostrkit tests.

Provides:
- Known key material (NIP-19 test vector) and signed event factories
- In-memory relay transports (FakeTransport, FakeNetwork) standing in for
  WebSockets in connection and pool tests
- wait_until() for polling conditions inside the event loop
"""

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import pytest

from nostrkit.models.event import Event, EventTemplate
from nostrkit.nips.nip01 import finalize_event
from nostrkit.utils.transport import Transport


SECRET_KEY = "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
SECRET_NSEC = "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
PUBLIC_KEY = "7e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e"
PUBLIC_NPUB = "npub10elfcs4fr0l0r8af98jlmgdh9c8tcxjvz9qkw038js35mp4dma8qzvjptg"


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# In-memory Transport
# ============================================================================


class FakeTransport(Transport):
    """Transport backed by an asyncio.Queue of inbound frames.

    ``feed()`` queues a frame as if the relay had sent it; ``drop()`` ends
    the stream as a relay-side close; ``fail()`` makes ``recv()`` raise.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: list[str] = []
        self.closed = False
        self._incoming: asyncio.Queue[str | BaseException | None] = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionResetError("transport closed")
        self.sent.append(message)

    async def recv(self) -> str | None:
        item = await self._incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(None)

    def feed(self, frame: str | list[Any]) -> None:
        self._incoming.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def drop(self) -> None:
        self._incoming.put_nowait(None)

    def fail(self, error: BaseException) -> None:
        self._incoming.put_nowait(error)

    def frames(self, frame_type: str | None = None) -> list[list[Any]]:
        """Decoded outbound frames, optionally only those of *frame_type*."""
        decoded = [json.loads(s) for s in self.sent]
        if frame_type is None:
            return decoded
        return [f for f in decoded if f[0] == frame_type]


class FakeNetwork:
    """Transport factory handing out FakeTransports per URL.

    URLs in ``unreachable`` fail with ``ConnectionRefusedError``; URLs in
    ``hanging`` never complete the handshake.
    """

    def __init__(self) -> None:
        self.transports: dict[str, list[FakeTransport]] = {}
        self.unreachable: set[str] = set()
        self.hanging: set[str] = set()
        self.attempts: list[str] = []

    async def __call__(self, url: str) -> Transport:
        self.attempts.append(url)
        await asyncio.sleep(0)
        if url in self.hanging:
            await asyncio.Event().wait()
        if url in self.unreachable:
            raise ConnectionRefusedError(f"connection refused: {url}")
        transport = FakeTransport(url)
        self.transports.setdefault(url, []).append(transport)
        return transport

    def last(self, url: str) -> FakeTransport:
        return self.transports[url][-1]


@pytest.fixture
def network() -> FakeNetwork:
    """A fresh in-memory relay network."""
    return FakeNetwork()


async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:  # noqa: ASYNC109
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0)


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    """Poll *predicate* until true, yielding to the loop between checks."""
    return _wait_until


# ============================================================================
# Keys and Events
# ============================================================================


@pytest.fixture
def secret_key() -> str:
    return SECRET_KEY


@pytest.fixture
def public_key() -> str:
    return PUBLIC_KEY


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for events signed with the test secret key."""

    def _make(
        content: str = "hello nostr",
        kind: int = 1,
        tags: list[list[str]] | None = None,
        created_at: int = 1_700_000_000,
        secret: str = SECRET_KEY,
    ) -> Event:
        template = EventTemplate(kind=kind, content=content, tags=tags or [], created_at=created_at)
        return finalize_event(template, secret)

    return _make


@pytest.fixture
def signed_event(make_event: Callable[..., Event]) -> Event:
    """A signed kind 1 text note."""
    return make_event()
