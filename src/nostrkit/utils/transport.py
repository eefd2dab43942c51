"""WebSocket transport for relay connections.

Defines the minimal [Transport][nostrkit.utils.transport.Transport]
interface a [RelayConnection][nostrkit.client.connection.RelayConnection]
needs (send text, receive text, close) and an aiohttp implementation.
Relays on overlay networks (Tor, I2P, Lokinet) are reached through a SOCKS5
proxy with ``aiohttp_socks``.

All connection failures surface as ``OSError`` (timeouts as
``TimeoutError``) so that callers need not know about aiohttp's exception
types.

Note:
    Certificate verification is on by default. ``allow_insecure=True``
    disables it entirely (``CERT_NONE``) and is intended for relays with
    self-signed certificates on trusted networks.

Examples:
    ```python
    transport = await open_websocket("wss://relay.damus.io", TransportConfig(), timeout=10)
    await transport.send('["REQ","sub",{"limit":1}]')
    frame = await transport.recv()
    await transport.close()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import ssl
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Final

import aiohttp
from aiohttp_socks import ProxyConnector
from pydantic import BaseModel, Field

from nostrkit.models.relay import RelayUrl


logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_SIZE: Final[int] = 4 * 1024 * 1024


class TransportConfig(BaseModel):
    """WebSocket transport settings.

    See Also:
        [RelayConnectionConfig][nostrkit.client.connection.RelayConnectionConfig]:
            Parent configuration that embeds this model.
    """

    allow_insecure: bool = Field(
        default=False, description="Disable TLS certificate verification"
    )
    proxy_url: str | None = Field(
        default=None,
        description="SOCKS5 proxy for overlay networks (e.g. socks5://127.0.0.1:9050)",
    )
    max_message_size: int = Field(
        default=DEFAULT_MAX_MESSAGE_SIZE, ge=1024, description="Maximum inbound frame size in bytes"
    )
    heartbeat: float | None = Field(
        default=30.0, gt=0.0, description="WebSocket ping interval in seconds (None disables)"
    )
    close_timeout: float = Field(default=5.0, ge=0.1, description="Close handshake timeout")


class Transport(ABC):
    """A message-oriented, bidirectional text channel to one relay."""

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send one text frame.

        Raises:
            OSError: If the channel is closed or the write fails.
        """

    @abstractmethod
    async def recv(self) -> str | None:
        """Return the next text frame, or ``None`` once the channel has closed."""

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. Safe to call more than once; never raises."""


TransportFactory = Callable[[str], Awaitable[Transport]]
"""Async callable opening a transport to a canonical relay URL."""


class WebSocketTransport(Transport):
    """aiohttp WebSocket wrapped in the [Transport][nostrkit.utils.transport.Transport] interface.

    Owns both the WebSocket and its ``ClientSession``; closing the transport
    closes both.
    """

    def __init__(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        session: aiohttp.ClientSession,
        close_timeout: float = 5.0,
    ) -> None:
        self._ws = ws
        self._session = session
        self._close_timeout = close_timeout

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send(self, message: str) -> None:
        if self._ws.closed:
            raise ConnectionResetError("WebSocket is closed")
        try:
            await self._ws.send_str(message)
        except aiohttp.ClientError as e:
            raise OSError(f"WebSocket send failed: {e}") from e

    async def recv(self) -> str | None:
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                return msg.data
            if msg.type == aiohttp.WSMsgType.BINARY:
                return msg.data.decode("utf-8", errors="replace")
            if msg.type in (aiohttp.WSMsgType.PING, aiohttp.WSMsgType.PONG):
                continue
            if msg.type == aiohttp.WSMsgType.ERROR:
                logger.debug("ws_error error=%s", self._ws.exception())
            # CLOSE, CLOSING, CLOSED, ERROR -> connection terminated
            return None

    async def close(self) -> None:
        # aiohttp can raise ClientError, ServerDisconnectedError, etc. during close
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._ws.close(), timeout=self._close_timeout)
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._session.close(), timeout=self._close_timeout)


def _ssl_context(config: TransportConfig) -> ssl.SSLContext | bool:
    if not config.allow_insecure:
        return True
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


async def open_websocket(
    url: str,
    config: TransportConfig | None = None,
    timeout: float = 10.0,  # noqa: ASYNC109
) -> WebSocketTransport:
    """Open a WebSocket to a relay.

    Overlay-network relays are routed through ``config.proxy_url`` when set.

    Args:
        url: Relay URL (``ws://`` or ``wss://``).
        config: Transport settings; defaults are used when omitted.
        timeout: Connection establishment timeout in seconds.

    Returns:
        An open [WebSocketTransport][nostrkit.utils.transport.WebSocketTransport].

    Raises:
        TimeoutError: If the handshake does not complete within *timeout*.
        OSError: On any other connection failure (DNS, TLS, HTTP upgrade).
        asyncio.CancelledError: If cancelled.
    """
    config = config or TransportConfig()
    relay = RelayUrl(url)
    ssl_context = _ssl_context(config) if relay.scheme == "wss" else False

    connector: aiohttp.BaseConnector
    if config.proxy_url and relay.network.is_overlay:
        try:
            connector = ProxyConnector.from_url(config.proxy_url, ssl=ssl_context, rdns=True)
        except ValueError as e:
            raise OSError(f"Invalid proxy URL {config.proxy_url!r}: {e}") from e
    else:
        connector = aiohttp.TCPConnector(ssl=ssl_context)

    session = aiohttp.ClientSession(connector=connector)
    try:
        async with asyncio.timeout(timeout):
            ws = await session.ws_connect(
                relay.url,
                heartbeat=config.heartbeat,
                max_msg_size=config.max_message_size,
                autoping=True,
            )
    except TimeoutError:
        await session.close()
        logger.debug("ws_connect_timeout url=%s timeout=%s", relay.url, timeout)
        raise TimeoutError(f"Connection timeout after {timeout}s: {relay.url}") from None
    except asyncio.CancelledError:
        await session.close()
        raise
    except (aiohttp.ClientError, ssl.SSLError, OSError) as e:
        await session.close()
        logger.debug("ws_connect_failed url=%s error=%s", relay.url, e)
        raise OSError(f"Connection failed: {e}") from e

    return WebSocketTransport(ws, session, close_timeout=config.close_timeout)


def websocket_factory(config: TransportConfig | None = None, timeout: float = 10.0) -> TransportFactory:  # noqa: ASYNC109
    """Return a [TransportFactory][nostrkit.utils.transport.TransportFactory] bound to *config*."""

    async def factory(url: str) -> Transport:
        return await open_websocket(url, config, timeout=timeout)

    return factory
