"""
Single-relay connection: state machine, subscription registry and dispatch.

A [RelayConnection][nostrkit.client.connection.RelayConnection] owns one
transport session to one relay and the subscriptions issued on it. Inbound
frames are read by one background task and dispatched synchronously, so
events from a relay reach their subscribers strictly in arrival order.

Lifecycle:

* [connect()][nostrkit.client.connection.RelayConnection.connect] is
  idempotent: concurrent callers join one in-flight attempt and all see its
  outcome.
* [subscribe()][nostrkit.client.connection.RelayConnection.subscribe] and
  [unsubscribe()][nostrkit.client.connection.RelayConnection.unsubscribe]
  update the registry before returning; the ``REQ``/``CLOSE`` frames follow
  in the background.
* [close()][nostrkit.client.connection.RelayConnection.close] clears all
  local state before its first suspension point.
* A relay-side close moves the connection to ``disconnected``, a transport
  error to ``error``; both end every subscription and fail every pending
  acknowledgment.

Malformed inbound frames, events for unknown subscriptions, and events that
fail verification are logged and dropped; they never end the connection.

Examples:
    ```python
    async with RelayConnection("wss://relay.damus.io") as relay:
        events = await relay.fetch([{"kinds": [1], "limit": 20}])

        ack = await relay.publish(event)
        ok = await asyncio.wait_for(ack, timeout=10)
    ```
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field

from nostrkit.core.exceptions import (
    NostrKitError,
    RelayConnectionError,
    RelayTimeoutError,
)
from nostrkit.core.logger import Logger
from nostrkit.core.metrics import RELAY_CONNECTED, RELAY_MESSAGES_TOTAL
from nostrkit.models.event import Event
from nostrkit.models.messages import (
    EoseMessage,
    EventMessage,
    NoticeMessage,
    OkMessage,
    UnknownMessage,
    encode_close,
    encode_event,
    encode_req,
    parse_relay_message,
)
from nostrkit.models.relay import RelayUrl
from nostrkit.nips.nip01 import verify_event
from nostrkit.utils.transport import Transport, TransportConfig, TransportFactory, websocket_factory

from .state import DISCONNECTED, ConnectionState, ConnectionStatus, TransportSignal, advance
from .subscription import (
    DEFAULT_QUEUE_SIZE,
    EoseCallback,
    EventCallback,
    Subscription,
    SubscriptionIdAllocator,
)


Filters = Mapping[str, Any] | Iterable[Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class RelayTimeoutsConfig(BaseModel):
    """Timeouts for relay operations (in seconds).

    No timeout applies to a plain subscription; only the operations below
    are bounded.
    """

    connect: float = Field(default=10.0, ge=0.1, description="Transport handshake timeout")
    fetch: float = Field(default=5.0, ge=0.1, description="Wait for end-of-stored-events in fetch()")
    ok: float = Field(default=10.0, ge=0.1, description="Wait for a publish acknowledgment")


class RelayConnectionConfig(BaseModel):
    """Aggregate configuration for a relay connection.

    See Also:
        [RelayPoolConfig][nostrkit.client.pool.RelayPoolConfig]: Applies one
            connection config to every pool member.
    """

    timeouts: RelayTimeoutsConfig = Field(default_factory=RelayTimeoutsConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    verify_events: bool = Field(
        default=True, description="Drop inbound events whose id or signature does not verify"
    )
    queue_size: int = Field(
        default=DEFAULT_QUEUE_SIZE, ge=1, description="Per-subscription queue bound (queue mode)"
    )


def _normalize_filters(filters: Filters) -> list[dict[str, Any]]:
    if isinstance(filters, Mapping):
        return [dict(filters)]
    result = [dict(f) for f in filters]
    if not result:
        raise ValueError("at least one filter is required")
    return result


def _settle_with_error(future: asyncio.Future[Any], error: BaseException) -> None:
    if not future.done():
        future.set_exception(error)
        # Callers may ignore the acknowledgment future
        future.exception()


# ---------------------------------------------------------------------------
# RelayConnection Class
# ---------------------------------------------------------------------------


class RelayConnection:
    """Connection to one relay.

    Args:
        url: Relay URL; canonicalized with
            [RelayUrl][nostrkit.models.relay.RelayUrl].
        config: Connection settings; defaults are used when omitted.
        transport_factory: Async callable opening a
            [Transport][nostrkit.utils.transport.Transport] for a URL.
            Defaults to an aiohttp WebSocket built from ``config.transport``.

    Raises:
        ValueError: If *url* cannot be canonicalized.

    See Also:
        [RelayPool][nostrkit.client.pool.RelayPool]: Manages many
            connections keyed by canonical URL.
    """

    def __init__(
        self,
        url: str | RelayUrl,
        config: RelayConnectionConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._relay = url if isinstance(url, RelayUrl) else RelayUrl(url)
        self._config = config or RelayConnectionConfig()
        self._factory = transport_factory or websocket_factory(
            self._config.transport, timeout=self._config.timeouts.connect
        )

        self._status: ConnectionStatus = DISCONNECTED
        self._transport: Transport | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()

        self._ids = SubscriptionIdAllocator()
        self._subscriptions: dict[str, Subscription] = {}
        self._transmitted: set[str] = set()
        self._pending_oks: dict[str, asyncio.Future[OkMessage]] = {}

        self._logger = Logger("nostrkit.relay").bind(relay=self._relay.url)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def url(self) -> str:
        """Canonical relay URL."""
        return self._relay.url

    @property
    def relay(self) -> RelayUrl:
        return self._relay

    @property
    def config(self) -> RelayConnectionConfig:
        return self._config

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def state(self) -> ConnectionState:
        return self._status.state

    @property
    def is_connected(self) -> bool:
        return self._status.is_connected

    @property
    def subscriptions(self) -> Mapping[str, Subscription]:
        """Read-only view of the live subscriptions by id."""
        return MappingProxyType(self._subscriptions)

    def get_subscription(self, subscription_id: str) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the transport if it is not already open.

        Returns immediately when connected. While a connection attempt is in
        flight, every caller waits for that same attempt.

        Raises:
            RelayTimeoutError: If the handshake exceeds ``timeouts.connect``.
            RelayConnectionError: If the transport cannot be opened, or the
                connection is closed while the attempt is in flight.
        """
        if self._status.is_connected:
            return

        if self._connect_task is None:
            self._connect_task = asyncio.create_task(self._open(), name=f"connect {self.url}")
        task = self._connect_task

        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and current is not None and not current.cancelling():
                raise RelayConnectionError(f"connection to {self.url} closed while connecting") from None
            raise

    async def _open(self) -> None:
        self._set_status(TransportSignal.CONNECT)
        self._logger.debug("connection_starting")
        try:
            async with asyncio.timeout(self._config.timeouts.connect):
                transport = await self._factory(self.url)
        except TimeoutError as e:
            reason = f"timeout after {self._config.timeouts.connect}s"
            self._set_status(TransportSignal.FAILED, reason)
            self._logger.warning("connection_failed", error=reason)
            raise RelayTimeoutError(f"connection to {self.url} timed out") from e
        except OSError as e:
            reason = str(e) or type(e).__name__
            self._set_status(TransportSignal.FAILED, reason)
            self._logger.warning("connection_failed", error=reason)
            raise RelayConnectionError(f"connection to {self.url} failed: {reason}") from e
        except Exception as e:
            reason = repr(e)
            self._set_status(TransportSignal.FAILED, reason)
            self._logger.error("connection_failed", error=reason)
            raise RelayConnectionError(f"connection to {self.url} failed: {reason}") from e
        finally:
            if self._connect_task is asyncio.current_task():
                self._connect_task = None

        self._transport = transport
        self._set_status(TransportSignal.OPENED)
        self._reader_task = asyncio.create_task(self._read_loop(transport), name=f"read {self.url}")
        self._logger.info("connection_established")

    async def close(self) -> None:
        """Close the transport and discard all subscriptions.

        Local state (registry, pending acknowledgments, status) is cleared
        before the first suspension point; the transport is then closed and
        background work cancelled. Safe to call multiple times.
        """
        transport, self._transport = self._transport, None
        tasks = [t for t in (self._connect_task, self._reader_task, *self._background) if t is not None]
        self._connect_task = None
        self._reader_task = None
        self._background.clear()

        was_active = transport is not None or self._status.state is not ConnectionState.DISCONNECTED
        self._clear_registry(RelayConnectionError(f"connection to {self.url} closed"))
        if self._status.state is not ConnectionState.DISCONNECTED:
            self._set_status(TransportSignal.CLOSED)

        current = asyncio.current_task()
        pending = [t for t in tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()

        if transport is not None:
            await transport.close()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if was_active:
            self._logger.info("connection_closed")

    def _set_status(self, signal: TransportSignal, reason: str | None = None) -> None:
        previous = self._status.state
        self._status = advance(self._status, signal, reason)
        RELAY_CONNECTED.labels(relay=self.url).set(1 if self._status.is_connected else 0)
        self._logger.debug("state_changed", previous=previous, state=self._status.state)

    def _clear_registry(self, error: NostrKitError) -> None:
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        self._transmitted.clear()
        for subscription in subscriptions:
            subscription.close(error)

        pending = list(self._pending_oks.values())
        self._pending_oks.clear()
        for future in pending:
            _settle_with_error(future, error)

    async def _on_transport_lost(self, transport: Transport, reason: str | None) -> None:
        self._transport = None
        self._reader_task = None
        if reason is None:
            self._set_status(TransportSignal.CLOSED)
            self._logger.info("connection_closed_by_relay")
        else:
            self._set_status(TransportSignal.FAILED, reason)
            self._logger.warning("connection_lost", error=reason)

        self._clear_registry(
            RelayConnectionError(f"connection to {self.url} lost: {reason or 'closed by relay'}")
        )
        await transport.close()

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def _read_loop(self, transport: Transport) -> None:
        try:
            while (raw := await transport.recv()) is not None:
                self._dispatch(raw)
        except Exception as e:  # noqa: BLE001  # any transport failure ends the session
            reason: str | None = str(e) or type(e).__name__
        else:
            reason = None

        if self._transport is transport:
            await self._on_transport_lost(transport, reason)

    def _dispatch(self, raw: str) -> None:
        """Route one inbound frame. Never raises."""
        try:
            message = parse_relay_message(raw)
        except ValueError as e:
            RELAY_MESSAGES_TOTAL.labels(relay=self.url, type="malformed").inc()
            self._logger.warning("frame_malformed", error=str(e), frame=raw[:200])
            return

        if isinstance(message, EventMessage):
            RELAY_MESSAGES_TOTAL.labels(relay=self.url, type="EVENT").inc()
            subscription = self._subscriptions.get(message.subscription_id)
            if subscription is None:
                self._logger.debug(
                    "event_unknown_subscription", subscription=message.subscription_id
                )
                return
            if self._config.verify_events and not verify_event(message.event):
                self._logger.warning("event_verification_failed", event_id=message.event.id)
                return
            subscription.deliver_event(message.event)

        elif isinstance(message, EoseMessage):
            RELAY_MESSAGES_TOTAL.labels(relay=self.url, type="EOSE").inc()
            subscription = self._subscriptions.get(message.subscription_id)
            if subscription is not None:
                subscription.deliver_eose()

        elif isinstance(message, OkMessage):
            RELAY_MESSAGES_TOTAL.labels(relay=self.url, type="OK").inc()
            future = self._pending_oks.pop(message.event_id, None)
            if future is not None and not future.done():
                future.set_result(message)
            if message.accepted:
                self._logger.debug("event_accepted", event_id=message.event_id)
            else:
                self._logger.info(
                    "event_rejected", event_id=message.event_id, reason=message.message
                )

        elif isinstance(message, NoticeMessage):
            RELAY_MESSAGES_TOTAL.labels(relay=self.url, type="NOTICE").inc()
            self._logger.info("relay_notice", notice=message.message)

        elif isinstance(message, UnknownMessage):
            RELAY_MESSAGES_TOTAL.labels(relay=self.url, type="unknown").inc()
            self._logger.debug("frame_unhandled", frame_type=message.frame_type)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send(self, frame: str) -> None:
        transport = self._transport
        if transport is None or not self._status.is_connected:
            raise RelayConnectionError(f"not connected to {self.url}")
        try:
            await transport.send(frame)
        except OSError as e:
            raise RelayConnectionError(f"send to {self.url} failed: {e}") from e

    def subscribe(
        self,
        filters: Filters,
        on_event: EventCallback | None = None,
        on_eose: EoseCallback | None = None,
    ) -> str:
        """Register a subscription and return its id immediately.

        The subscription is registered before anything is sent. A background
        task connects if needed and then sends ``REQ``; if the subscription
        has been removed by then, nothing is sent. If connecting fails, the
        failure is logged and the subscription is closed with the error.

        Args:
            filters: One filter mapping or an iterable of filters, passed to
                the relay unchanged.
            on_event: Called with each matching event. When omitted, events
                are queued on the [Subscription][nostrkit.client.subscription.Subscription]
                returned by ``get_subscription(id)`` for ``async for``.
            on_eose: Called once at end-of-stored-events.

        Returns:
            The subscription id.

        Raises:
            ValueError: If *filters* is empty.
            RuntimeError: If called outside a running event loop.
        """
        normalized = _normalize_filters(filters)
        subscription_id = self._ids.allocate()
        subscription = Subscription(
            subscription_id,
            normalized,
            on_event=on_event,
            on_eose=on_eose,
            queue_size=self._config.queue_size,
            logger=self._logger,
        )
        self._subscriptions[subscription_id] = subscription
        self._spawn(self._send_req(subscription), name=f"req {subscription_id}")
        return subscription_id

    async def _send_req(self, subscription: Subscription) -> None:
        try:
            await self.connect()
            if self._subscriptions.get(subscription.id) is not subscription:
                return
            await self._send(encode_req(subscription.id, subscription.filters))
        except NostrKitError as e:
            self._logger.warning("subscribe_failed", subscription=subscription.id, error=str(e))
            if self._subscriptions.get(subscription.id) is subscription:
                del self._subscriptions[subscription.id]
            subscription.close(e)
            return

        if self._subscriptions.get(subscription.id) is not subscription:
            # Unsubscribed while the REQ was in flight
            await self._send_close(subscription.id)
            return
        self._transmitted.add(subscription.id)
        self._logger.debug("subscription_sent", subscription=subscription.id)

    def unsubscribe(self, subscription_id: str) -> None:
        """Remove a subscription; send ``CLOSE`` in the background if connected.

        The registry no longer contains the id when this returns, and no
        further events are delivered for it. Unknown ids are ignored.
        """
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            return
        subscription.close()

        if subscription_id in self._transmitted:
            self._transmitted.discard(subscription_id)
            if self._status.is_connected:
                self._spawn(self._send_close(subscription_id), name=f"close {subscription_id}")

    async def _send_close(self, subscription_id: str) -> None:
        try:
            await self._send(encode_close(subscription_id))
        except NostrKitError as e:
            self._logger.debug("close_frame_failed", subscription=subscription_id, error=str(e))

    async def publish(self, event: Event) -> asyncio.Future[OkMessage]:
        """Send ``["EVENT", event]``, connecting first if needed.

        Returns once the frame has been written. The returned future resolves
        with the relay's [OkMessage][nostrkit.models.messages.OkMessage];
        it fails with [RelayTimeoutError][nostrkit.core.exceptions.RelayTimeoutError]
        after ``timeouts.ok`` seconds without one, and with
        [RelayConnectionError][nostrkit.core.exceptions.RelayConnectionError]
        if the connection ends first. Callers may ignore it.

        Raises:
            TypeError: If *event* is not an [Event][nostrkit.models.event.Event].
            ConnectivityError: If connecting or sending fails.
        """
        if not isinstance(event, Event):
            raise TypeError(f"event must be an Event, got {type(event).__name__}")

        await self.connect()

        loop = asyncio.get_running_loop()
        future = self._pending_oks.get(event.id)
        if future is None or future.done():
            future = loop.create_future()
            self._pending_oks[event.id] = future
            timer = loop.call_later(self._config.timeouts.ok, self._expire_ok, event.id, future)
            future.add_done_callback(lambda _: timer.cancel())

        try:
            await self._send(encode_event(event))
        except NostrKitError as e:
            if self._pending_oks.get(event.id) is future:
                del self._pending_oks[event.id]
            _settle_with_error(future, e)
            raise

        self._logger.debug("event_sent", event_id=event.id, kind=event.kind)
        return future

    def _expire_ok(self, event_id: str, future: asyncio.Future[OkMessage]) -> None:
        if self._pending_oks.get(event_id) is future:
            del self._pending_oks[event_id]
        _settle_with_error(
            future, RelayTimeoutError(f"no acknowledgment from {self.url} for {event_id}")
        )

    # -------------------------------------------------------------------------
    # Higher-level Operations
    # -------------------------------------------------------------------------

    async def fetch(self, filters: Filters, timeout: float | None = None) -> list[Event]:  # noqa: ASYNC109
        """Collect stored events matching *filters*.

        Subscribes, waits for end-of-stored-events or *timeout* (default
        ``timeouts.fetch``), then unsubscribes.

        Returns:
            Events in arrival order.

        Raises:
            ConnectivityError: If connecting fails or the connection is lost
                before end-of-stored-events.
        """
        await self.connect()

        events: list[Event] = []
        subscription_id = self.subscribe(filters, on_event=events.append)
        subscription = self._subscriptions[subscription_id]
        try:
            async with asyncio.timeout(timeout or self._config.timeouts.fetch):
                await subscription.wait_eose()
        except TimeoutError:
            self._logger.debug("fetch_timeout", subscription=subscription_id, received=len(events))
        finally:
            self.unsubscribe(subscription_id)

        if subscription.error is not None:
            raise subscription.error
        return events

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> RelayConnection:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        return (
            f"RelayConnection(url={self.url!r}, state={self._status.state.value}, "
            f"subscriptions={len(self._subscriptions)})"
        )
