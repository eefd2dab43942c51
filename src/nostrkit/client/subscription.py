"""
Relay-scoped subscriptions.

A [Subscription][nostrkit.client.subscription.Subscription] binds a
subscription id to its filters and to one delivery channel:

* **callbacks**: ``on_event(event)`` is invoked synchronously from the
  connection's receive loop, in arrival order;
* **queue**: when no ``on_event`` is given, events are put on a bounded
  ``asyncio.Queue`` and consumed with ``async for event in subscription``.

In both modes ``on_eose`` fires at most once. Exceptions raised by
callbacks are logged and never reach the receive loop. When the queue is
full, new events are dropped with a warning.

Ids come from a per-connection
[SubscriptionIdAllocator][nostrkit.client.subscription.SubscriptionIdAllocator]:
a random prefix plus a monotonic counter, unique for the lifetime of the
connection.
"""

from __future__ import annotations

import asyncio
import itertools
import secrets
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from typing import Any, Final

from nostrkit.core.exceptions import NostrKitError, ProtocolError
from nostrkit.core.logger import Logger
from nostrkit.models.event import Event


EventCallback = Callable[[Event], Any]
EoseCallback = Callable[[], Any]

DEFAULT_QUEUE_SIZE: Final[int] = 10_000

_CLOSED: Final = object()


class SubscriptionIdAllocator:
    """Allocates subscription ids unique within one connection.

    Ids look like ``"3f9a1c2e:7"``: a random 8-hex-char prefix chosen once
    per allocator and a counter starting at 1.
    """

    def __init__(self, prefix: str | None = None) -> None:
        self._prefix = prefix or secrets.token_hex(4)
        self._counter = itertools.count(1)

    def allocate(self) -> str:
        return f"{self._prefix}:{next(self._counter)}"


class Subscription:
    """A live request for events matching a set of filters on one relay.

    Instances are created by
    [RelayConnection.subscribe()][nostrkit.client.connection.RelayConnection.subscribe];
    the connection is the only writer.

    Attributes:
        id: Subscription id sent in ``REQ``/``CLOSE`` frames.
        filters: Filters as sent to the relay.
    """

    def __init__(
        self,
        subscription_id: str,
        filters: Iterable[Mapping[str, Any]],
        *,
        on_event: EventCallback | None = None,
        on_eose: EoseCallback | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        logger: Logger | None = None,
    ) -> None:
        self.id = subscription_id
        self.filters: tuple[dict[str, Any], ...] = tuple(dict(f) for f in filters)
        self._on_event = on_event
        self._on_eose = on_eose
        self._queue: asyncio.Queue[Any] | None = (
            None if on_event is not None else asyncio.Queue(maxsize=queue_size + 1)
        )
        # One slot beyond queue_size is reserved for the close marker
        self._queue_size = queue_size
        self._eose = asyncio.Event()
        self._eose_received = False
        self._closed = False
        self._error: NostrKitError | None = None
        self._delivered = 0
        self._logger = (logger or Logger("nostrkit.subscription")).bind(subscription=subscription_id)

    def __repr__(self) -> str:
        return (
            f"Subscription(id={self.id!r}, delivered={self._delivered}, "
            f"eose={self._eose_received}, closed={self._closed})"
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def eose_received(self) -> bool:
        return self._eose_received

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def error(self) -> NostrKitError | None:
        """Why the subscription ended, if it ended because of a failure."""
        return self._error

    @property
    def delivered(self) -> int:
        """Number of events accepted for delivery."""
        return self._delivered

    # -------------------------------------------------------------------------
    # Delivery (called by the owning connection)
    # -------------------------------------------------------------------------

    def deliver_event(self, event: Event) -> bool:
        """Hand *event* to the consumer.

        Returns:
            False if the subscription is closed or the queue is full.
        """
        if self._closed:
            return False

        if self._on_event is not None:
            self._delivered += 1
            try:
                self._on_event(event)
            except Exception:  # noqa: BLE001  # consumer errors must not stop the receive loop
                self._logger.exception("event_callback_failed", event_id=event.id)
            return True

        assert self._queue is not None  # noqa: S101  # queue mode when on_event is None
        if self._queue.qsize() >= self._queue_size:
            self._logger.warning("queue_full_event_dropped", event_id=event.id)
            return False
        self._queue.put_nowait(event)
        self._delivered += 1
        return True

    def deliver_eose(self) -> None:
        """Record end-of-stored-events and fire ``on_eose`` the first time."""
        if self._closed or self._eose_received:
            return
        self._eose_received = True
        self._eose.set()
        if self._on_eose is not None:
            try:
                self._on_eose()
            except Exception:  # noqa: BLE001  # consumer errors must not stop the receive loop
                self._logger.exception("eose_callback_failed")

    def close(self, error: NostrKitError | None = None) -> None:
        """End the subscription; queue consumers stop after draining.

        Idempotent. *error* is re-raised to queue consumers once the
        already-queued events have been consumed.
        """
        if self._closed:
            return
        self._closed = True
        self._error = error
        self._eose.set()
        if self._queue is not None:
            self._queue.put_nowait(_CLOSED)

    # -------------------------------------------------------------------------
    # Consumption
    # -------------------------------------------------------------------------

    async def wait_eose(self) -> bool:
        """Wait until end-of-stored-events or close.

        Returns:
            True if end-of-stored-events was received.
        """
        await self._eose.wait()
        return self._eose_received

    def __aiter__(self) -> AsyncIterator[Event]:
        if self._queue is None:
            raise ProtocolError("subscription delivers to on_event; it cannot be iterated")
        return self

    async def __anext__(self) -> Event:
        assert self._queue is not None  # noqa: S101  # checked in __aiter__
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any other consumer
            self._queue.put_nowait(_CLOSED)
            if self._error is not None:
                raise self._error
            raise StopAsyncIteration
        return item
