"""
Relay pool: fan-out subscriptions and publishing across many relays.

A [RelayPool][nostrkit.client.pool.RelayPool] maps canonical relay URLs to
[RelayConnection][nostrkit.client.connection.RelayConnection] instances and
only ever calls their public methods. Operations that touch every member run
concurrently; a failing relay never prevents the others from completing and
is reported in the per-relay result instead of raising.

Examples:
    ```python
    pool = RelayPool.from_yaml("relays.yaml")

    async with pool:
        subs = pool.subscribe({"kinds": [1], "limit": 50}, on_event=print)
        ...
        pool.unsubscribe(subs)

        for result in await pool.publish(event, wait_for_ok=True):
            print(result.relay_url, result.success, result.message)
    ```
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Iterator
from typing import Any, NamedTuple

from pydantic import BaseModel, Field, field_validator

from nostrkit.core.exceptions import NostrKitError
from nostrkit.core.logger import Logger
from nostrkit.core.metrics import PUBLISH_RESULTS_TOTAL
from nostrkit.core.yaml import load_yaml
from nostrkit.models.event import Event
from nostrkit.models.relay import RelayUrl, normalize_relay_url
from nostrkit.nips.nip01 import sort_by_recency
from nostrkit.utils.transport import TransportFactory

from .connection import Filters, RelayConnection, RelayConnectionConfig
from .subscription import EoseCallback, EventCallback


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class RelayPoolConfig(BaseModel):
    """Pool membership and the connection settings shared by every member.

    Relay URLs are canonicalized and de-duplicated on load, keeping the first
    occurrence.
    """

    relays: list[str] = Field(default_factory=list, description="Relay URLs")
    connection: RelayConnectionConfig = Field(default_factory=RelayConnectionConfig)

    @field_validator("relays")
    @classmethod
    def canonicalize_relays(cls, v: list[str]) -> list[str]:
        """Canonicalize URLs and drop duplicates."""
        seen: dict[str, None] = {}
        for url in v:
            seen.setdefault(normalize_relay_url(url), None)
        return list(seen)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class PoolSubscription(NamedTuple):
    """A subscription issued on one pool member."""

    relay_url: str
    subscription_id: str


class PublishResult(NamedTuple):
    """Outcome of publishing one event to one relay.

    Attributes:
        relay_url: Canonical relay URL.
        success: The frame was sent (and, with ``wait_for_ok``, accepted).
        message: Failure reason or the relay's acknowledgment message.
    """

    relay_url: str
    success: bool
    message: str = ""


# ---------------------------------------------------------------------------
# RelayPool Class
# ---------------------------------------------------------------------------


class RelayPool:
    """A set of relay connections keyed by canonical URL.

    Args:
        config: Initial members and shared connection settings.
        transport_factory: Passed to every member connection; defaults to an
            aiohttp WebSocket.
    """

    def __init__(
        self,
        config: RelayPoolConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._config = config or RelayPoolConfig()
        self._transport_factory = transport_factory
        self._relays: dict[str, RelayConnection] = {}
        self._logger = Logger("nostrkit.pool")

        for url in self._config.relays:
            self.add_relay(url)

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> RelayPool:
        """Create a pool from a YAML configuration file.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file does not contain a mapping.
        """
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any], **kwargs: Any) -> RelayPool:
        """Create a pool from a dictionary matching RelayPoolConfig field names."""
        return cls(config=RelayPoolConfig(**config_dict), **kwargs)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    @property
    def config(self) -> RelayPoolConfig:
        return self._config

    @property
    def urls(self) -> list[str]:
        """Canonical URLs of the current members, in insertion order."""
        return list(self._relays)

    def __len__(self) -> int:
        return len(self._relays)

    def __contains__(self, url: object) -> bool:
        if not isinstance(url, (str, RelayUrl)):
            return False
        try:
            return normalize_relay_url(url) in self._relays
        except ValueError:
            return False

    def __iter__(self) -> Iterator[RelayConnection]:
        return iter(list(self._relays.values()))

    def get(self, url: str | RelayUrl) -> RelayConnection | None:
        return self._relays.get(normalize_relay_url(url))

    def add_relay(self, url: str | RelayUrl) -> RelayConnection:
        """Add a member, or return the existing one for the same canonical URL.

        The connection is not opened until it is first used.

        Raises:
            ValueError: If *url* cannot be canonicalized.
        """
        relay = url if isinstance(url, RelayUrl) else RelayUrl(url)
        existing = self._relays.get(relay.url)
        if existing is not None:
            return existing

        connection = RelayConnection(
            relay, self._config.connection, transport_factory=self._transport_factory
        )
        self._relays[relay.url] = connection
        self._logger.debug("relay_added", relay=relay.url)
        return connection

    async def remove_relay(self, url: str | RelayUrl) -> None:
        """Close and evict a member. Unknown URLs are ignored."""
        connection = self._relays.pop(normalize_relay_url(url), None)
        if connection is None:
            return
        await connection.close()
        self._logger.debug("relay_removed", relay=connection.url)

    # -------------------------------------------------------------------------
    # Fan-out Operations
    # -------------------------------------------------------------------------

    async def connect(self) -> dict[str, str | None]:
        """Connect every member concurrently.

        Returns:
            Mapping of relay URL to ``None`` on success or the error message.
        """
        relays = list(self._relays.values())
        outcomes = await asyncio.gather(*(r.connect() for r in relays), return_exceptions=True)

        results: dict[str, str | None] = {}
        for relay, outcome in zip(relays, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                results[relay.url] = str(outcome) or type(outcome).__name__
            else:
                results[relay.url] = None

        failed = sum(1 for error in results.values() if error is not None)
        self._logger.info("pool_connected", connected=len(results) - failed, failed=failed)
        return results

    def subscribe(
        self,
        filters: Filters,
        on_event: EventCallback | None = None,
        on_eose: EoseCallback | None = None,
    ) -> list[PoolSubscription]:
        """Subscribe on every member with the same filters and callbacks.

        Each member connects and sends ``REQ`` in the background; a member
        that fails to connect drops its subscription without affecting the
        others. ``on_eose`` fires once per member.
        """
        subs: list[PoolSubscription] = []
        for relay in list(self._relays.values()):
            subscription_id = relay.subscribe(filters, on_event=on_event, on_eose=on_eose)
            subs.append(PoolSubscription(relay.url, subscription_id))
        return subs

    def unsubscribe(self, subs: Iterable[PoolSubscription]) -> None:
        """Unsubscribe pool subscriptions; members no longer in the pool are skipped."""
        for sub in subs:
            relay = self._relays.get(sub.relay_url)
            if relay is not None:
                relay.unsubscribe(sub.subscription_id)

    async def publish(
        self,
        event: Event,
        *,
        wait_for_ok: bool = False,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> list[PublishResult]:
        """Publish *event* to every member concurrently.

        Completes when every member has settled. Per-relay failures are
        captured in the results and never raised.

        Args:
            event: Signed event.
            wait_for_ok: Also wait for each relay's ``OK``; success then
                means the relay accepted the event.
            timeout: Acknowledgment timeout per relay (default
                ``timeouts.ok`` of the connection config).

        Returns:
            One [PublishResult][nostrkit.client.pool.PublishResult] per
            member, in membership order.

        Raises:
            TypeError: If *event* is not an [Event][nostrkit.models.event.Event].
        """
        if not isinstance(event, Event):
            raise TypeError(f"event must be an Event, got {type(event).__name__}")

        relays = list(self._relays.values())
        results = await asyncio.gather(
            *(self._publish_one(relay, event, wait_for_ok, timeout) for relay in relays)
        )

        succeeded = sum(1 for r in results if r.success)
        self._logger.info(
            "event_published", event_id=event.id, succeeded=succeeded, failed=len(results) - succeeded
        )
        return list(results)

    async def _publish_one(
        self,
        relay: RelayConnection,
        event: Event,
        wait_for_ok: bool,
        timeout: float | None,  # noqa: ASYNC109
    ) -> PublishResult:
        try:
            ack = await relay.publish(event)
            if wait_for_ok:
                ok = await asyncio.wait_for(
                    asyncio.shield(ack), timeout or relay.config.timeouts.ok
                )
                result = PublishResult(relay.url, ok.accepted, ok.message)
                outcome = "accepted" if ok.accepted else "rejected"
            else:
                result = PublishResult(relay.url, True)
                outcome = "sent"
        except TimeoutError:
            result = PublishResult(relay.url, False, "timed out waiting for acknowledgment")
            outcome = "failed"
        except NostrKitError as e:
            result = PublishResult(relay.url, False, str(e))
            outcome = "failed"
        except Exception as e:  # noqa: BLE001  # reported per relay, never raised
            self._logger.error("publish_error", relay=relay.url, error=repr(e))
            result = PublishResult(relay.url, False, repr(e))
            outcome = "failed"

        PUBLISH_RESULTS_TOTAL.labels(relay=relay.url, outcome=outcome).inc()
        if outcome == "failed":
            self._logger.warning("publish_failed", relay=relay.url, error=result.message)
        return result

    async def fetch(self, filters: Filters, timeout: float | None = None) -> list[Event]:  # noqa: ASYNC109
        """Fetch stored events from every member.

        Relays that fail are logged and skipped.

        Returns:
            Events de-duplicated by id, newest first.
        """
        relays = list(self._relays.values())
        outcomes = await asyncio.gather(
            *(r.fetch(filters, timeout=timeout) for r in relays), return_exceptions=True
        )

        by_id: dict[str, Event] = {}
        for relay, outcome in zip(relays, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self._logger.warning("fetch_failed", relay=relay.url, error=str(outcome))
                continue
            for event in outcome:
                by_id.setdefault(event.id, event)

        return sort_by_recency(by_id.values())

    async def close_all(self) -> None:
        """Close every member and empty the pool."""
        relays = list(self._relays.values())
        self._relays.clear()
        await asyncio.gather(*(r.close() for r in relays))
        self._logger.debug("pool_closed", relays=len(relays))

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> RelayPool:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close_all()

    def __repr__(self) -> str:
        return f"RelayPool(relays={len(self._relays)})"
