"""
Unit tests for client.pool module.

Tests:
- RelayPoolConfig - canonicalization and de-duplication, YAML/dict loading
- Membership - add_relay(), remove_relay(), containment
- connect() - per-relay outcomes
- subscribe()/unsubscribe() - fan-out across members
- publish() - per-relay results, partial failure, acknowledgments
- fetch() - merged, de-duplicated results
- close_all() and context manager
"""

import asyncio

import pytest

from nostrkit.client.connection import RelayConnectionConfig, RelayTimeoutsConfig
from nostrkit.client.pool import PoolSubscription, PublishResult, RelayPool, RelayPoolConfig
from nostrkit.client.state import ConnectionState


RELAY_A = "wss://a.example.com"
RELAY_B = "wss://b.example.com"
RELAY_C = "wss://c.example.com"
ALL_RELAYS = [RELAY_A, RELAY_B, RELAY_C]


def _pool(network, relays=ALL_RELAYS, **connection) -> RelayPool:
    config = RelayPoolConfig(relays=relays, connection=RelayConnectionConfig(**connection))
    return RelayPool(config, transport_factory=network)


def _req_id(network, url) -> str:
    return network.last(url).frames("REQ")[0][1]


def _all_sent(network, urls, frame_type) -> bool:
    return all(url in network.transports and network.last(url).frames(frame_type) for url in urls)


# =============================================================================
# Configuration Tests
# =============================================================================


class TestRelayPoolConfig:
    """RelayPoolConfig model."""

    def test_defaults(self):
        config = RelayPoolConfig()
        assert config.relays == []
        assert config.connection.verify_events is True

    def test_canonicalized_and_deduplicated(self):
        config = RelayPoolConfig(
            relays=["wss://A.example.com/", "a.example.com", "wss://b.example.com:443", RELAY_A]
        )
        assert config.relays == [RELAY_A, RELAY_B]

    def test_invalid_url(self):
        with pytest.raises(ValueError):
            RelayPoolConfig(relays=["https://a.example.com"])

    def test_from_dict(self, network):
        pool = RelayPool.from_dict(
            {"relays": [RELAY_A, RELAY_B], "connection": {"timeouts": {"ok": 3.0}}},
            transport_factory=network,
        )
        assert pool.urls == [RELAY_A, RELAY_B]
        assert pool.get(RELAY_A).config.timeouts.ok == 3.0

    def test_from_yaml(self, tmp_path, network):
        path = tmp_path / "relays.yaml"
        path.write_text(
            "relays:\n  - wss://a.example.com\n  - wss://b.example.com/\n"
            "connection:\n  verify_events: false\n"
        )
        pool = RelayPool.from_yaml(str(path), transport_factory=network)
        assert pool.urls == [RELAY_A, RELAY_B]
        assert pool.config.connection.verify_events is False

    def test_from_yaml_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RelayPool.from_yaml(str(tmp_path / "missing.yaml"))


# =============================================================================
# Membership Tests
# =============================================================================


class TestMembership:
    """add_relay(), remove_relay() and containment."""

    def test_add_duplicate_returns_existing(self, network):
        pool = _pool(network, relays=[])
        first = pool.add_relay("wss://A.example.com/")
        second = pool.add_relay(RELAY_A)

        assert first is second
        assert len(pool) == 1
        assert pool.urls == [RELAY_A]

    def test_contains(self, network):
        pool = _pool(network)
        assert "a.example.com" in pool
        assert "wss://d.example.com" not in pool
        assert "http://a.example.com" not in pool
        assert 42 not in pool

    def test_iter(self, network):
        assert [relay.url for relay in _pool(network)] == ALL_RELAYS

    def test_add_does_not_connect(self, network):
        _pool(network)
        assert network.attempts == []

    @pytest.mark.asyncio
    async def test_remove_closes(self, network):
        pool = _pool(network)
        await pool.get(RELAY_A).connect()

        await pool.remove_relay("wss://a.example.com/")

        assert RELAY_A not in pool
        assert network.last(RELAY_A).closed
        assert len(pool) == 2

    @pytest.mark.asyncio
    async def test_remove_unknown(self, network):
        pool = _pool(network)
        await pool.remove_relay("wss://d.example.com")
        assert len(pool) == 3


# =============================================================================
# connect() Tests
# =============================================================================


class TestConnect:
    """connect()."""

    @pytest.mark.asyncio
    async def test_reports_each_relay(self, network):
        network.unreachable.add(RELAY_B)
        pool = _pool(network)

        results = await pool.connect()

        assert results[RELAY_A] is None
        assert results[RELAY_C] is None
        assert "refused" in results[RELAY_B]
        assert pool.get(RELAY_B).state is ConnectionState.ERROR
        await pool.close_all()


# =============================================================================
# Subscription Fan-out Tests
# =============================================================================


class TestSubscribe:
    """subscribe() and unsubscribe() across members."""

    @pytest.mark.asyncio
    async def test_three_relays_two_events_each(self, network, wait_until, make_event):
        pool = _pool(network)
        received = []

        subs = pool.subscribe({"kinds": [1]}, on_event=received.append)
        await wait_until(lambda: _all_sent(network, ALL_RELAYS, "REQ"))

        assert {s.relay_url for s in subs} == set(ALL_RELAYS)
        assert all(isinstance(s, PoolSubscription) for s in subs)

        for url in ALL_RELAYS:
            for i in range(2):
                event = make_event(content=f"{url} #{i}")
                network.last(url).feed(["EVENT", _req_id(network, url), event.to_dict()])
        await wait_until(lambda: len(received) == 6)

        for url in ALL_RELAYS:
            contents = [e.content for e in received if e.content.startswith(url)]
            assert contents == [f"{url} #0", f"{url} #1"]

        sub_a = next(s for s in subs if s.relay_url == RELAY_A)
        pool.unsubscribe([sub_a])
        for url in ALL_RELAYS:
            late = make_event(content=f"{url} late")
            network.last(url).feed(["EVENT", _req_id(network, url), late.to_dict()])
        await wait_until(lambda: len(received) == 8)
        await wait_until(lambda: all(network.last(url)._incoming.empty() for url in ALL_RELAYS))
        await asyncio.sleep(0)

        assert len(received) == 8
        assert not any(e.content == f"{RELAY_A} late" for e in received)
        await pool.close_all()

    @pytest.mark.asyncio
    async def test_unreachable_member_does_not_affect_others(self, network, wait_until, signed_event):
        network.unreachable.add(RELAY_C)
        pool = _pool(network)
        received = []

        pool.subscribe({"kinds": [1]}, on_event=received.append)
        await wait_until(lambda: _all_sent(network, [RELAY_A, RELAY_B], "REQ"))
        await wait_until(lambda: not pool.get(RELAY_C).subscriptions)

        network.last(RELAY_A).feed(["EVENT", _req_id(network, RELAY_A), signed_event.to_dict()])
        await wait_until(lambda: received)
        assert received == [signed_event]
        await pool.close_all()

    @pytest.mark.asyncio
    async def test_unsubscribe_skips_removed_member(self, network):
        pool = _pool(network)
        subs = pool.subscribe({"kinds": [1]}, on_event=lambda e: None)
        await pool.remove_relay(RELAY_A)

        pool.unsubscribe(subs)

        assert all(not relay.subscriptions for relay in pool)
        await pool.close_all()


# =============================================================================
# publish() Tests
# =============================================================================


class TestPublish:
    """publish()."""

    @pytest.mark.asyncio
    async def test_partial_failure(self, network, signed_event):
        network.unreachable.add(RELAY_B)
        pool = _pool(network)

        results = await pool.publish(signed_event)

        assert [r.relay_url for r in results] == ALL_RELAYS
        assert [r.success for r in results] == [True, False, True]
        assert "refused" in results[1].message
        for url in (RELAY_A, RELAY_C):
            assert network.last(url).frames("EVENT") == [["EVENT", signed_event.to_dict()]]
        await pool.close_all()

    @pytest.mark.asyncio
    async def test_wait_for_ok(self, network, wait_until, signed_event):
        pool = _pool(network)
        task = asyncio.create_task(pool.publish(signed_event, wait_for_ok=True, timeout=0.5))
        await wait_until(lambda: _all_sent(network, ALL_RELAYS, "EVENT"))

        network.last(RELAY_A).feed(["OK", signed_event.id, True, ""])
        network.last(RELAY_B).feed(["OK", signed_event.id, False, "blocked: spam"])

        results = await asyncio.wait_for(task, 2.0)

        assert results == [
            PublishResult(RELAY_A, True, ""),
            PublishResult(RELAY_B, False, "blocked: spam"),
            PublishResult(RELAY_C, False, "timed out waiting for acknowledgment"),
        ]
        await pool.close_all()

    @pytest.mark.asyncio
    async def test_connection_lost_while_waiting(self, network, wait_until, signed_event):
        pool = _pool(network, relays=[RELAY_A])
        task = asyncio.create_task(pool.publish(signed_event, wait_for_ok=True, timeout=1.0))
        await wait_until(lambda: _all_sent(network, [RELAY_A], "EVENT"))

        network.last(RELAY_A).drop()

        [result] = await asyncio.wait_for(task, 2.0)
        assert result.success is False
        assert "lost" in result.message

    @pytest.mark.asyncio
    async def test_empty_pool(self, network, signed_event):
        assert await _pool(network, relays=[]).publish(signed_event) == []

    @pytest.mark.asyncio
    async def test_rejects_non_event(self, network):
        with pytest.raises(TypeError):
            await _pool(network).publish({"kind": 1})  # type: ignore[arg-type]
        assert network.attempts == []


# =============================================================================
# fetch() Tests
# =============================================================================


class TestFetch:
    """fetch()."""

    @pytest.mark.asyncio
    async def test_merged_and_deduplicated(self, network, wait_until, make_event):
        network.unreachable.add(RELAY_C)
        pool = _pool(network)
        old = make_event(content="old", created_at=1)
        mid = make_event(content="mid", created_at=2)
        new = make_event(content="new", created_at=3)

        task = asyncio.create_task(pool.fetch({"kinds": [1]}))
        await wait_until(lambda: _all_sent(network, [RELAY_A, RELAY_B], "REQ"))
        for url, events in ((RELAY_A, (old, mid)), (RELAY_B, (mid, new))):
            sub_id = _req_id(network, url)
            for event in events:
                network.last(url).feed(["EVENT", sub_id, event.to_dict()])
            network.last(url).feed(["EOSE", sub_id])

        assert await asyncio.wait_for(task, 2.0) == [new, mid, old]
        await pool.close_all()


# =============================================================================
# Shutdown Tests
# =============================================================================


class TestCloseAll:
    """close_all() and the async context manager."""

    @pytest.mark.asyncio
    async def test_close_all_empties_pool(self, network):
        pool = _pool(network)
        await pool.connect()
        connections = list(pool)

        await pool.close_all()

        assert len(pool) == 0
        assert all(c.state is ConnectionState.DISCONNECTED for c in connections)
        assert all(network.last(url).closed for url in ALL_RELAYS)

    @pytest.mark.asyncio
    async def test_context_manager(self, network):
        async with _pool(network, timeouts=RelayTimeoutsConfig(connect=1.0)) as pool:
            assert all(relay.is_connected for relay in pool)
        assert len(pool) == 0
