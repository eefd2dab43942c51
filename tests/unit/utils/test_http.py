"""Unit tests for utils.http module.

Tests:
- _read_bounded() internal helper
  - Single-read and chunked responses
  - Size enforcement across chunks
- read_bounded_json() async function
  - Valid JSON parsing within size limit
  - Oversized response rejection
  - Invalid JSON handling
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from nostrkit.utils.http import _read_bounded, read_bounded_json


def _mock_response(*chunks: bytes) -> MagicMock:
    """Build a mock aiohttp.ClientResponse that yields chunks then EOF."""
    resp = MagicMock()
    resp.content.read = AsyncMock(side_effect=[*chunks, b""])
    return resp


# =============================================================================
# _read_bounded() Tests
# =============================================================================


class TestReadBounded:
    """_read_bounded()."""

    @pytest.mark.asyncio
    async def test_single_read(self) -> None:
        assert await _read_bounded(_mock_response(b"hello"), max_size=1024) == b"hello"

    @pytest.mark.asyncio
    async def test_exact_limit(self) -> None:
        assert await _read_bounded(_mock_response(b"x" * 100), max_size=100) == b"x" * 100

    @pytest.mark.asyncio
    async def test_chunks_joined(self) -> None:
        resp = _mock_response(b"ab", b"cd", b"ef")
        assert await _read_bounded(resp, max_size=1024) == b"abcdef"

    @pytest.mark.asyncio
    async def test_read_size_shrinks(self) -> None:
        """Each read asks only for what is left of the budget plus one byte."""
        resp = _mock_response(b"abcd", b"ef")
        await _read_bounded(resp, max_size=10)
        sizes = [call.args[0] for call in resp.content.read.call_args_list]
        assert sizes == [11, 7, 5]

    @pytest.mark.asyncio
    async def test_rejects_across_chunks(self) -> None:
        resp = _mock_response(b"x" * 60, b"x" * 60)
        with pytest.raises(ValueError, match="Response body too large"):
            await _read_bounded(resp, max_size=100)


# =============================================================================
# read_bounded_json() Tests
# =============================================================================


class TestReadBoundedJson:
    """read_bounded_json()."""

    @pytest.mark.asyncio
    async def test_object(self) -> None:
        resp = _mock_response(b'{"callback": "https://x", "allowsNostr": true}')
        assert await read_bounded_json(resp, max_size=1024) == {
            "callback": "https://x",
            "allowsNostr": True,
        }

    @pytest.mark.asyncio
    async def test_chunked(self) -> None:
        resp = _mock_response(b'{"a": ', b"[1, 2]}")
        assert await read_bounded_json(resp, max_size=1024) == {"a": [1, 2]}

    @pytest.mark.asyncio
    async def test_too_large(self) -> None:
        with pytest.raises(ValueError, match="too large"):
            await read_bounded_json(_mock_response(b"[" + b"1," * 100 + b"1]"), max_size=50)

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        with pytest.raises(ValueError):
            await read_bounded_json(_mock_response(b"<html>"), max_size=1024)
