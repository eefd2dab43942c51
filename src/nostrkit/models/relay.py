"""
Canonical Nostr relay URL with network type detection.

Parses, normalizes, and validates WebSocket relay URLs (``ws://`` or
``wss://``) so that equality and de-duplication comparisons operate on a
single canonical spelling. The network type (clearnet, Tor, I2P, Lokinet,
local) is detected from the hostname and used by the transport layer to
decide whether a SOCKS proxy is required.

Canonicalization rules:

* a missing scheme defaults to ``wss://``;
* scheme and host are lowercased (RFC 3986 normalization);
* repeated ``/`` in the path are collapsed and a trailing ``/`` is stripped;
* the default port for the scheme (80 for ``ws``, 443 for ``wss``) is dropped;
* query parameters are sorted by key (stable for repeated keys);
* the fragment is removed.

The transformation is idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from ipaddress import ip_address
from typing import Any, ClassVar
from urllib.parse import parse_qsl, urlencode

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import NetworkType


@dataclass(frozen=True, slots=True)
class RelayUrl:
    """Immutable canonical relay URL.

    Two ``RelayUrl`` instances compare equal when their canonical ``url`` is
    equal, regardless of how the raw input was spelled.

    Attributes:
        url: Fully canonical URL including scheme.
        network: Detected ``NetworkType`` enum value.
        scheme: URL scheme (``ws`` or ``wss``).
        host: Hostname or IP address (brackets stripped for IPv6).
        port: Explicit non-default port number, or ``None``.
        path: Normalized path component, or ``None``.
        query: Sorted query string without the leading ``?``, or ``None``.

    Raises:
        ValueError: If the URL is malformed, uses an unsupported scheme,
            has no host, or contains null bytes.

    Examples:
        ```python
        RelayUrl("relay.example.com").url              # 'wss://relay.example.com'
        RelayUrl("wss://relay.example.com:443/").url   # 'wss://relay.example.com'
        RelayUrl("ws://abc.onion").network             # NetworkType.TOR
        ```
    """

    raw_url: str = field(repr=False, compare=False)

    url: str = field(init=False)
    network: NetworkType = field(init=False, compare=False)
    scheme: str = field(init=False, compare=False)
    host: str = field(init=False, compare=False)
    port: int | None = field(init=False, compare=False)
    path: str | None = field(init=False, compare=False)
    query: str | None = field(init=False, compare=False)

    _DEFAULT_SCHEME: ClassVar[str] = "wss"
    _DEFAULT_PORTS: ClassVar[dict[str, int]] = {"ws": 80, "wss": 443}

    _NETWORK_TLDS: ClassVar[dict[str, NetworkType]] = {
        ".onion": NetworkType.TOR,
        ".i2p": NetworkType.I2P,
        ".loki": NetworkType.LOKI,
    }

    def __post_init__(self) -> None:
        if not isinstance(self.raw_url, str):
            raise ValueError(f"Relay URL must be a str, got {type(self.raw_url).__name__}")
        if "\x00" in self.raw_url:
            raise ValueError("Relay URL contains null bytes")

        parsed = self._parse(self.raw_url)

        object.__setattr__(self, "url", parsed["url"])
        object.__setattr__(self, "network", parsed["network"])
        object.__setattr__(self, "scheme", parsed["scheme"])
        object.__setattr__(self, "host", parsed["host"])
        object.__setattr__(self, "port", parsed["port"])
        object.__setattr__(self, "path", parsed["path"])
        object.__setattr__(self, "query", parsed["query"])

    def __str__(self) -> str:
        return self.url

    @staticmethod
    def _detect_network(host: str) -> NetworkType:
        """Classify a hostname into a network type.

        Overlay TLDs are checked first, then loopback/private IP addresses,
        and finally the general shape of a domain name.
        """
        if not host:
            return NetworkType.UNKNOWN

        host_bare = host.lower().strip("[]")

        for tld, network in RelayUrl._NETWORK_TLDS.items():
            if host_bare.endswith(tld):
                return network

        if host_bare in ("localhost", "localhost.localdomain"):
            return NetworkType.LOCAL

        try:
            ip = ip_address(host_bare)
        except ValueError:
            pass
        else:
            if ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved:
                return NetworkType.LOCAL
            return NetworkType.CLEARNET

        if "." not in host_bare:
            return NetworkType.UNKNOWN

        labels = host_bare.split(".")
        valid = all(
            label and not label.startswith("-") and not label.endswith("-") for label in labels
        )
        return NetworkType.CLEARNET if valid else NetworkType.UNKNOWN

    @staticmethod
    def _parse(raw: str) -> dict[str, Any]:
        """Parse and canonicalize a raw relay URL string.

        Args:
            raw: Raw URL string (e.g. ``"Relay.Example.com:443//nostr/"``).

        Returns:
            Dictionary with ``url``, ``scheme``, ``host``, ``port``,
            ``path``, ``query`` and ``network``.

        Raises:
            ValueError: If the scheme is not ``ws``/``wss`` or the URI is invalid.
        """
        raw = raw.strip()
        if not raw:
            raise ValueError("Relay URL is empty")
        if "://" not in raw:
            raw = f"{RelayUrl._DEFAULT_SCHEME}://{raw}"

        uri = uri_reference(raw).normalize()

        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .allow_schemes("ws", "wss")
            .check_validity_of("scheme", "host", "port", "path")
        )

        try:
            validator.validate(uri)
        except UnpermittedComponentError:
            raise ValueError(f"Invalid scheme: must be ws or wss, got {uri.scheme!r}") from None
        except ValidationError as e:
            raise ValueError(f"Invalid URL: {e}") from None

        scheme = uri.scheme
        host = uri.host.strip("[]")
        if not host:
            raise ValueError("Relay URL has no host")

        port = int(uri.port) if uri.port else None
        if port == RelayUrl._DEFAULT_PORTS[scheme]:
            port = None

        path = uri.path or ""
        while "//" in path:
            path = path.replace("//", "/")
        path = path.rstrip("/") or None

        query = None
        if uri.query:
            pairs = parse_qsl(uri.query, keep_blank_values=True)
            query = urlencode(sorted(pairs, key=lambda kv: kv[0])) or None

        formatted_host = f"[{host}]" if ":" in host else host
        url = f"{scheme}://{formatted_host}"
        if port is not None:
            url += f":{port}"
        url += path or ""
        if query:
            url += f"?{query}"

        return {
            "url": url,
            "scheme": scheme,
            "host": host,
            "port": port,
            "path": path,
            "query": query,
            "network": RelayUrl._detect_network(host),
        }


def normalize_relay_url(url: str | RelayUrl) -> str:
    """Return the canonical string form of a relay URL.

    Args:
        url: Raw URL string or an existing
            [RelayUrl][nostrkit.models.relay.RelayUrl].

    Returns:
        The canonical URL, e.g. ``"wss://relay.example.com"``.

    Raises:
        ValueError: If the URL cannot be canonicalized.
    """
    if isinstance(url, RelayUrl):
        return url.url
    return RelayUrl(url).url
