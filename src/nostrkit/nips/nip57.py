"""
NIP-57 lightning zaps.

A zap is requested with a signed kind 9734 event sent to the recipient's
LNURL-pay server; once the invoice is paid, the server publishes a kind
9735 receipt whose ``description`` tag embeds the original request.

This module builds zap requests, parses receipts, extracts amounts from
``bolt11`` invoices, and resolves a LUD-16 lightning address
(``name@domain``) to the server's callback URL.

The receipt parsers never raise: anything malformed yields ``None``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Final

import aiohttp

from nostrkit.models.constants import EventKind
from nostrkit.models.event import EventTemplate
from nostrkit.utils.http import read_bounded_json


logger = logging.getLogger(__name__)

_LNURL_MAX_SIZE: Final[int] = 64 * 1024

# bolt11 amount multipliers expressed as (numerator, denominator) in sats per unit
_BOLT11_MULTIPLIERS: Final[dict[str, tuple[int, int]]] = {
    "m": (100_000, 1),
    "u": (100, 1),
    "n": (1, 10),
    "p": (1, 10_000),
}
_SATS_PER_BTC: Final[int] = 100_000_000


@dataclass(frozen=True, slots=True)
class ZapReceipt:
    """Information extracted from a kind 9735 zap receipt.

    Attributes:
        amount: Requested amount in millisats (0 when the request had none).
        sender_pubkey: Public key that signed the zap request.
        recipient_pubkey: Zapped public key, or ``None``.
        event_id: Zapped event id, or ``None`` for a profile zap.
        comment: Zap request content.
        bolt11: The paid invoice.
    """

    amount: int
    sender_pubkey: str | None
    recipient_pubkey: str | None
    event_id: str | None
    comment: str
    bolt11: str


def create_zap_request(
    recipient_pubkey: str,
    amount: int,
    *,
    comment: str = "",
    relays: Iterable[str] = (),
    event_id: str | None = None,
    created_at: int | None = None,
) -> EventTemplate:
    """Build a kind 9734 zap request template.

    Args:
        recipient_pubkey: Public key being zapped.
        amount: Amount in millisats.
        comment: Optional message to the recipient.
        relays: Relays where the receipt should be published.
        event_id: Event being zapped, if any.
        created_at: Optional timestamp override.
    """
    tags = [
        ["p", recipient_pubkey],
        ["amount", str(amount)],
        ["relays", *relays],
    ]
    if event_id:
        tags.append(["e", event_id])

    template = EventTemplate(kind=int(EventKind.ZAP_REQUEST), content=comment, tags=tags)
    if created_at is not None:
        template.created_at = created_at
    return template


def _find_tag(tags: Iterable[Any], name: str) -> Any | None:
    for tag in tags:
        if len(tag) > 1 and tag[0] == name:
            return tag
    return None


def parse_zap_receipt(receipt: Any) -> ZapReceipt | None:
    """Extract the zap details from a kind 9735 receipt.

    Returns ``None`` for other kinds, a missing ``bolt11`` or
    ``description`` tag, or a description that is not a JSON zap request.
    """
    if receipt.kind != EventKind.ZAP_RECEIPT:
        return None

    bolt11_tag = _find_tag(receipt.tags, "bolt11")
    description_tag = _find_tag(receipt.tags, "description")
    if bolt11_tag is None or description_tag is None:
        return None

    try:
        request = json.loads(description_tag[1])
    except (json.JSONDecodeError, TypeError):
        logger.debug("zap_receipt_invalid_description receipt=%s", getattr(receipt, "id", None))
        return None
    if not isinstance(request, Mapping) or not isinstance(request.get("tags", []), list):
        return None

    request_tags = [tag for tag in request.get("tags", []) if isinstance(tag, list)]
    amount_tag = _find_tag(request_tags, "amount")
    try:
        amount = int(amount_tag[1]) if amount_tag else 0
    except (TypeError, ValueError):
        amount = 0
    recipient_tag = _find_tag(request_tags, "p")
    event_tag = _find_tag(request_tags, "e")
    content = request.get("content")

    return ZapReceipt(
        amount=amount,
        sender_pubkey=request.get("pubkey"),
        recipient_pubkey=recipient_tag[1] if recipient_tag else None,
        event_id=event_tag[1] if event_tag else None,
        comment=content if isinstance(content, str) else "",
        bolt11=bolt11_tag[1],
    )


def calculate_total_zaps(receipts: Iterable[Any], event_id: str | None = None) -> int:
    """Sum the zapped amounts in sats, optionally only for *event_id*.

    Each receipt is converted from millisats and rounded down individually.
    """
    total = 0
    for receipt in receipts:
        zap = parse_zap_receipt(receipt)
        if zap is not None and (event_id is None or zap.event_id == event_id):
            total += zap.amount // 1000
    return total


def satoshis_from_bolt11(bolt11: str) -> int:
    """Read the amount in sats encoded in a mainnet ``bolt11`` invoice prefix.

    Returns 0 for anything that is not an ``lnbc`` invoice with an amount.

    Examples:
        ```python
        satoshis_from_bolt11("lnbc2500u1p...")  # 250000
        satoshis_from_bolt11("lnbc20m1p...")    # 2000000
        ```
    """
    invoice = bolt11.lower()
    idx = invoice.rfind("1")
    if idx == -1:
        return 0

    prefix = invoice[:idx]
    if not prefix.startswith("lnbc"):
        return 0

    amount = prefix[4:]
    if not amount:
        return 0

    multiplier = amount[-1]
    digits = amount if multiplier.isdigit() else amount[:-1]
    if not digits.isdigit():
        return 0

    value = int(digits)
    if multiplier in _BOLT11_MULTIPLIERS:
        num, den = _BOLT11_MULTIPLIERS[multiplier]
        return value * num // den
    if multiplier.isdigit():
        return value * _SATS_PER_BTC
    return 0


def format_sats(sats: int) -> str:
    """Format a sats amount for display (``"1.50 BTC"``, ``"2.5K sats"``, ``"42 sats"``)."""
    if sats >= _SATS_PER_BTC:
        return f"{sats / _SATS_PER_BTC:.2f} BTC"
    if sats >= 1000:
        return f"{sats / 1000:.1f}K sats"
    return f"{sats} sats"


def lnurl_from_lud16(lud16: str) -> str | None:
    """Map a lightning address ``name@domain`` to its LNURL-pay well-known URL."""
    name, sep, domain = lud16.strip().partition("@")
    if not sep or not name or not domain:
        return None
    return f"https://{domain}/.well-known/lnurlp/{name}"


async def fetch_zap_endpoint(metadata_event: Any, timeout: float = 10.0) -> str | None:  # noqa: ASYNC109
    """Resolve the zap callback URL from a kind 0 metadata event.

    Reads ``lud16`` from the metadata JSON, fetches the LNURL-pay document
    and returns its ``callback`` when the server declares ``allowsNostr``
    and a ``nostrPubkey``.

    Args:
        metadata_event: Kind 0 event whose content is profile JSON.
        timeout: Total HTTP timeout in seconds.

    Returns:
        The callback URL, or ``None`` when zaps are unsupported or any step
        fails. Never raises, except for cancellation.
    """
    try:
        metadata = json.loads(metadata_event.content)
    except json.JSONDecodeError:
        return None
    if not isinstance(metadata, Mapping):
        return None

    lud16 = metadata.get("lud16")
    url = lnurl_from_lud16(lud16) if isinstance(lud16, str) else None
    if url is None:
        # lud06 (bech32 LNURL) is not supported
        return None

    try:
        async with (
            aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session,
            session.get(url) as response,
        ):
            response.raise_for_status()
            body = await read_bounded_json(response, _LNURL_MAX_SIZE)
    except (OSError, TimeoutError, aiohttp.ClientError, ValueError) as e:
        logger.debug("zap_endpoint_failed url=%s error=%s", url, e)
        return None

    if isinstance(body, Mapping) and body.get("allowsNostr") and body.get("nostrPubkey"):
        callback = body.get("callback")
        return callback if isinstance(callback, str) else None
    return None
