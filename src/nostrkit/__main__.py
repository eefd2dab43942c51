"""Command-line interface for nostrkit.

Examples:
    ```bash
    python -m nostrkit keygen
    python -m nostrkit encode npub 7e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e
    python -m nostrkit decode note1...
    PRIVATE_KEY=nsec1... python -m nostrkit publish "hello nostr" --relay wss://nos.lol
    python -m nostrkit fetch --kind 1 --limit 20 --config relays.yaml
    python -m nostrkit relays <pubkey>
    ```
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from nostrkit.client.pool import RelayPool
from nostrkit.client.relays import DEFAULT_LOOKUP_RELAY, fetch_user_relays
from nostrkit.core.exceptions import NostrKitError
from nostrkit.core.logger import Logger, StructuredFormatter
from nostrkit.nips.nip01 import create_text_note, finalize_event
from nostrkit.nips.nip19 import decode_entity, note_encode, npub_encode, nsec_encode
from nostrkit.nips.nip65 import DEFAULT_RELAYS
from nostrkit.utils.keys import ENV_PRIVATE_KEY, generate_key_pair, load_keys_from_env


logger = Logger("cli")

ENCODERS: dict[str, Callable[[str], str]] = {
    "npub": npub_encode,
    "nsec": nsec_encode,
    "note": note_encode,
}


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Log output goes to stderr so that command output on stdout stays
    machine-readable.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _build_pool(args: argparse.Namespace) -> RelayPool:
    if args.relay:
        return RelayPool.from_dict({"relays": args.relay})
    if args.config:
        return RelayPool.from_yaml(args.config)
    return RelayPool.from_dict({"relays": list(DEFAULT_RELAYS)})


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_keygen(_args: argparse.Namespace) -> int:
    pair = generate_key_pair()
    print(f"nsec {pair.nsec}")
    print(f"npub {pair.npub}")
    print(f"pubkey {pair.public_hex}")
    return 0


async def cmd_encode(args: argparse.Namespace) -> int:
    print(ENCODERS[args.prefix](args.hex))
    return 0


async def cmd_decode(args: argparse.Namespace) -> int:
    entity = decode_entity(args.value)
    print(f"{entity.prefix} {entity.hex}")
    return 0


async def cmd_publish(args: argparse.Namespace) -> int:
    keys = load_keys_from_env(args.keys_env)
    event = finalize_event(create_text_note(args.content), keys)

    async with _build_pool(args) as pool:
        results = await pool.publish(event, wait_for_ok=True, timeout=args.timeout)

    for result in results:
        status = "ok" if result.success else "failed"
        print(f"{result.relay_url} {status} {result.message}".rstrip())
    print(f"id {event.id}")
    return 0 if any(r.success for r in results) else 1


async def cmd_fetch(args: argparse.Namespace) -> int:
    filter_: dict[str, Any] = {"limit": args.limit}
    if args.kind:
        filter_["kinds"] = args.kind
    if args.author:
        filter_["authors"] = args.author

    async with _build_pool(args) as pool:
        events = await pool.fetch([filter_], timeout=args.timeout)

    for event in events:
        print(json.dumps(event.to_dict(), ensure_ascii=False))
    return 0


async def cmd_relays(args: argparse.Namespace) -> int:
    entries = await fetch_user_relays(args.pubkey, lookup_relay=args.lookup_relay, timeout=args.timeout)
    for entry in entries:
        mode = "read,write" if entry.read and entry.write else "read" if entry.read else "write"
        print(f"{entry.url} {mode}")
    return 0


COMMANDS: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
    "keygen": cmd_keygen,
    "encode": cmd_encode,
    "decode": cmd_decode,
    "publish": cmd_publish,
    "fetch": cmd_fetch,
    "relays": cmd_relays,
}


# ---------------------------------------------------------------------------
# Argument Parsing
# ---------------------------------------------------------------------------


def _add_relay_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--relay",
        action="append",
        metavar="URL",
        help="Relay URL (repeatable; overrides --config)",
    )
    parser.add_argument("--config", help="YAML file with a RelayPoolConfig mapping")
    parser.add_argument(
        "--timeout", type=float, default=None, help="Per-relay timeout in seconds"
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(prog="nostrkit", description="Nostr client toolkit")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("keygen", help="Generate a new key pair")

    encode = sub.add_parser("encode", help="Encode hex as a NIP-19 identifier")
    encode.add_argument("prefix", choices=list(ENCODERS))
    encode.add_argument("hex")

    decode = sub.add_parser("decode", help="Decode an npub/nsec/note identifier")
    decode.add_argument("value")

    publish = sub.add_parser("publish", help="Sign and publish a text note")
    publish.add_argument("content")
    publish.add_argument(
        "--keys-env",
        default=ENV_PRIVATE_KEY,
        help=f"Environment variable holding the secret key (default: {ENV_PRIVATE_KEY})",
    )
    _add_relay_options(publish)

    fetch = sub.add_parser("fetch", help="Fetch events as JSON lines, newest first")
    fetch.add_argument("--kind", type=int, action="append", help="Event kind (repeatable)")
    fetch.add_argument("--author", action="append", help="Author pubkey hex (repeatable)")
    fetch.add_argument("--limit", type=int, default=20)
    _add_relay_options(fetch)

    relays = sub.add_parser("relays", help="Show a user's NIP-65 relay list")
    relays.add_argument("pubkey")
    relays.add_argument("--lookup-relay", default=DEFAULT_LOOKUP_RELAY)
    relays.add_argument("--timeout", type=float, default=5.0)

    return parser.parse_args(argv)


async def main(argv: Sequence[str] | None = None) -> int:
    """Parse args, set up logging and run one command.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        return await COMMANDS[args.command](args)
    except (NostrKitError, ValueError, FileNotFoundError) as e:
        logger.error(f"{args.command}_failed", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
