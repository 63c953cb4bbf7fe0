import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from . import jwt
from .client import FireWSClient
from .config import Settings
from .errors import FireWSError

"""
run_client.py — one-shot command line wrapper around FireWSClient.

Quick examples:
  Register:     firews --address tcp://127.0.0.1:8085 register myapp CONTROL_KEY
  Send:         firews --address tcp://127.0.0.1:8085 --namespace myapp --skey S \
                    send news '{"title": "hello"}'
  Set + emit:   firews ... set news '{"n": 1}' --emit --ttl 60
  Subscribe:    firews ... subscribe '#room' user-42
  Token:        firews --skey S token user-42       (offline)

FIREWS_* environment variables (see config.py) fill in anything not given.
"""

logger = logging.getLogger(__name__)


def parse_data(text: str) -> Any:
    """Treat DATA as JSON when it parses, otherwise as a plain string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="firews", description="Channel state server client")
    p.add_argument("--address", help="tcp://host:port or unix socket path")
    p.add_argument("--namespace", help="namespace to auth against before the command")
    p.add_argument("--skey", help="namespace secret key")
    p.add_argument("--timeout", type=float, help="connect timeout in seconds")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = p.add_subparsers(dest="command")
    sub.required = True

    sp = sub.add_parser("register", help="register a namespace, print its secret")
    sp.add_argument("name")
    sp.add_argument("key", help="server control key")

    sp = sub.add_parser("send", help="emit a message to a channel")
    sp.add_argument("channel")
    sp.add_argument("data")
    sp.add_argument("--user", dest="user_id")

    for name in ("set", "push"):
        sp = sub.add_parser(name, help=f"{name} base state for a channel")
        sp.add_argument("channel")
        sp.add_argument("data")
        sp.add_argument("--user", dest="user_id")
        sp.add_argument("--ttl", type=int)
        sp.add_argument("--emit", action="store_true", help="also broadcast the new state")

    sp = sub.add_parser("get", help="print a channel's base state")
    sp.add_argument("channel")
    sp.add_argument("--user", dest="user_id")

    sp = sub.add_parser("info", help="print channel info")
    sp.add_argument("channel")

    for name in ("subscribe", "unsubscribe"):
        sp = sub.add_parser(name, help=f"{name} a user on a private (#) channel")
        sp.add_argument("channel")
        sp.add_argument("user_id")

    sp = sub.add_parser("token", help="print an auth string for a user (no connection)")
    sp.add_argument("user_id")
    sp.add_argument("--algo", default=jwt.DEFAULT_ALGORITHM)

    return p


def run_command(client: FireWSClient, args: argparse.Namespace) -> Any:
    """Run one subcommand against a connected client; return something printable."""
    if args.command == "register":
        return {"secretKey": client.register_namespace(args.name, args.key)}
    if args.command == "send":
        return dict(client.send(args.channel, parse_data(args.data), args.user_id))
    if args.command in ("set", "push"):
        data = parse_data(args.data)
        if args.command == "set":
            if args.emit:
                return {"success": client.set_and_send(args.channel, data, args.user_id, args.ttl)}
            return dict(client.set(args.channel, data, args.user_id, args.ttl))
        if args.emit:
            return {"success": client.push_and_send(args.channel, data, args.user_id, args.ttl)}
        return dict(client.push(args.channel, data, args.user_id, args.ttl))
    if args.command == "get":
        return dict(client.get(args.channel, args.user_id))
    if args.command == "info":
        return dict(client.channel_info(args.channel))
    if args.command == "subscribe":
        return {"success": client.subscribe(args.channel, args.user_id)}
    if args.command == "unsubscribe":
        return {"success": client.unsubscribe(args.channel, args.user_id)}
    raise ValueError(f"Unknown command {args.command!r}")


def main(argv: Optional[List[str]] = None) -> None:
    """Parse arguments, run the command, print the result as JSON."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = Settings.from_env()
    except ValueError as exc:
        raise SystemExit(f"Bad FIREWS_* setting: {exc}")
    settings.address = args.address or settings.address
    settings.namespace = args.namespace or settings.namespace
    settings.secret_key = args.skey or settings.secret_key
    if args.timeout is not None:
        settings.connect_timeout = args.timeout

    try:
        if args.command == "token":
            # Offline: no connection needed.
            if settings.secret_key is None:
                raise SystemExit("--skey (or FIREWS_SECRET_KEY) required for token")
            print(jwt.encode(args.user_id, settings.secret_key, args.algo))
            return

        if not settings.address:
            raise SystemExit("--address (or FIREWS_ADDRESS) required")
        with FireWSClient.from_settings(settings) as client:
            result = run_command(client, args)
    except (FireWSError, OSError, ValueError) as exc:
        logger.debug("Command failed", exc_info=True)
        raise SystemExit(f"{type(exc).__name__}: {exc}")

    json.dump(result, sys.stdout, ensure_ascii=False)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
