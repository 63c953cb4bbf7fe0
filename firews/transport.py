"""
transport.py — turn an address string into a connected stream socket.

Accepted forms:
    tcp://host:port      TCP
    host:port            TCP (scheme omitted)
    unix:///run/ws.sock  Unix domain socket
    unix:/run/ws.sock    Unix domain socket
    /run/ws.sock         Unix domain socket (bare path)

TLS, if wanted, belongs to whoever wraps the socket; this layer is plain.
"""

import logging
import socket
from typing import NamedTuple, Optional
from urllib.parse import urlsplit

from .errors import ConnectError

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 4.0


class Address(NamedTuple):
    family: int
    host: Optional[str]
    port: Optional[int]
    path: Optional[str]

    def __str__(self) -> str:
        if self.family == socket.AF_INET:
            return f"tcp://{self.host}:{self.port}"
        return f"unix://{self.path}"


def parse_address(address: str) -> Address:
    """
    Parse a scheme-qualified socket address.

    Raises:
        ValueError: unknown scheme, missing port, or empty address.
    """
    if not address:
        raise ValueError("Empty socket address")

    if "://" not in address:
        if address.startswith("unix:"):
            return Address(socket.AF_UNIX, None, None, address[len("unix:"):])
        if address.startswith(("/", ".")):
            return Address(socket.AF_UNIX, None, None, address)
        address = "tcp://" + address

    parts = urlsplit(address)
    if parts.scheme == "unix":
        path = parts.netloc + parts.path
        if not path:
            raise ValueError(f"Missing socket path in {address!r}")
        return Address(socket.AF_UNIX, None, None, path)
    if parts.scheme == "tcp":
        if not parts.hostname or parts.port is None:
            raise ValueError(f"Expected tcp://host:port, got {address!r}")
        # AF_INET here just tags "TCP"; create_connection resolves v4 or v6.
        return Address(socket.AF_INET, parts.hostname, parts.port, None)
    raise ValueError(f"Unsupported socket scheme {parts.scheme!r}")


def open_socket(address: str, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> socket.socket:
    """
    Connect to address within timeout seconds and return a blocking socket.

    Raises:
        ConnectError: carries the platform message and errno.
        ValueError:   the address string is malformed.
    """
    addr = parse_address(address)
    logger.debug(f"Connecting to {addr} (timeout {timeout}s)")
    try:
        if addr.family == socket.AF_UNIX:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.settimeout(timeout)
                sock.connect(addr.path)
            except OSError:
                sock.close()
                raise
        else:
            sock = socket.create_connection((addr.host, addr.port), timeout=timeout)
    except socket.timeout as exc:
        raise ConnectError(f"Connection to {addr} timed out", exc.errno) from exc
    except OSError as exc:
        raise ConnectError(exc.strerror or str(exc), exc.errno) from exc

    # Only the connect is time-limited; calls afterwards block.
    sock.settimeout(None)
    return sock
