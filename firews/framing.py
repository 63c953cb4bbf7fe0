import json
import logging
import struct
from typing import Any, Dict

from .errors import ConnectionClosed, DecodeError, FrameTooLarge

"""
framing.py — length-prefixed JSON framing over a blocking socket.

Protocol:
- Each frame = 4-byte little-endian unsigned length (N) + N bytes of UTF-8
  JSON + one trailing sentinel byte.
- The reader consumes the sentinel but never looks at its value.
- Reads are done in bounded chunks; a short recv() is normal and we simply
  keep going until exactly N bytes are in hand.

Anything with sendall()/recv() works as the "socket" (handy for tests).
"""

logger = logging.getLogger(__name__)

LENGTH_STRUCT = struct.Struct("<I")  # little-endian unsigned 32-bit length
SENTINEL = b"\x00"
CHUNK_SIZE = 1024  # max bytes asked of a single recv()
MAX_FRAME_SIZE = 64 * 1024 * 1024  # 64 MiB hard limit


def encode_frame(obj: Any) -> bytes:
    """Serialize obj to compact JSON and wrap it in a frame."""
    payload = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    if len(payload) > MAX_FRAME_SIZE:
        raise FrameTooLarge(f"Frame too large: {len(payload)} > {MAX_FRAME_SIZE}")
    return LENGTH_STRUCT.pack(len(payload)) + payload + SENTINEL


def write_frame(sock, obj: Dict[str, Any]) -> None:
    """Send one framed request. Does not wait for a reply."""
    frame = encode_frame(obj)
    sock.sendall(frame)
    logger.debug(f"Sent frame of {len(frame) - LENGTH_STRUCT.size - 1} payload bytes")


def read_exactly(sock, n: int, chunk_size: int = CHUNK_SIZE) -> bytes:
    """
    Read exactly n bytes, never asking recv() for more than remain.

    Raises:
        ConnectionClosed: if the peer hits EOF first.
    """
    buf = bytearray()
    while len(buf) < n:
        chunk = sock.recv(min(chunk_size, n - len(buf)))
        if not chunk:
            raise ConnectionClosed(expected=n, received=len(buf))
        buf += chunk
    return bytes(buf)


def read_frame(sock, chunk_size: int = CHUNK_SIZE) -> Any:
    """
    Read one framed JSON message and return the decoded value.

    Raises:
        ConnectionClosed: stream ended mid-frame.
        FrameTooLarge:    length prefix above MAX_FRAME_SIZE.
        DecodeError:      payload is not valid UTF-8 JSON.
    """
    # 1) Length prefix.
    (length,) = LENGTH_STRUCT.unpack(read_exactly(sock, LENGTH_STRUCT.size, chunk_size))
    if length > MAX_FRAME_SIZE:
        raise FrameTooLarge(f"Frame too large: {length} > {MAX_FRAME_SIZE}")

    # 2) Payload, then the sentinel byte.
    payload = read_exactly(sock, length, chunk_size)
    read_exactly(sock, len(SENTINEL), chunk_size)
    logger.debug(f"Received frame of {length} payload bytes")

    # 3) Decode. No payload echo in the error to avoid leaking big data.
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Invalid JSON frame: {exc}") from exc


def query(sock, obj: Dict[str, Any], chunk_size: int = CHUNK_SIZE) -> Any:
    """One synchronous round trip: write a request frame, read the reply frame."""
    write_frame(sock, obj)
    return read_frame(sock, chunk_size)
