import json
import struct

import pytest


class FakeSocket:
    """
    Stand-in for a connected socket.

    Serves `incoming` back through recv(), at most `piece` bytes per call
    (None means as much as asked for), and records everything sent.
    """

    def __init__(self, incoming=b"", piece=None):
        self.incoming = bytearray(incoming)
        self.piece = piece
        self.sent = bytearray()
        self.recv_sizes = []
        self.closed = False

    def recv(self, n):
        self.recv_sizes.append(n)
        take = n if self.piece is None else min(n, self.piece)
        chunk = bytes(self.incoming[:take])
        del self.incoming[:take]
        return chunk

    def sendall(self, data):
        self.sent += data

    def close(self):
        self.closed = True

    def sent_frames(self):
        """Decode everything sent so far into a list of JSON values."""
        frames = []
        buf = bytes(self.sent)
        while buf:
            (length,) = struct.unpack("<I", buf[:4])
            frames.append(json.loads(buf[4:4 + length].decode("utf-8")))
            buf = buf[4 + length + 1:]
        return frames


class UntouchableSocket:
    """Fails the test on any I/O."""

    def recv(self, n):
        raise AssertionError("recv() should not have been called")

    def sendall(self, data):
        raise AssertionError("sendall() should not have been called")

    def close(self):
        pass


def frame(obj, sentinel=b"\x00"):
    payload = json.dumps(obj).encode("utf-8")
    return struct.pack("<I", len(payload)) + payload + sentinel


@pytest.fixture
def make_socket():
    """Factory: make_socket(*reply_objects, piece=None) -> FakeSocket."""
    def factory(*replies, piece=None):
        return FakeSocket(b"".join(frame(r) for r in replies), piece=piece)
    return factory


@pytest.fixture
def make_raw_socket():
    """Factory: make_raw_socket(raw_bytes, piece=None) -> FakeSocket."""
    def factory(raw, piece=None):
        return FakeSocket(raw, piece=piece)
    return factory


@pytest.fixture
def untouchable_socket():
    return UntouchableSocket()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
