"""
firews — client for the channel state (pub/sub) server.

What is in here:
- Length-prefixed JSON framing over a plain TCP or Unix stream socket.
- A blocking client exposing the server's actions (namespace registration,
  auth, emit, set/push base state, private channel membership, get, info).
- Minimal JWT signing/verification for user auth strings (HS*/RS*).

Quick start:
    from firews import FireWSClient

    with FireWSClient("tcp://127.0.0.1:8085") as ws:
        ws.auth("myapp", secret)
        token = ws.generate_auth_string("user-42")
"""
__all__ = [
    "FireWSClient",
    "Response",
    "ServerError",
    "Settings",
    "generate_auth_string",
    "client",
    "config",
    "errors",
    "framing",
    "jwt",
    "messages",
    "transport",
]

__version__ = "0.1.0"

from .client import FireWSClient
from .config import Settings
from .jwt import generate_auth_string
from .messages import Response, ServerError
from .errors import (
    AuthError,
    ClientClosed,
    ConnectError,
    ConnectionClosed,
    DecodeError,
    FireWSError,
    FrameError,
    FrameTooLarge,
    MalformedToken,
    MissingAlgorithm,
    MissingCredential,
    NameSpaceError,
    SignatureMismatch,
    TokenError,
    UnsupportedAlgorithm,
)
