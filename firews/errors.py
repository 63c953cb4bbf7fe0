"""
errors.py — every exception the client can raise, in one place.

Layout:
- FireWSError is the root, so callers can catch "anything from this library".
- Connection problems also subclass the builtin ConnectionError, and framing /
  token problems also subclass ValueError, so generic handlers keep working.
"""

from typing import Optional


class FireWSError(Exception):
    """Base class for all firews errors."""


# -----------------
# Connection errors
# -----------------

class ConnectError(FireWSError, ConnectionError):
    """The socket to the server could not be established."""

    def __init__(self, strerror: str, errno: Optional[int] = None) -> None:
        super().__init__(strerror)
        self.strerror = strerror
        self.errno = errno

    def __str__(self) -> str:
        if self.errno is None:
            return self.strerror
        return f"[Errno {self.errno}] {self.strerror}"


class ConnectionClosed(FireWSError, ConnectionError):
    """The peer closed the stream before a full frame arrived."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"Connection closed after {received} of {expected} bytes")
        self.expected = expected
        self.received = received


class ClientClosed(FireWSError, ConnectionError):
    """A call was made after close()."""


# -------------
# Frame errors
# -------------

class FrameError(FireWSError, ValueError):
    """Something is wrong with a frame's contents."""


class DecodeError(FrameError):
    """Frame payload is not valid UTF-8 JSON."""


class FrameTooLarge(FrameError):
    """Frame length exceeds MAX_FRAME_SIZE."""


# -----------------------
# Server-side rejections
# -----------------------

class NameSpaceError(FireWSError):
    """Server answered success=false to registerNameSpace or auth."""

    def __init__(self, reason: Optional[str], code: Optional[int] = None) -> None:
        super().__init__(reason or "Namespace request rejected")
        self.reason = reason
        self.code = code


class AuthError(FireWSError):
    """Auth string generation failed."""


class MissingCredential(AuthError):
    """User id or shared secret was not supplied."""


# ------------
# Token errors
# ------------

class TokenError(FireWSError, ValueError):
    """Base class for JWT encode/decode failures."""


class UnsupportedAlgorithm(TokenError):
    pass


class MalformedToken(TokenError):
    pass


class MissingAlgorithm(TokenError):
    pass


class SignatureMismatch(TokenError):
    pass
