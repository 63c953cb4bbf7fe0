import logging
from typing import Any, Dict, Optional

from . import framing
from . import jwt
from . import messages as m
from .config import Settings
from .errors import ClientClosed, NameSpaceError
from .transport import DEFAULT_CONNECT_TIMEOUT, open_socket

"""
client.py — blocking RPC client for the channel state server.

How a call works:
- Build a request dict (see messages.py), send it as one frame, block until
  the reply frame arrives, wrap it in a Response.
- Namespace calls (register_namespace, auth) raise NameSpaceError on
  success=false. Data calls hand the Response (or its success flag) back and
  leave it to the caller to look.

Notes:
- One request in flight per connection. The protocol has no request ids,
  so sharing a client between threads needs external locking.
- Nothing here retries or reconnects.
"""

logger = logging.getLogger(__name__)


class FireWSClient:
    """
    Client bound to one server connection.

    Use it as a context manager so the socket is closed on every exit path:

        with FireWSClient("tcp://127.0.0.1:8085") as ws:
            ws.auth("myapp", secret)
            ws.send("news", {"title": "hi"})
    """

    def __init__(self, address: str, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 chunk_size: int = framing.CHUNK_SIZE) -> None:
        self.address = address
        self._init(open_socket(address, connect_timeout), chunk_size)
        logger.debug(f"Connected to {address}")

    @classmethod
    def from_socket(cls, sock, chunk_size: int = framing.CHUNK_SIZE,
                    address: Optional[str] = None) -> "FireWSClient":
        """Wrap an already connected socket (or anything with sendall/recv)."""
        client = cls.__new__(cls)
        client.address = address
        client._init(sock, chunk_size)
        return client

    @classmethod
    def from_settings(cls, settings: Settings) -> "FireWSClient":
        """Connect using Settings; authenticate too if namespace and secret are set."""
        if not settings.address:
            raise ValueError("No server address configured (FIREWS_ADDRESS)")
        client = cls(settings.address, settings.connect_timeout, settings.chunk_size)
        if settings.namespace and settings.secret_key:
            try:
                client.auth(settings.namespace, settings.secret_key)
            except BaseException:
                client.close()
                raise
        return client

    def _init(self, sock, chunk_size: int) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._sock = sock
        self._chunk_size = chunk_size
        self._s_key: Optional[str] = None
        self.authenticated = False

    # -------------------------
    # Lifecycle
    # -------------------------

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()
            logger.debug(f"Closed connection to {self.address}")

    @property
    def closed(self) -> bool:
        return self._sock is None

    def __enter__(self) -> "FireWSClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------
    # Transport
    # -------------------------

    def query(self, request: Dict[str, Any]) -> m.Response:
        """Send one request and return the decoded reply."""
        if self._sock is None:
            raise ClientClosed("Client is closed")
        logger.debug(f"Query action={request.get('action')}")
        return m.Response.from_dict(framing.query(self._sock, request, self._chunk_size))

    # -------------------------
    # Namespace administration
    # -------------------------

    def register_namespace(self, name: str, key: str) -> Optional[str]:
        """
        Register a namespace and return its secretKey.
        key is the server's control key.
        """
        res = self.query(m.new_request(m.REGISTER_NAMESPACE, name=name, key=key))
        if res.success:
            return res.get("secretKey")
        logger.warning(f"registerNameSpace {name!r} rejected: {res.error.reason} ({res.error.code})")
        raise NameSpaceError(res.error.reason, res.error.code)

    def auth(self, namespace: str, s_key: str) -> "FireWSClient":
        """Authenticate this connection to a namespace. Returns self for chaining."""
        self._s_key = s_key
        res = self.query(m.new_request(m.AUTH, name=namespace, sKey=s_key))
        if not res.success:
            logger.warning(f"auth for {namespace!r} rejected: {res.error.reason} ({res.error.code})")
            raise NameSpaceError(res.error.reason, res.error.code)
        self.authenticated = True
        return self

    def generate_auth_string(self, user_id: Any, s_key: Optional[str] = None) -> str:
        """Token for user_id; uses the secret cached by auth() if s_key is omitted."""
        return jwt.generate_auth_string(user_id, s_key if s_key is not None else self._s_key)

    # -------------------------
    # Messaging and base state
    # -------------------------

    def send(self, channel: str, data: Any, user_id: Any = None) -> m.Response:
        """Emit a message to channel."""
        return self.query(m.new_request(
            m.EMIT, channel=channel, data=data, params=m.params(user_id)))

    def set(self, channel: str, data: Any, user_id: Any = None, ttl: Any = None) -> m.Response:
        """Set the channel's base state without broadcasting it."""
        return self.query(m.state_request(m.SET, channel, data, user_id, ttl, emit=False))

    def set_and_send(self, channel: str, data: Any, user_id: Any = None, ttl: Any = None) -> bool:
        """Set base state and broadcast it; True on success."""
        return self.query(m.state_request(m.SET, channel, data, user_id, ttl, emit=True)).success

    def push(self, channel: str, data: Any, user_id: Any = None, ttl: Any = None) -> m.Response:
        """Push onto the channel's base state without broadcasting."""
        return self.query(m.state_request(m.PUSH, channel, data, user_id, ttl, emit=False))

    def push_and_send(self, channel: str, data: Any, user_id: Any = None, ttl: Any = None) -> bool:
        return self.query(m.state_request(m.PUSH, channel, data, user_id, ttl, emit=True)).success

    def get(self, channel: str, user_id: Any = None) -> m.Response:
        """Fetch the channel's base state."""
        return self.query(m.new_request(m.GET, channel=channel, params=m.params(user_id)))

    def channel_info(self, channel: str) -> m.Response:
        return self.query(m.new_request(m.CHANNEL_INFO, channel=channel))

    # -------------------------
    # Private channel membership
    # -------------------------

    def subscribe(self, channel: str, user_id: Any) -> bool:
        """
        Subscribe user_id to a private channel (name starts with '#').
        Other names return False without contacting the server.
        """
        if not m.is_private_channel(channel):
            return False
        return self.query(m.new_request(
            m.SUBSCRIBE, channel=channel, params=m.params(user_id))).success

    def unsubscribe(self, channel: str, user_id: Any) -> bool:
        if not m.is_private_channel(channel):
            return False
        return self.query(m.new_request(
            m.UNSUBSCRIBE, channel=channel, params=m.params(user_id))).success

    # camelCase aliases
    registerNameSpace = register_namespace
    setAndSend = set_and_send
    pushAndSend = push_and_send
    channelInfo = channel_info
    generateAuthString = generate_auth_string
