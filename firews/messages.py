from dataclasses import dataclass, field
from collections.abc import Mapping
from typing import Any, Dict, Iterator, Optional

"""
messages.py — request builders and the response wrapper.

What this module does:
- Names every action the server understands (so callers don't pass raw strings).
- Builds request dicts in the exact shape the server expects.
- Wraps decoded replies in a small tagged result: success flag, optional
  ServerError(reason, code), and the raw mapping for operation payloads.
"""

# -----------------------
# Public action tags
# -----------------------
REGISTER_NAMESPACE = "registerNameSpace"
AUTH = "auth"
EMIT = "emit"
SET = "set"
PUSH = "push"
SUBSCRIBE = "subscribe"
UNSUBSCRIBE = "unsubscribe"
GET = "get"
CHANNEL_INFO = "channelInfo"

PRIVATE_CHANNEL_PREFIX = "#"


def new_request(action: str, **fields: Any) -> Dict[str, Any]:
    """
    Create a request dict with 'action' first, then the given fields.

    Fields set to None are still sent; the server treats null as "not given".
    """
    req: Dict[str, Any] = {"action": action}
    req.update(fields)
    return req


def params(user_id: Any = None, emit: Optional[bool] = None, ttl: Any = None,
           with_state: bool = False) -> Dict[str, Any]:
    """
    Build the nested 'params' object.

    State writes (with_state=True) always carry emit and ttl; other actions
    only carry userId.
    """
    p: Dict[str, Any] = {"userId": user_id}
    if with_state:
        p["emit"] = bool(emit)
        p["ttl"] = ttl
    return p


def state_request(action: str, channel: str, data: Any, user_id: Any = None,
                  ttl: Any = None, emit: bool = False) -> Dict[str, Any]:
    """Request for the 'set' and 'push' actions."""
    return new_request(
        action,
        channel=channel,
        data=data,
        params=params(user_id, emit=emit, ttl=ttl, with_state=True),
    )


def is_private_channel(channel: str) -> bool:
    """Private channels start with '#'. Empty names are not private."""
    return bool(channel) and channel.startswith(PRIVATE_CHANNEL_PREFIX)


# -----------------------
# Responses
# -----------------------

@dataclass(frozen=True)
class ServerError:
    """Reason and code the server attaches to a success=false reply."""
    reason: Optional[str]
    code: Optional[int]


@dataclass(frozen=True)
class Response(Mapping):
    """
    Decoded reply to one request.

    Behaves as a read-only mapping over the raw JSON object, so
    response["secretKey"] and response.get("data") work directly.
    Truthiness follows the success flag, not the mapping's length.
    """
    success: bool
    error: Optional[ServerError] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, obj: Any) -> "Response":
        # Non-object replies count as failures; keep the value for debugging.
        if not isinstance(obj, dict):
            return cls(success=False, error=ServerError("Unexpected reply", None),
                       raw={"value": obj})
        success = bool(obj.get("success", False))
        error = None
        if not success:
            error = ServerError(obj.get("reason"), obj.get("code"))
        return cls(success=success, error=error, raw=obj)

    def __getitem__(self, key: str) -> Any:
        return self.raw[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.raw)

    def __len__(self) -> int:
        return len(self.raw)

    def __bool__(self) -> bool:
        return self.success

    @property
    def data(self) -> Any:
        """Operation payload ('data' key) if the server sent one."""
        return self.raw.get("data")
