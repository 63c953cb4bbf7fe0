"""
config.py — connection settings read from the environment.

Variables:
    FIREWS_ADDRESS          server socket address (tcp://host:port or a unix path)
    FIREWS_CONNECT_TIMEOUT  seconds allowed for connect (default 4)
    FIREWS_CHUNK_SIZE       max bytes per recv() (default 1024)
    FIREWS_NAMESPACE        namespace to auth against (optional)
    FIREWS_SECRET_KEY       namespace secret key (optional)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .framing import CHUNK_SIZE
from .transport import DEFAULT_CONNECT_TIMEOUT

ENV_PREFIX = "FIREWS_"


@dataclass
class Settings:
    address: Optional[str] = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    chunk_size: int = CHUNK_SIZE
    namespace: Optional[str] = None
    secret_key: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from FIREWS_* variables; unset ones keep defaults."""
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        timeout = get("CONNECT_TIMEOUT")
        chunk = get("CHUNK_SIZE")
        settings = cls(
            address=get("ADDRESS"),
            connect_timeout=float(timeout) if timeout else DEFAULT_CONNECT_TIMEOUT,
            chunk_size=int(chunk) if chunk else CHUNK_SIZE,
            namespace=get("NAMESPACE"),
            secret_key=get("SECRET_KEY"),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be positive, got {self.connect_timeout}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
