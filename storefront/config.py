"""Client configuration read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path

# Fixed keys in the local key/value store
GUEST_CART_KEY = "guest_cart"
TOKEN_KEY = "token"

DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_STORE_PATH = "~/.storefront"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the gateways and the local store."""

    api_url: str = DEFAULT_API_URL
    http_timeout: float = 10.0
    http_retries: int = 3
    store_path: Path = Path(DEFAULT_STORE_PATH).expanduser()
    redis_url: str = ""
    redis_token: str = ""

    def __post_init__(self):
        if self.http_timeout <= 0:
            raise ValueError("http_timeout must be positive")
        if self.http_retries < 1:
            raise ValueError("http_retries must be at least 1")

    @property
    def redis_enabled(self) -> bool:
        return bool(self.redis_url and self.redis_token)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from STOREFRONT_* and UPSTASH_* variables."""
        return cls(
            api_url=os.environ.get("STOREFRONT_API_URL", DEFAULT_API_URL).rstrip("/"),
            http_timeout=_env_float("STOREFRONT_HTTP_TIMEOUT", 10.0),
            http_retries=_env_int("STOREFRONT_HTTP_RETRIES", 3),
            store_path=Path(os.environ.get("STOREFRONT_STORE_PATH", DEFAULT_STORE_PATH)).expanduser(),
            redis_url=os.environ.get("UPSTASH_REDIS_REST_URL", ""),
            redis_token=os.environ.get("UPSTASH_REDIS_REST_TOKEN", ""),
        )
