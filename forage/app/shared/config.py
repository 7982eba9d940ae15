"""Runtime configuration.

Settings are read from FORAGE_* environment variables once per process.
Command-line flags in ``forage.app.main`` override them.
"""

import os
import logging
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

WS_PORT = 18412
REQUEST_TIMEOUT_SECONDS = 10.0
PLUGIN_NAMESPACE = "forage"
PLUGIN_DATA_KEY_STATE_RULES = "state-rules"


class ForageSettings(BaseModel):
    """Process-wide settings for the bridge, the sandbox and the HTTP app"""

    ws_host: str = Field(default="127.0.0.1", description="Bridge bind host (loopback only)")
    ws_port: int = Field(default=WS_PORT, ge=0, le=65535)
    request_timeout: float = Field(default=REQUEST_TIMEOUT_SECONDS, gt=0)
    http_port: int = Field(default=18413, ge=0, le=65535)
    document_path: Optional[str] = Field(default=None, description="Scene document served by the sandbox")
    log_level: str = Field(default="INFO")
    reconnect_max_delay: float = Field(default=30.0, gt=0)

    @property
    def ws_url(self) -> str:
        return f"ws://{self.ws_host}:{self.ws_port}"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def load_settings() -> ForageSettings:
    """Build settings from the current environment.

    Returns:
        ForageSettings with FORAGE_* overrides applied
    """
    return ForageSettings(
        ws_host=os.getenv("FORAGE_WS_HOST", "127.0.0.1"),
        ws_port=_env_int("FORAGE_WS_PORT", WS_PORT),
        request_timeout=_env_float("FORAGE_REQUEST_TIMEOUT", REQUEST_TIMEOUT_SECONDS),
        http_port=_env_int("FORAGE_HTTP_PORT", 18413),
        document_path=os.getenv("FORAGE_DOCUMENT") or None,
        log_level=os.getenv("FORAGE_LOG_LEVEL", "INFO").upper(),
        reconnect_max_delay=_env_float("FORAGE_RECONNECT_MAX_DELAY", 30.0),
    )


@lru_cache(maxsize=1)
def get_settings() -> ForageSettings:
    """Cached settings for the running process"""
    return load_settings()
