# File: src/parkspot_client/config.py
"""
Client configuration and logging setup
"""

import logging
import os
import sys
from typing import Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "http://127.0.0.1:8000/api"
DEFAULT_TIMEOUT_SECONDS = 15.0

ENV_PREFIX = "PARKSPOT_"


class ClientConfig(BaseModel):
    """Settings shared by the transport, session and services"""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Backend base address")
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, description="Per-request timeout")
    default_headers: Dict[str, str] = Field(
        default_factory=lambda: {"Content-Type": "application/json", "Accept": "application/json"}
    )
    login_path: str = Field(default="/login", description="Redirect target after session expiry")
    token_key: str = Field(default="auth_token", description="Storage key of the bearer token")
    user_key: str = Field(default="user", description="Storage key of the cached user")
    storage_backend: str = Field(default="memory", pattern="^(memory|file|redis)$")
    storage_path: str = Field(default=os.path.join("~", ".parkspot", "session.json"))
    redis_url: str = Field(default="redis://localhost:6379/0")
    realtime_enabled: bool = Field(default=False, description="Live-update channel (disabled)")
    log_level: str = Field(default="INFO")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeout must be positive")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build a config from PARKSPOT_* environment variables"""
        environ = os.environ if environ is None else environ
        mapping = {
            "base_url": "API_BASE_URL",
            "timeout_seconds": "TIMEOUT",
            "storage_backend": "STORAGE_BACKEND",
            "storage_path": "STORAGE_PATH",
            "redis_url": "REDIS_URL",
            "login_path": "LOGIN_PATH",
            "log_level": "LOG_LEVEL",
        }
        values = {
            field_name: environ[ENV_PREFIX + suffix]
            for field_name, suffix in mapping.items()
            if environ.get(ENV_PREFIX + suffix)
        }
        return cls(**values)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    return logging.getLogger("parkspot_client")
