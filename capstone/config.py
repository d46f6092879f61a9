from __future__ import annotations

import logging
import os
from dataclasses import dataclass

DEFAULT_API_URL = "http://localhost:8080/api"
DEFAULT_TIMEOUT = 12.0
LOG_FORMAT = "%(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    api_base_url: str = DEFAULT_API_URL
    request_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    offline: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        timeout_raw = os.getenv("CAPSTONE_API_TIMEOUT", "")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            timeout = DEFAULT_TIMEOUT
        return cls(
            api_base_url=os.getenv("CAPSTONE_API_URL", DEFAULT_API_URL).rstrip("/"),
            request_timeout=timeout,
            log_level=os.getenv("CAPSTONE_LOG_LEVEL", "INFO").upper(),
            offline=os.getenv("CAPSTONE_OFFLINE", "").strip().lower() in {"1", "true", "yes"},
        )


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("capstone")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
