"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    log_level: str = "WARNING"
    cache_ttl_seconds: float = 300
    cache_max_entries: int = 256
    web_port: int = 8710

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``MORTGAGE_CALC_*`` environment variables.

        Unset variables keep their defaults. Raises ``ValueError`` when a
        numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            log_level=env.get("MORTGAGE_CALC_LOG_LEVEL", defaults.log_level).upper(),
            cache_ttl_seconds=float(env.get("MORTGAGE_CALC_CACHE_TTL", defaults.cache_ttl_seconds)),
            cache_max_entries=int(env.get("MORTGAGE_CALC_CACHE_SIZE", defaults.cache_max_entries)),
            web_port=int(env.get("MORTGAGE_CALC_WEB_PORT", defaults.web_port)),
        )


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)
