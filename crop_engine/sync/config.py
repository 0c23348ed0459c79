"""Settings for talking to the remote schedule service."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..const import (
    API_TOKEN_ENV,
    BASE_URL_ENV,
    CONF_API_TOKEN,
    CONF_BASE_URL,
    CONF_TIMEOUT,
    DEFAULT_TIMEOUT,
    MIN_TIMEOUT,
    TIMEOUT_ENV,
)


@dataclass(slots=True)
class ScheduleStoreConfig:
    """Connection settings for :class:`ScheduleServiceClient`."""

    base_url: str = ""
    api_token: str = ""
    timeout: int = DEFAULT_TIMEOUT

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> ScheduleStoreConfig:
        base_url = str(options.get(CONF_BASE_URL, "") or "").strip().rstrip("/")
        api_token = str(options.get(CONF_API_TOKEN, "") or "").strip()
        timeout_raw = options.get(CONF_TIMEOUT, DEFAULT_TIMEOUT)
        try:
            timeout = max(MIN_TIMEOUT, int(timeout_raw))
        except (TypeError, ValueError):
            timeout = DEFAULT_TIMEOUT
        return cls(base_url=base_url, api_token=api_token, timeout=timeout)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ScheduleStoreConfig:
        env = os.environ if environ is None else environ
        return cls.from_options(
            {
                CONF_BASE_URL: env.get(BASE_URL_ENV, ""),
                CONF_API_TOKEN: env.get(API_TOKEN_ENV, ""),
                CONF_TIMEOUT: env.get(TIMEOUT_ENV, DEFAULT_TIMEOUT),
            }
        )

    @property
    def ready(self) -> bool:
        return bool(self.base_url)
