"""Loader configuration for pymsgcat."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from pymsgcat._constants import CACHE_VERSION, DEFAULT_REQUEST_TIMEOUT, USER_AGENT
from pymsgcat.exceptions import MsgCatConfigError


def _env_timeout(value: str) -> float:
    try:
        timeout = float(value)
    except ValueError as exc:
        raise MsgCatConfigError(f"MSGCAT_REQUEST_TIMEOUT must be a number, got {value!r}") from exc
    if timeout < 0:
        raise MsgCatConfigError(f"MSGCAT_REQUEST_TIMEOUT must be non-negative, got {timeout}")
    return timeout


@dataclasses.dataclass(frozen=True)
class LoaderConfig:
    """Loader configuration.

    Parameters
    ----------
    cache_path : Path or None
        JSON file backing the provider cache.  ``None`` keeps the cache
        in memory for the lifetime of the loader.
    request_timeout : float
        Total timeout in seconds applied to each remote request.  A
        request that exceeds it is reported as a transport failure.
    user_agent : str
        ``User-Agent`` header sent with every request.
    cache_version : str
        Version tag written to every cache entry.  Entries with another
        tag are not served.
    """

    cache_path: Path | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    user_agent: str = USER_AGENT
    cache_version: str = CACHE_VERSION

    @classmethod
    def from_env(cls, **overrides: Any) -> LoaderConfig:
        """Create configuration from ``MSGCAT_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        MsgCatConfigError
            If ``MSGCAT_REQUEST_TIMEOUT`` is not a non-negative number.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        cache_path = env.get("MSGCAT_CACHE_PATH")
        if cache_path:
            config_kwargs["cache_path"] = Path(cache_path).expanduser()

        timeout_env = env.get("MSGCAT_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = _env_timeout(timeout_env)

        _ENV_CONFIG_MAP = {
            "MSGCAT_USER_AGENT": "user_agent",
            "MSGCAT_CACHE_VERSION": "cache_version",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        config_kwargs.update(overrides)
        if isinstance(config_kwargs.get("cache_path"), str):
            config_kwargs["cache_path"] = Path(config_kwargs["cache_path"])

        return cls(**config_kwargs)
