"""Client configuration for pycrosscode."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pycrosscode._constants import DEFAULT_REQUEST_TIMEOUT, DEFAULT_RESOURCE
from pycrosscode.exceptions import CrossCodeConfigError


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value.strip())
    except ValueError as exc:
        raise CrossCodeConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class CrossCodeConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Root URL of the OData service (e.g. ``"https://example.com/api"``).
    api_token : str or None
        Bearer token sent in the ``Authorization`` header.
    resource : str
        Entity set holding the cross-reference records.
    page_size : int or None
        Preferred server page size, sent as ``Prefer: odata.maxpagesize``.
        ``None`` leaves paging entirely to the server.
    request_timeout : float
        Total timeout in seconds for a single page request.
    """

    base_url: str
    api_token: str | None = None
    resource: str = DEFAULT_RESOURCE
    page_size: int | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @property
    def resource_url(self) -> str:
        """Absolute URL of the configured entity set."""
        return f"{self.base_url.rstrip('/')}/{self.resource.lstrip('/')}"

    @classmethod
    def from_env(cls, **overrides: Any) -> CrossCodeConfig:
        """Create configuration from environment variables.

        Reads ``CROSSCODE_BASE_URL`` and the optional ``CROSSCODE_*``
        variables. Explicit keyword arguments override environment values.

        Raises
        ------
        CrossCodeConfigError
            If no base URL is available or a numeric variable is malformed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "CROSSCODE_BASE_URL": "base_url",
            "CROSSCODE_API_TOKEN": "api_token",
            "CROSSCODE_RESOURCE": "resource",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        page_size_env = env.get("CROSSCODE_PAGE_SIZE")
        if page_size_env is not None and "page_size" not in overrides:
            config_kwargs["page_size"] = _env_number("CROSSCODE_PAGE_SIZE", page_size_env, int)

        timeout_env = env.get("CROSSCODE_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = _env_number("CROSSCODE_REQUEST_TIMEOUT", timeout_env, float)

        config_kwargs.update(overrides)

        if not config_kwargs.get("base_url"):
            raise CrossCodeConfigError("CROSSCODE_BASE_URL is not set")

        return cls(**config_kwargs)
