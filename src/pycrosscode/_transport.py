"""HTTP transport for the OData service."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pycrosscode._constants import USER_AGENT
from pycrosscode._redact import redact_headers
from pycrosscode.config import CrossCodeConfig
from pycrosscode.exceptions import SourceUnavailableError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by record sources.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`ODataTransport`) concrete.
    """

    async def get_json(self, url: str, params: Mapping[str, str] | None = None) -> dict[str, Any]:
        ...


class ODataTransport:
    """Authenticated JSON GET against an OData service."""

    def __init__(self, config: CrossCodeConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        if self._config.page_size:
            headers["prefer"] = f"odata.maxpagesize={self._config.page_size}"
        return headers

    def _absolute_url(self, url: str) -> str:
        """OData next links may be relative to the service root."""
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._config.base_url.rstrip('/')}/{url.lstrip('/')}"

    async def get_json(self, url: str, params: Mapping[str, str] | None = None) -> dict[str, Any]:
        """GET *url* and return the decoded JSON object.

        Raises
        ------
        SourceUnavailableError
            On network failure, timeout, non-200 status or a body that is
            not a JSON object.
        """
        full_url = self._absolute_url(url)
        headers = self._build_headers()

        _logger.debug("GET %s params=%s headers=%s", full_url, dict(params or {}), redact_headers(headers))

        try:
            async with self._http.get(full_url, params=params, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise SourceUnavailableError(
                        f"HTTP {resp.status} from {full_url}: {text[:200]}",
                        status_code=resp.status,
                        url=full_url,
                    )
        except SourceUnavailableError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SourceUnavailableError(
                f"Request to {full_url} failed: {exc!r}",
                url=full_url,
            ) from exc

        try:
            body: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceUnavailableError(
                f"Invalid JSON from {full_url}: {text[:200]}",
                url=full_url,
            ) from exc

        if not isinstance(body, dict):
            raise SourceUnavailableError(
                f"Expected a JSON object from {full_url}, got {type(body).__name__}",
                url=full_url,
            )
        return body
