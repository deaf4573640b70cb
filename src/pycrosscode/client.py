"""High-level async client for cross-reference code resolution."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pycrosscode._transport import ODataTransport
from pycrosscode.config import CrossCodeConfig
from pycrosscode.exceptions import CrossCodeError
from pycrosscode.models.tree import TreeNode
from pycrosscode.outcome import Resolution
from pycrosscode.resolver import ProgressCallback, ResolutionCoordinator
from pycrosscode.source import ODataRecordSource, RecordSource
from pycrosscode.tree import build_tree

_logger = logging.getLogger(__name__)


class CrossCodeClient:
    """Async client resolving cross-reference codes against an OData service.

    Usage::

        async with CrossCodeClient(config) as client:
            outcome = await client.resolve("A2", on_progress=print)
            tree = outcome.unwrap()

    Each client owns one :class:`ResolutionCoordinator`, so its index is
    shared by every resolution made through it. Pass ``source=`` to
    resolve against any other :class:`RecordSource`; no HTTP session is
    opened in that case.
    """

    def __init__(
        self,
        config: CrossCodeConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        source: RecordSource | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._injected_source = source
        self._source: RecordSource | None = None
        self._coordinator: ResolutionCoordinator | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CrossCodeClient:
        if self._injected_source is not None:
            self._source = self._injected_source
        else:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._source = ODataRecordSource(
                self._config,
                ODataTransport(self._config, self._http_session),
            )
        self._coordinator = ResolutionCoordinator(self._source)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._coordinator is not None:
            self._coordinator.cancel()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._source = None
        self._coordinator = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_coordinator(self) -> ResolutionCoordinator:
        if self._coordinator is None:
            raise CrossCodeError("Client not initialized. Use 'async with CrossCodeClient(...) as client:'")
        return self._coordinator

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @property
    def coordinator(self) -> ResolutionCoordinator:
        return self._require_coordinator()

    @property
    def fully_loaded(self) -> bool:
        return self._require_coordinator().fully_loaded

    async def resolve(self, code: str, on_progress: ProgressCallback | None = None) -> Resolution:
        """Resolve *code*, superseding any resolution still in flight."""
        return await self._require_coordinator().resolve(code, on_progress)

    def get_partial_tree(self, main_code: str) -> list[TreeNode]:
        """Index-only view of *main_code*'s group; never touches the network."""
        return self._require_coordinator().get_partial_tree(main_code)

    async def fetch_group_tree(self, main_code: str) -> list[TreeNode]:
        """Fetch one group with a server-side filter and return its tree.

        The fetched records are ingested into the shared index. Only
        available for the OData-backed source.
        """
        coordinator = self._require_coordinator()
        source = self._source
        if not isinstance(source, ODataRecordSource):
            raise CrossCodeError("Group queries require the OData record source")
        main_code = main_code.strip()
        records = await source.fetch_group(main_code)
        coordinator.index.ingest_many(records)
        return build_tree(records)

    def reset(self) -> None:
        """Drop the index and start over with a fresh coordinator."""
        coordinator = self._require_coordinator()
        coordinator.cancel()
        assert self._source is not None  # noqa: S101
        self._coordinator = ResolutionCoordinator(self._source)
        _logger.debug("Resolution index reset")
