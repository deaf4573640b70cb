"""Incremental, cancellable resolution of cross-reference codes.

A resolution pages through the record source from the beginning,
indexing every record it sees. Once the requested code shows up, paging
continues to the end of the dataset because siblings of the same group
may live on any later page. Progress is reported after every page so a
caller can render the partially-loaded group through
:meth:`ResolutionCoordinator.get_partial_tree`.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass

from pycrosscode.exceptions import SourceUnavailableError
from pycrosscode.index import RecordIndex
from pycrosscode.models.record import RecordPage
from pycrosscode.models.tree import TreeNode
from pycrosscode.outcome import Cancelled, Err, Ok, Resolution
from pycrosscode.source import RecordSource
from pycrosscode.tree import build_tree

_logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str | None], None]
"""``on_progress(loaded_count, target_main_code_or_None)``."""


@dataclass(frozen=True, slots=True, eq=False)
class _ResolutionToken:
    """Identity of one resolution; compared by identity only."""

    code: str
    serial: int


class ResolutionCoordinator:
    """Drive paginated scans against one index, one resolution at a time.

    Construct one instance per logical session. Starting a resolution
    supersedes any resolution still in flight on the same instance: the
    older one's pending page fetch is cancelled, anything it still
    receives is discarded before touching the index, and it completes
    with :class:`Cancelled`.
    """

    def __init__(self, source: RecordSource, *, index: RecordIndex | None = None) -> None:
        self._source = source
        self._index = index if index is not None else RecordIndex()
        self._fully_loaded = False
        self._active: _ResolutionToken | None = None
        self._inflight: asyncio.Future[RecordPage] | None = None
        self._serials = itertools.count(1)

    @property
    def index(self) -> RecordIndex:
        return self._index

    @property
    def fully_loaded(self) -> bool:
        """Whether the whole dataset has been paged through at least once."""
        return self._fully_loaded

    @property
    def is_resolving(self) -> bool:
        return self._active is not None

    def cancel(self) -> None:
        """Supersede the active resolution, if any."""
        token = self._active
        self._active = None
        inflight = self._inflight
        self._inflight = None
        if inflight is not None and not inflight.done():
            inflight.cancel()
        if token is not None:
            _logger.debug("Superseded resolution #%d for %r", token.serial, token.code)

    def get_partial_tree(self, main_code: str) -> list[TreeNode]:
        """Build the tree for *main_code* from whatever is indexed right now."""
        return build_tree(self._index.lookup_group(main_code))

    async def resolve(self, code: str, on_progress: ProgressCallback | None = None) -> Resolution:
        """Resolve *code* into the tree of the group it belongs to.

        Returns
        -------
        Resolution
            ``Ok(tree)`` when found, ``Ok(None)`` when the dataset does not
            contain the code, ``Err(error)`` when a page fetch failed and
            ``Cancelled()`` when a newer call superseded this one.
        """
        target_code = code.strip()
        self.cancel()
        token = _ResolutionToken(code=target_code, serial=next(self._serials))
        self._active = token
        try:
            return await self._resolve(token, on_progress)
        finally:
            if self._active is token:
                self._active = None

    async def _resolve(self, token: _ResolutionToken, on_progress: ProgressCallback | None) -> Resolution:
        hit = self._index.lookup_by_code(token.code)
        if hit is not None:
            _logger.debug("Index hit for %r in group %r", token.code, hit.main_code)
            return Ok(self.get_partial_tree(hit.main_code))

        if self._fully_loaded:
            _logger.debug("%r not found; dataset already fully loaded", token.code)
            return Ok(None)

        loaded_count = 0
        target_group: str | None = None
        continuation: str | None = None

        while True:
            try:
                page = await self._fetch_page(token, continuation)
            except SourceUnavailableError as exc:
                _logger.debug("Resolution #%d for %r failed: %s", token.serial, token.code, exc)
                return Err(exc)
            if page is None:
                return Cancelled()

            self._index.ingest_many(page.records)
            loaded_count += len(page.records)
            if target_group is None:
                target_group = next(
                    (record.main_code for record in page.records if record.cross_code == token.code),
                    None,
                )
                if target_group is not None:
                    _logger.debug(
                        "Found %r in group %r after %d records; loading remaining pages",
                        token.code,
                        target_group,
                        loaded_count,
                    )

            self._notify(on_progress, loaded_count, target_group)

            continuation = page.next_token
            if continuation is None:
                break

        self._fully_loaded = True
        _logger.debug("Dataset exhausted after %d records", loaded_count)

        if self._active is not token:
            return Cancelled()
        if target_group is None:
            return Ok(None)
        return Ok(self.get_partial_tree(target_group))

    async def _fetch_page(self, token: _ResolutionToken, continuation: str | None) -> RecordPage | None:
        """Fetch one page for *token*; ``None`` means the token went stale."""
        if self._active is not token:
            return None

        fetch: asyncio.Future[RecordPage] = asyncio.ensure_future(self._source.fetch_page(continuation))
        self._inflight = fetch
        try:
            page = await fetch
        except asyncio.CancelledError:
            # Superseded: swallow. Cancelled from outside: propagate.
            task = asyncio.current_task()
            if self._active is not token and (task is None or not task.cancelling()):
                return None
            raise
        except SourceUnavailableError:
            if self._active is not token:
                return None
            raise
        finally:
            if self._inflight is fetch:
                self._inflight = None

        if self._active is not token:
            return None
        return page

    @staticmethod
    def _notify(on_progress: ProgressCallback | None, loaded_count: int, target_group: str | None) -> None:
        if on_progress is None:
            return
        try:
            on_progress(loaded_count, target_group)
        except Exception:
            _logger.debug("on_progress callback failed", exc_info=True)
