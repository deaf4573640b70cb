"""Paginated record sources.

Endpoint: ``GET {base_url}/{resource}`` (OData v4 entity set), followed
through ``@odata.nextLink`` until the server stops returning one.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pycrosscode._constants import ODATA_COUNT, ODATA_NEXT_LINK, ODATA_VALUE
from pycrosscode._transport import Transport
from pycrosscode.config import CrossCodeConfig
from pycrosscode.exceptions import SourceUnavailableError
from pycrosscode.models.record import CrossRecord, RecordPage

_logger = logging.getLogger(__name__)


class RecordSource(Protocol):
    """Anything that can hand out the dataset one page at a time.

    The first call omits the continuation token. A page without
    ``next_token`` is the last one. Implementations are cancelled through
    ordinary asyncio task cancellation.

    A page that cannot be fetched or decoded must be reported by raising
    :class:`~pycrosscode.exceptions.SourceUnavailableError`; the
    coordinator turns exactly that into an ``Err`` outcome. Any other
    exception is treated as a bug in the source and propagates out of
    ``resolve`` unchanged.
    """

    async def fetch_page(self, continuation: str | None = None) -> RecordPage:
        ...


def escape_odata_value(value: str) -> str:
    """Escape a string literal for use inside ``'...'`` in an OData filter."""
    return value.replace("'", "''")


def _safe_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def parse_page(body: dict[str, Any], *, url: str = "") -> RecordPage:
    """Parse an OData collection response into a :class:`RecordPage`.

    Items that are not JSON objects are skipped; malformed objects are
    kept as-is with default field values.
    """
    items = body.get(ODATA_VALUE)
    if not isinstance(items, list):
        raise SourceUnavailableError(f"Missing '{ODATA_VALUE}' list in response", url=url)

    records = tuple(CrossRecord.model_validate(item) for item in items if isinstance(item, dict))

    next_link = body.get(ODATA_NEXT_LINK)
    if not isinstance(next_link, str) or not next_link:
        next_link = None

    return RecordPage(
        records=records,
        next_token=next_link,
        total_count=_safe_int(body.get(ODATA_COUNT)),
    )


class ODataRecordSource:
    """Record source backed by an OData entity set."""

    def __init__(self, config: CrossCodeConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    async def fetch_page(self, continuation: str | None = None) -> RecordPage:
        if continuation is None:
            url = self._config.resource_url
            body = await self._transport.get_json(url, {"$count": "true"})
        else:
            url = continuation
            body = await self._transport.get_json(url)

        page = parse_page(body, url=url)
        _logger.debug(
            "Fetched %d records (total=%s, more=%s)",
            len(page.records),
            page.total_count,
            not page.is_last,
        )
        return page

    async def fetch_group(self, main_code: str) -> list[CrossRecord]:
        """Fetch every record of one group using a server-side filter.

        Follows ``@odata.nextLink`` to the end of the filtered result.
        """
        params = {
            "$filter": f"MainCode eq '{escape_odata_value(main_code)}'",
            "$count": "true",
        }
        body = await self._transport.get_json(self._config.resource_url, params)
        page = parse_page(body, url=self._config.resource_url)
        records = list(page.records)

        while page.next_token is not None:
            next_url = page.next_token
            page = parse_page(await self._transport.get_json(next_url), url=next_url)
            records.extend(page.records)

        _logger.debug("Fetched %d records for group %s", len(records), main_code)
        return records
