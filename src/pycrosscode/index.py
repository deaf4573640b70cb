"""In-memory lookup index built incrementally from ingested pages.

This is the only component that stores records. It grows for the
lifetime of its owner and never evicts; a fresh instance is the reset
mechanism.
"""

from __future__ import annotations

from collections.abc import Iterable

from pycrosscode.models.record import CrossRecord


class RecordIndex:
    """Exact-code and group lookups over every record seen so far.

    * ``by_code``: ``cross_code`` -> record, last write wins.
    * ``by_main_code``: ``main_code`` -> records in insertion order.

    Records are never deduplicated: ingesting the same record twice puts
    two copies in its group.

    Ingesting one page happens in a single synchronous call, so readers on
    the same event loop never observe a half-ingested page.
    """

    def __init__(self) -> None:
        self._by_code: dict[str, CrossRecord] = {}
        self._by_main_code: dict[str, list[CrossRecord]] = {}
        self._record_count = 0

    def __len__(self) -> int:
        return len(self._by_code)

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    @property
    def record_count(self) -> int:
        """Total number of records ingested, re-ingested copies included."""
        return self._record_count

    def ingest(self, record: CrossRecord) -> None:
        """Insert *record* into both lookups."""
        self._by_code[record.cross_code] = record
        self._record_count += 1
        self._by_main_code.setdefault(record.main_code, []).append(record)

    def ingest_many(self, records: Iterable[CrossRecord]) -> int:
        """Ingest a batch of records and return how many were processed."""
        added = 0
        for record in records:
            self.ingest(record)
            added += 1
        return added

    def lookup_by_code(self, code: str) -> CrossRecord | None:
        return self._by_code.get(code)

    def lookup_group(self, main_code: str) -> list[CrossRecord]:
        """Return the records of one group in insertion order (a copy)."""
        return list(self._by_main_code.get(main_code, ()))
