"""Cross-reference record and page models."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from pycrosscode.models._base import CrossCodeBaseModel


class CrossRecord(CrossCodeBaseModel):
    """One row of the remote cross-reference dataset.

    ``main_code`` names the group the record belongs to; a record whose
    ``cross_code`` equals its ``main_code`` is the root of that group.
    An empty ``by_code`` means the record carries no brand. Values that
    do not parse fall back to the field default; ``raw`` keeps them.
    """

    _LENIENT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "id",
            "cross_code",
            "main_code",
            "by_code",
            "by",
            "verity",
            "cross",
            "session_id",
            "deleted",
            "is_main_new",
            "date",
        }
    )

    id: int | str | None = None
    cross_code: str = ""
    main_code: str = ""
    by_code: str = ""
    by: int | None = None
    verity: float | None = None
    cross: int | None = None
    session_id: int | None = None
    deleted: bool | None = None
    is_main_new: bool | None = None
    date: str | None = None

    @property
    def is_root(self) -> bool:
        return self.cross_code == self.main_code


class RecordPage(BaseModel):
    """One page returned by a record source."""

    model_config = ConfigDict(frozen=True)

    records: tuple[CrossRecord, ...] = Field(default_factory=tuple)
    next_token: str | None = Field(
        default=None,
        description="Opaque continuation token; None once the dataset is exhausted.",
    )
    total_count: int | None = Field(
        default=None,
        description="Total size of the dataset, when the server reports it.",
    )

    @property
    def is_last(self) -> bool:
        return self.next_token is None
