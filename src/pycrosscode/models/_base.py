"""Base model for OData payloads.

Every record model inherits from :class:`CrossCodeBaseModel` which
provides:

* ``alias_generator=to_pascal`` so the PascalCase keys served by the
  OData backend map automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` values, and
  values of ``_LENIENT_FIELDS`` that do not parse, so the field default
  is used instead of failing validation.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

import functools
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_pascal


@functools.lru_cache(maxsize=None)
def _field_adapter(annotation: Any) -> TypeAdapter[Any]:
    return TypeAdapter(annotation, config=ConfigDict(coerce_numbers_to_str=True))


def _parses(annotation: Any, value: Any) -> bool:
    try:
        _field_adapter(annotation).validate_python(value)
    except ValidationError:
        return False
    return True


class CrossCodeBaseModel(BaseModel):
    """Base for OData record models."""

    _LENIENT_FIELDS: ClassVar[frozenset[str]] = frozenset()
    """Fields whose unparseable values are dropped.

    Subclasses list snake_case field names. A value under the field name
    or its alias that does not validate against the field's annotation
    is removed before validation, so the field falls back to its default
    while ``raw`` keeps what the server sent.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_pascal,
        coerce_numbers_to_str=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original API response dict."""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        """Drop ``None`` and unparseable values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = {key: value for key, value in values.items() if value is not None}

        for name in cls._LENIENT_FIELDS:
            field_info = cls.model_fields[name]
            for key in {name, field_info.alias or name}:
                if key in cleaned and not _parses(field_info.annotation, cleaned[key]):
                    del cleaned[key]

        # Only auto-stash raw when not explicitly provided (i.e. model_validate
        # from an API dict).
        if "raw" not in values and "Raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
