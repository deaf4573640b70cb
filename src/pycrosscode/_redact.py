"""Header redaction for debug logs.

Every request carries the API token in its ``Authorization`` header.
The value is masked before the headers reach a log record; the auth
scheme is kept so the log still shows which kind of credential went out.
"""

from __future__ import annotations

from collections.abc import Mapping

_SENSITIVE_HEADERS: frozenset[str] = frozenset({"authorization", "proxy-authorization", "cookie"})


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of *headers* with credential values masked."""
    redacted: dict[str, str] = {}
    for name, value in headers.items():
        if name.lower() not in _SENSITIVE_HEADERS:
            redacted[name] = value
            continue
        scheme, _, credential = value.partition(" ")
        if name.lower().endswith("authorization") and credential:
            redacted[name] = f"{scheme} <redacted>"
        else:
            redacted[name] = "<redacted>"
    return redacted
