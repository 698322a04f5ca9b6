"""Per-request values carried alongside a query: permissions and outgoing headers."""

from __future__ import annotations

import enum
from typing import Any, Mapping, Optional

from .auth import OperationPermissions

_TOKEN_PUNCTUATION = set("!#$%&'*+-.^_`|~")


class _Key(enum.Enum):
    PERMISSIONS = 1
    REQUEST_HEADERS = 2


def _canonical_header_key(key: str) -> str:
    """Canonical MIME form of a header name, e.g. "content-type" -> "Content-Type"."""
    if not key or not all((c.isascii() and c.isalnum()) or c in _TOKEN_PUNCTUATION for c in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def add_permissions_to_context(ctx: Optional[Mapping[Any, Any]], perms: OperationPermissions) -> dict:
    """Return a new context holding the permissions to check the query against."""
    return {**(ctx or {}), _Key.PERMISSIONS: perms}


def get_permissions_from_context(ctx: Optional[Mapping[Any, Any]]) -> Optional[OperationPermissions]:
    """The permissions stored in the context, or None."""
    perms = (ctx or {}).get(_Key.PERMISSIONS)
    return perms if isinstance(perms, OperationPermissions) else None


def add_outgoing_requests_header_to_context(ctx: Optional[Mapping[Any, Any]], key: str, value: str) -> dict:
    """Return a new context that adds a header to every outgoing request of the query."""
    ctx = ctx or {}
    current = ctx.get(_Key.REQUEST_HEADERS)
    headers = {name: list(values) for name, values in current.items()} if isinstance(current, dict) else {}
    headers.setdefault(_canonical_header_key(key), []).append(value)
    return {**ctx, _Key.REQUEST_HEADERS: headers}


def get_outgoing_request_headers_from_context(ctx: Optional[Mapping[Any, Any]]) -> dict[str, list[str]]:
    """The headers to add to outgoing requests, each name mapped to its values."""
    current = (ctx or {}).get(_Key.REQUEST_HEADERS)
    if not isinstance(current, dict):
        return {}
    return {name: list(values) for name, values in current.items()}