"""Authenticated principal extraction.

Credential checks happen in the upstream auth gateway; by the time a request
reaches this service the gateway has placed the principal id in a header.
"""

from __future__ import annotations

from fastapi import Request

from .core import config
from .domain.identifiers import is_object_id, normalize_object_id
from .errors import UnauthenticatedError


def require_principal(request: Request) -> str:
    """Return the caller's principal id or reject the request with 401."""

    header = config.get_settings().auth_header
    value = (request.headers.get(header) or "").strip()
    if not value:
        raise UnauthenticatedError()
    if not is_object_id(value):
        raise UnauthenticatedError("Not authorized, principal id is malformed.")
    return normalize_object_id(value)
