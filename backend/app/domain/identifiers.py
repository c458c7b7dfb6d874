"""Canonical identifiers shared by every stored record and endpoint."""

from __future__ import annotations

import re
import secrets

OBJECT_ID_LENGTH = 24
_OBJECT_ID_PATTERN = re.compile(r"^[a-fA-F0-9]{24}$")


def is_object_id(value: object) -> bool:
    """Return True when ``value`` is a 24 character hexadecimal string."""

    return isinstance(value, str) and bool(_OBJECT_ID_PATTERN.fullmatch(value))


def new_object_id() -> str:
    return secrets.token_hex(OBJECT_ID_LENGTH // 2)


def normalize_object_id(value: str) -> str:
    return value.lower()
