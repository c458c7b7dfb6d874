"""Domain primitives shared across persistence and APIs."""

from .identifiers import is_object_id, new_object_id, normalize_object_id

__all__ = [
    "is_object_id",
    "new_object_id",
    "normalize_object_id",
]
