"""Identifier helpers."""

from ulid import ULID


def new_id() -> str:
    """Generate a sortable text id for conversation items."""
    return str(ULID())
