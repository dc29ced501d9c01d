"""Shared ULID identifier helpers."""

from packages.fieldguard_shared.ids.ulid import generate_ulid_str

__all__ = [
    "generate_ulid_str",
]
