"""Tests for shared ULID generation semantics."""

from __future__ import annotations

import pytest

from packages.fieldguard_shared.ids import generate_ulid_str

_CROCKFORD = set("0123456789ABCDEFGHJKMNPQRSTVWXYZ")


def test_generated_ulids_are_canonical() -> None:
    """Generated ids should be 26 Crockford Base32 characters."""
    value = generate_ulid_str()

    assert len(value) == 26
    assert set(value) <= _CROCKFORD


def test_ulid_timestamp_prefix_encodes_creation_millisecond() -> None:
    """The leading ten characters should encode the millisecond timestamp."""
    first = generate_ulid_str(timestamp_ms=0)
    later = generate_ulid_str(timestamp_ms=1)

    assert first[:10] == "0000000000"
    assert later[:10] == "0000000001"


def test_ulid_string_order_follows_timestamp_order() -> None:
    """Sorting canonical strings should sort by creation time."""
    values = [generate_ulid_str(timestamp_ms=1_700_000_000_000 + i) for i in range(50)]

    assert sorted(values) == values


def test_generate_rejects_out_of_range_timestamps() -> None:
    """Timestamps outside the 48-bit range should be rejected."""
    with pytest.raises(ValueError):
        generate_ulid_str(timestamp_ms=-1)
    with pytest.raises(ValueError):
        generate_ulid_str(timestamp_ms=1 << 48)
