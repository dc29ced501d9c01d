"""Checks applied to inbound envelope metadata before any work is done."""

from __future__ import annotations

from .meta import EnvelopeKind, EnvelopeMeta

# Checked in this order; the first blank one is reported.
_NON_BLANK = ("envelope_id", "trace_id", "source", "principal")


def validate_meta(meta: EnvelopeMeta) -> None:
    """Raise ``ValueError`` naming the first unusable metadata field."""
    for name in _NON_BLANK:
        if not str(getattr(meta, name)).strip():
            raise ValueError(f"metadata.{name} is required")
    if meta.timestamp.tzinfo is None:
        raise ValueError("metadata.timestamp must be timezone-aware")
    if meta.kind is EnvelopeKind.UNSPECIFIED:
        raise ValueError("metadata.kind must be specified")
