"""Readiness probe for the Postgres substrate."""

from __future__ import annotations

import logging

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

_LOGGER = logging.getLogger(__name__)


def ping(engine: Engine, *, timeout_seconds: float = 1.0) -> bool:
    """Run ``SELECT 1`` in a short transaction capped by ``statement_timeout``.

    Any database failure reports ``False`` rather than raising.
    """
    budget_ms = max(1, round(timeout_seconds * 1000))
    try:
        with engine.connect() as conn, conn.begin():
            conn.execute(text(f"SET LOCAL statement_timeout = {budget_ms}"))
            return conn.execute(text("SELECT 1")).scalar() == 1
    except (SQLAlchemyError, OSError) as exc:
        _LOGGER.warning("postgres ping failed: %s", type(exc).__name__)
        return False
