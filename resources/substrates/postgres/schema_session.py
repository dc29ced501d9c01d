"""Schema-scoped session helpers for Postgres shared infrastructure."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.postgres.session import transactional_session


class ServiceSchemaSessionProvider:
    """Provide transactional sessions pinned to one schema and statement timeout."""

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session],
        schema: str,
        statement_timeout_seconds: float | None = None,
    ) -> None:
        self._validate_schema(schema)
        self._session_factory = session_factory
        self._schema = schema
        self._statement_timeout_ms = (
            None
            if statement_timeout_seconds is None
            else max(1, int(statement_timeout_seconds * 1000))
        )

    @property
    def schema(self) -> str:
        return self._schema

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a transaction-scoped session with local search_path set."""
        with transactional_session(self._session_factory) as db:
            db.execute(text(f"SET LOCAL search_path TO {self._schema}, public"))
            if self._statement_timeout_ms is not None:
                db.execute(
                    text(f"SET LOCAL statement_timeout = {self._statement_timeout_ms}")
                )
            yield db

    def _validate_schema(self, schema: str) -> None:
        """Validate schema names to prevent malformed search_path statements."""
        if not schema:
            raise ValueError("postgres schema is required")
        if not schema.replace("_", "").isalnum():
            raise ValueError("postgres schema must be alphanumeric/underscore")
