"""Unit-of-work helpers over SQLAlchemy ORM sessions."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Rows read inside a unit of work stay usable after commit.
    return sessionmaker(engine, autoflush=False, expire_on_commit=False)


@contextmanager
def transactional_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """One unit of work: commit when the block exits cleanly, else roll back."""
    session = session_factory()
    completed = False
    try:
        yield session
        completed = True
    finally:
        try:
            if completed:
                session.commit()
            else:
                session.rollback()
        finally:
            session.close()
