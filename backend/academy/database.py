"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file `app.db` next to the
package by default) and provides small helpers used by the application,
scripts and tests.
"""

import logging
from sqlmodel import SQLModel, create_engine, Session, select
from .config import settings
from . import models

logger = logging.getLogger("academy.database")

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(settings.DATABASE_URL, echo=False, connect_args=_connect_args)


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    This function is intended for local development and lightweight
    scripts; production deployments should rely on a proper migration
    tool (alembic) instead.
    """
    SQLModel.metadata.create_all(engine)
    _ensure_academic_years()


def _ensure_academic_years():
    """Insert the configured academic years that are not stored yet.

    Idempotent, so it is safe to run on every start-up.
    """
    with Session(engine) as session:
        existing = set(session.exec(select(models.Year.name)).all())
        missing = [name for name in settings.ACADEMIC_YEARS if name not in existing]
        for name in missing:
            session.add(models.Year(name=name))
        if missing:
            session.commit()
            logger.info("seeded academic years: %s", ", ".join(missing))


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
