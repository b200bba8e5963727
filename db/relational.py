"""
db/relational.py

This file is responsible for:
1) creating the DB engine (SQLite locally, hosted Postgres in production)
2) creating Sessions (units of work) for INSERT/SELECT/UPDATE
3) creating the tables themselves (init_db)
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

# DATABASE_URL:
# sqlite:///rural_health.db -> creates/uses a DB file named rural_health.db in the working directory
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///rural_health.db")

# SQL_ECHO=1 -> prints the SQL SQLAlchemy generates (useful for debugging)
SQL_ECHO = os.getenv("SQL_ECHO", "0").strip() == "1"

_default_engine = None


def create_backend_engine(url=None, echo=None) -> Engine:
    """
    Builds an engine for the given URL (defaults to DATABASE_URL).
    SQLite needs check_same_thread=False because dashboard loaders read from worker threads.
    """
    url = url or DATABASE_URL
    kwargs = {"echo": SQL_ECHO if echo is None else echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


def get_engine() -> Engine:
    """The process-wide engine for DATABASE_URL, created on first use."""
    global _default_engine
    if _default_engine is None:
        _default_engine = create_backend_engine()
    return _default_engine


def session_factory(engine: Engine):
    # expire_on_commit=False -> rows stay readable after commit, we convert them to dicts afterwards
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine = None) -> None:
    """
    Creates the tables in the DB.
    The tables are defined in db/models.py and SQLAlchemy creates them from the models.
    """
    from db.models import Base  # local import to avoid circular imports
    Base.metadata.create_all(bind=engine or get_engine())
