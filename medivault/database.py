"""
Database engine initialisation, session factory and unit-of-work helper.
"""

import sys
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from medivault.config import DB_URI
from medivault.entities import Base


def init_engine(db_uri: Optional[str] = None) -> Engine:
    """Create a SQLAlchemy engine, verify the connection and create tables."""
    db_uri = db_uri or DB_URI
    kwargs = {"echo": False, "future": True}
    if db_uri.startswith("sqlite") and (db_uri in ("sqlite://", "sqlite:///:memory:")):
        # One shared connection, otherwise every session gets its own empty DB.
        kwargs.update(
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif db_uri.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_engine(db_uri, **kwargs)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")

    Base.metadata.create_all(engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def unit_of_work(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Run a block as one atomic unit: commit on success, roll back on any error.

    Readers in other sessions see either the state before the block or the
    fully written state, never a partial aggregate.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping(engine: Engine) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        print(f"[WARN] Database health check failed: {e}", file=sys.stderr)
        return False
