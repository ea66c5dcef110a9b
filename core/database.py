"""SQLAlchemy engine, sessions and schema for the admin user table and the media gallery."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///data/fais.sqlite"


def resolve_database_url(config: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> str:
    """``DATABASE_URL`` first, then ``database.url``, then a local sqlite file."""
    env = os.environ if environ is None else environ
    return env.get("DATABASE_URL") or config.get("database", {}).get("url") or DEFAULT_DATABASE_URL


@contextmanager
def session_scope(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class Database:
    """Lazily built engine plus session factory for one configuration."""

    def __init__(self, config: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config: Root configuration; reads ``database.url``, ``database.echo``
                and, for server databases, ``database.pool_size``/``max_overflow``.
            environ: Environment used to look up ``DATABASE_URL``.
        """
        self.config = config
        self.url = resolve_database_url(config, environ)
        self._engine = None
        self._session_factory = None

    def get_engine(self):
        if self._engine is None:
            db_config = self.config.get("database", {})
            engine_kwargs = {
                "pool_pre_ping": True,
                "echo": bool(db_config.get("echo", False)),
            }

            if self.url.startswith("sqlite"):
                # the run thread and request threads share one file
                self._ensure_sqlite_dir(self.url)
                engine_kwargs["poolclass"] = NullPool
                engine_kwargs["connect_args"] = {"check_same_thread": False}
            else:
                engine_kwargs["pool_size"] = int(db_config.get("pool_size", 5))
                engine_kwargs["max_overflow"] = int(db_config.get("max_overflow", 10))

            self._engine = create_engine(self.url, **engine_kwargs)
        return self._engine

    @staticmethod
    def _ensure_sqlite_dir(url: str) -> None:
        path = url.split(":///", 1)[-1]
        if path and path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)

    def get_session_factory(self):
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.get_engine(), autoflush=False)
        return self._session_factory

    def create_tables(self) -> None:
        # registers the mapped classes on Base.metadata
        import models.image_record  # noqa: F401
        import models.user  # noqa: F401

        Base.metadata.create_all(bind=self.get_engine())

    def test_connection(self) -> bool:
        try:
            with self.get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            logging.getLogger("WebApp").error("Database connection test failed: %s", exc)
            return False

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None


# Process-wide instance, set up by the app factory
_db: Optional[Database] = None


def init_db(config: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> Database:
    global _db
    _db = Database(config, environ)
    return _db
