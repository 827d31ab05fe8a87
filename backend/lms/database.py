"""Database engine and helpers.

The `Database` object owns the SQLModel/SQLAlchemy engine. It is built
by the application factory at process start, attached to `app.state`
and disposed on shutdown, so nothing in the package holds a module-level
connection pool. Tests construct one against a throwaway SQLite file.
"""

from typing import Iterator

from fastapi import Request
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from . import models  # noqa: F401  registers table metadata


class Database:
    """Engine lifecycle plus session factory."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        connect_args = {}
        kwargs = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if url in ("sqlite://", "sqlite:///:memory:"):
                # a single shared connection keeps the in-memory schema alive
                kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, echo=echo, connect_args=connect_args, **kwargs)

    def create_all(self) -> None:
        """Create database tables using SQLModel metadata.

        Intended for local development and tests; production deployments
        should rely on a proper migration tool (alembic) instead.
        """
        SQLModel.metadata.create_all(self.engine)

    def session(self) -> Session:
        # keep loaded attributes after commit so services can keep returning rows
        return Session(self.engine, expire_on_commit=False)

    def dispose(self) -> None:
        self.engine.dispose()


def get_session(request: Request) -> Iterator[Session]:
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session bound to the application's database
    and ensures it is closed when the request scope finishes.
    """
    db: Database = request.app.state.db
    with db.session() as session:
        yield session
