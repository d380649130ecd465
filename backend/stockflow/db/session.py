from contextlib import contextmanager
from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from stockflow.core.config import get_settings


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Build an engine; SQLite connections take the write lock when a transaction begins."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, future=True, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        echo=echo,
        future=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # take the database write lock at BEGIN; pysqlite would defer it to the first write
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


settings = get_settings()
engine = create_db_engine(settings.database_url, echo=settings.echo_sql)


def init_db(bind: Engine | None = None) -> None:
    from stockflow.models import base  # noqa: F401 ensures models are imported

    SQLModel.metadata.create_all(bind=bind or engine)


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
