from __future__ import annotations

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase, declared_attr

from .config import settings


class Base(DeclarativeBase):
    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return cls.__name__.lower()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def enable_sqlite_pragmas(target: Engine) -> None:
    """Turn on FK enforcement (period cascade relies on it) and WAL for every connection."""

    @event.listens_for(target, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[override]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def build_engine(url: str, *, echo: bool = False) -> Engine:
    sqlite = _is_sqlite(url)
    created = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False} if sqlite else {},
    )
    if sqlite:
        enable_sqlite_pragmas(created)
    return created


engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
