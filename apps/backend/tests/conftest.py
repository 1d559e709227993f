from __future__ import annotations

import os
import tempfile
from typing import Generator, Any

import pytest
from sqlalchemy.orm import sessionmaker

from budgetbook.core.database import Base, build_engine, get_db
from budgetbook.core.deps import get_current_user
from budgetbook.main import app
from budgetbook import models


@pytest.fixture(scope="session")
def test_db_url() -> Generator[str, Any, Any]:
    # Temp-file SQLite so the developer database is never touched
    fd, path = tempfile.mkstemp(prefix="budgetbook_test_", suffix=".sqlite3")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    for suffix in ("", "-wal", "-shm"):
        try:
            os.remove(path + suffix)
        except OSError:
            pass


@pytest.fixture(scope="session")
def engine(test_db_url: str):
    eng = build_engine(test_db_url)
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Any, Any, Any]:
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    # Seed: two households; alice and bob (admin) share one, carol lives in the other
    rossi = models.Group(name="Rossi")
    bianchi = models.Group(name="Bianchi")
    session.add_all([rossi, bianchi])
    session.flush()
    session.add_all(
        [
            models.User(auth_subject="alice-sub", email="alice@example.com", name="Alice", group_id=rossi.id),
            models.User(
                auth_subject="bob-sub",
                email="bob@example.com",
                name="Bob",
                role=models.UserRole.ADMIN,
                group_id=rossi.id,
            ),
            models.User(auth_subject="carol-sub", email="carol@example.com", name="Carol", group_id=bianchi.id),
        ]
    )
    session.commit()

    try:
        yield session
    finally:
        session.close()
        with engine.connect() as conn:
            if engine.dialect.name == "sqlite":
                conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())
            # SQLite ignores PRAGMA foreign_keys inside a transaction, so commit first
            conn.commit()
            if engine.dialect.name == "sqlite":
                conn.exec_driver_sql("PRAGMA foreign_keys=ON")
                conn.commit()


@pytest.fixture()
def users(db_session) -> dict[str, models.User]:
    rows = db_session.query(models.User).all()
    return {user.name.lower(): user for user in rows}


@pytest.fixture()
def acting(db_session) -> dict[str, Any]:
    """Who the API sees as the caller; tests switch it with ``act_as``."""
    return {"email": "alice@example.com"}


@pytest.fixture()
def act_as(acting):
    def _switch(user: models.User) -> None:
        acting["email"] = user.email

    return _switch


@pytest.fixture(autouse=True)
def override_dependency(db_session, acting):
    # FastAPI DI override
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    def _current_user_override():
        return db_session.query(models.User).filter(models.User.email == acting["email"]).one()

    app.dependency_overrides[get_db] = _get_db_override
    app.dependency_overrides[get_current_user] = _current_user_override
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_account(db_session):
    def _make(*owners: models.User, type: str = "checking", balance: float = 0, name: str | None = None):
        account = models.Account(name=name or f"{type} account", type=type, balance=balance)
        account.user_ids = [owner.id for owner in owners]
        db_session.add(account)
        db_session.commit()
        db_session.refresh(account)
        return account

    return _make
