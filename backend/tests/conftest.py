from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import quantumsim.db.init_db as db_init
import quantumsim.db.session as db_session
from quantumsim.api.main import app
from quantumsim.db.base import Base
from quantumsim.db.deps import get_db


@pytest.fixture(scope="session")
def db_engine():
    # одна in-memory база на всю сессию, StaticPool держит единственный коннект
    return create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture(scope="session")
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="session", autouse=True)
def _use_test_db(db_engine, session_factory):
    # lifespan приложения вызывает init_db(), он должен видеть тестовый engine
    db_session.engine = db_engine
    db_session.SessionLocal = session_factory
    db_init.engine = db_engine

    Base.metadata.create_all(bind=db_engine)
    yield
    Base.metadata.drop_all(bind=db_engine)


@pytest.fixture()
def client(session_factory):
    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def binary_game(client):
    """Партия на binary-stars с фиксированным seed, созданная через API."""
    r = client.post(
        "/games",
        json={
            "map_id": "binary-stars",
            "players": [
                {"id": "A", "faction_id": "quantum"},
                {"id": "B", "faction_id": "void", "kind": "ai"},
            ],
            "seed": 7,
        },
    )
    assert r.status_code == 200, r.text
    return r.json()
