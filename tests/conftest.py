import random

import pytest
import httpx

from castmatch.core import settings as settings_module
from castmatch.db.base import Base
from castmatch.db.session import get_engine, get_sessionmaker, init_engine
from castmatch.main import app


@pytest.fixture(autouse=True)
def _use_test_db(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    database_url = f"sqlite+pysqlite:///{db_path}"

    monkeypatch.setattr(settings_module.settings, "database_url", database_url)
    monkeypatch.setattr(settings_module.settings, "db_auto_create", True)
    monkeypatch.setattr(settings_module.settings, "media_root", str(tmp_path / "media"))
    monkeypatch.setattr(settings_module.settings, "gemini_api_key", None)
    monkeypatch.setattr(settings_module.settings, "google_cloud_project", None)
    monkeypatch.setattr(settings_module.settings, "matching_strategy", "heuristic")

    init_engine(database_url)
    Base.metadata.create_all(bind=get_engine())

    yield


@pytest.fixture()
def db():
    session = get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
async def client():
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
