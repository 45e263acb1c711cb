"""Shared fixtures"""

import pytest

from waqf_eval.config import Config
from waqf_eval.storage import RecordStore, MemoryBackend
from waqf_eval.waqf_manager import WaqfManager


@pytest.fixture
def store():
    return RecordStore(MemoryBackend())


@pytest.fixture
def waqf(store):
    return WaqfManager(store)


@pytest.fixture
def app(store):
    from app import create_app

    config = Config()
    config.SECRET_KEY = "test-secret"
    app = create_app(config=config, store=store)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client):
    client.post("/login", json={"username": "admin", "password": "secret"})
    return client
