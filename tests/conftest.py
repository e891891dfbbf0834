"""Shared fixtures: in-memory record store, recording error tracker, app client."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from gradspeech.core.config import Settings
from gradspeech.db.init_db import create_all
from gradspeech.db.session import RecordStore
from gradspeech.main import create_app

WEBHOOK_SECRET = "whsec_test_secret_value"
STRIPE_SECRET_KEY = "sk_test_51abcdefghijklmnop"
SERVICE_ROLE_KEY = "service-role-key-value"


class RecordingTracker:
    """Error tracker fake that remembers every capture."""

    def __init__(self) -> None:
        self.captured: list[dict[str, Any]] = []

    def capture_exception(self, exc, *, tags=None, context=None) -> str:
        event_id = f"track-{len(self.captured) + 1}"
        self.captured.append(
            {
                "exc": exc,
                "tags": dict(tags or {}),
                "context": dict(context or {}),
                "event_id": event_id,
            }
        )
        return event_id


@pytest.fixture()
def make_settings():
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "env": "test",
            "stripe_secret_key": STRIPE_SECRET_KEY,
            "stripe_webhook_secret": WEBHOOK_SECRET,
            "supabase_url": "sqlite://",
            "supabase_service_role_key": SERVICE_ROLE_KEY,
            "allow_test_mode": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture()
def record_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all(engine)
    yield RecordStore(engine)
    engine.dispose()


@pytest.fixture()
def db(record_store):
    with record_store.session() as session:
        yield session


@pytest.fixture()
def tracker() -> RecordingTracker:
    return RecordingTracker()


@pytest.fixture()
def make_client(make_settings, record_store, tracker):
    def _make(**overrides: Any) -> TestClient:
        app = create_app(make_settings(**overrides), record_store=record_store, error_tracker=tracker)
        return TestClient(app)

    return _make


@pytest.fixture()
def client(make_client) -> TestClient:
    return make_client()
