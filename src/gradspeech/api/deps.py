from fastapi import FastAPI, HTTPException, Request

from gradspeech.core.config import Settings, WebhookConfig
from gradspeech.core.errors import ConfigurationError
from gradspeech.db.session import RecordStore
from gradspeech.services.error_tracking import ErrorTracker


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_error_tracker(request: Request) -> ErrorTracker:
    return request.app.state.error_tracker


def resolve_record_store(app: FastAPI, config: WebhookConfig) -> RecordStore:
    """주입된 store가 없으면 첫 사용 시 한 번 만든다."""
    store = getattr(app.state, "record_store", None)
    if store is None:
        store = RecordStore.from_url(config.store_url, config.store_credential)
        app.state.record_store = store
    return store


def record_store(request: Request) -> RecordStore:
    """FastAPI dependency: configured record store"""
    try:
        config = request.app.state.settings.webhook_config()
    except ConfigurationError:
        raise HTTPException(status_code=503, detail="Record store is not configured") from None

    return resolve_record_store(request.app, config)
