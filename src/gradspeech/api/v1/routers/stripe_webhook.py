from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from gradspeech.api.deps import get_error_tracker, get_settings, resolve_record_store
from gradspeech.api.responses import json_response, preflight_response
from gradspeech.core.config import Settings, WebhookConfig, mask_secret
from gradspeech.core.errors import (
    AuthenticationError,
    ConfigurationError,
    MalformedEventError,
    SignatureHeaderError,
    WebhookError,
)
from gradspeech.db.session import RecordStore
from gradspeech.integrations.stripe.events import EventKind, ParsedEvent, parse_event
from gradspeech.integrations.stripe.signature import verify
from gradspeech.services.completion import CompletionResult, store_checkout_completion
from gradspeech.services.error_tracking import ErrorTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["stripe"])

SIGNATURE_HEADER = "stripe-signature"
TEST_MODE_HEADER = "x-test-mode"

SIGNATURE_FAILED_MESSAGE = "Webhook Error: Signature verification failed"


def _store_completion(store: RecordStore, event: ParsedEvent, config: WebhookConfig) -> CompletionResult:
    with store.session() as db:
        return store_checkout_completion(
            db,
            event.data.object,
            provider_event_id=event.id or None,
            stripe_api_key=config.stripe_secret_key.get_secret_value(),
        )


async def _ingest(
    request: Request,
    settings: Settings,
    tracker: ErrorTracker,
    tags: dict[str, str],
) -> JSONResponse:
    origin = settings.cors_allow_origin
    logger.info("Webhook endpoint called: %s %s", request.method, request.url.path)

    # 1) Configuration
    try:
        config = settings.webhook_config()
    except ConfigurationError as e:
        logger.error("Webhook configuration incomplete: missing=%s", ", ".join(e.missing))
        tracker.capture_exception(e, tags=tags)
        return json_response({"error": e.message}, e.status_code, origin=origin)

    # 2) Mode: 헤더만으로는 test mode가 안 켜진다 (서버 설정 필요)
    requested_test_mode = request.headers.get(TEST_MODE_HEADER) == "true"
    test_mode = requested_test_mode and config.test_mode_enabled
    if requested_test_mode and not test_mode:
        logger.warning("Ignoring %s header: test mode is disabled (env=%s)", TEST_MODE_HEADER, settings.env)

    # 서명은 raw bytes 기준이라 JSON 디코딩 전에 body를 그대로 잡아둔다
    payload = await request.body()

    # 3) Verify + parse
    if test_mode:
        logger.info("Running in test mode - bypassing signature verification")
        tags["test_mode"] = "true"
        try:
            event = parse_event(payload)
        except MalformedEventError as e:
            logger.error("Failed to parse request body in test mode: %s", e.message)
            tracker.capture_exception(e, tags=tags)
            return json_response({"error": "Invalid JSON format in test mode"}, 400, origin=origin)
    else:
        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            logger.error("Missing %s header", SIGNATURE_HEADER)
            err = AuthenticationError("Missing Stripe signature")
            tracker.capture_exception(err, tags=tags)
            return json_response({"error": err.message}, err.status_code, origin=origin)

        if config.webhook_secret is None:
            logger.error("Missing STRIPE_WEBHOOK_SECRET")
            cfg_err = ConfigurationError(
                "Server configuration error: Missing webhook secret",
                missing=["STRIPE_WEBHOOK_SECRET"],
            )
            tracker.capture_exception(cfg_err, tags=tags)
            return json_response({"error": cfg_err.message}, cfg_err.status_code, origin=origin)

        secret = config.webhook_secret.get_secret_value()
        logger.debug(
            "Verifying payload: length=%d signature_length=%d secret=%s",
            len(payload),
            len(signature),
            mask_secret(config.webhook_secret),
        )

        try:
            is_valid = verify(payload, signature, secret, tolerance=config.tolerance_sec)
        except SignatureHeaderError as e:
            logger.error("Error during signature verification: %s", e.message)
            tracker.capture_exception(e, tags=tags, context={"signature_length": len(signature)})
            return json_response({"error": SIGNATURE_FAILED_MESSAGE}, 400, origin=origin)

        if not is_valid:
            logger.error(
                "Webhook signature verification failed: payload_length=%d secret=%s",
                len(payload),
                mask_secret(config.webhook_secret),
            )
            err = AuthenticationError(SIGNATURE_FAILED_MESSAGE)
            tracker.capture_exception(
                err,
                tags=tags,
                context={"signature_length": len(signature), "payload_length": len(payload)},
            )
            return json_response({"error": err.message}, err.status_code, origin=origin)

        logger.info("Signature verification succeeded")

        try:
            event = parse_event(payload)
        except MalformedEventError as e:
            tracker.capture_exception(e, tags=tags)
            return json_response({"error": f"Invalid JSON format: {e.message}"}, 400, origin=origin)

    logger.info("Received Stripe event: %s (id=%s)", event.type, event.id)
    tags["event_type"] = event.type

    # 4) Record store
    try:
        store = resolve_record_store(request.app, config)
    except (SQLAlchemyError, ValueError) as e:
        logger.error("Failed to initialize record store: %s", type(e).__name__)
        tracker.capture_exception(e, tags=tags)
        return json_response({"error": "Database initialization error"}, 500, origin=origin)

    # 5) Dispatch
    if event.kind is EventKind.CHECKOUT_SESSION_COMPLETED:
        result = await run_in_threadpool(_store_completion, store, event, config)
        if not (result.saved or result.deduped):
            # 재전송 폭탄 방지: 200으로 수신 확인하고 내부에서만 경보
            logger.error("Checkout completion not stored: event=%s reason=%s", event.id, result.reason)
    else:
        logger.info("Event type not handled: %s", event.type)

    return json_response({"received": True}, 200, origin=origin)


@router.options("/webhook")
async def stripe_webhook_preflight(settings: Settings = Depends(get_settings)) -> Response:
    return preflight_response(settings.cors_allow_origin)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    tracker: ErrorTracker = Depends(get_error_tracker),
) -> JSONResponse:
    tags: dict[str, str] = {}
    try:
        return await _ingest(request, settings, tracker, tags)
    except Exception as e:
        # 로컬에서 못 잡은 건 여기서 한 번만: tracking id를 body에 실어 보낸다
        event_id = tracker.capture_exception(
            e,
            tags=tags,
            context={"method": request.method, "path": request.url.path},
        )
        logger.error("Critical error in stripe webhook (event_id=%s)", event_id)
        message = e.message if isinstance(e, WebhookError) else "Webhook Error"
        return json_response(
            {"error": message, "sentryEventId": event_id},
            400,
            origin=settings.cors_allow_origin,
        )
