import logging

from fastapi import FastAPI

from gradspeech.api.v1.routers.health import router as health_router
from gradspeech.api.v1.routers.stripe_webhook import router as stripe_router
from gradspeech.api.v1.routers.stripe_webhook import stripe_webhook, stripe_webhook_preflight
from gradspeech.core.config import Settings
from gradspeech.core.errors import ConfigurationError
from gradspeech.core.logging import configure_logging
from gradspeech.db.session import RecordStore
from gradspeech.services.error_tracking import ErrorTracker, LoggingErrorTracker

logger = logging.getLogger(__name__)

# Supabase edge function 시절 경로 (Stripe dashboard 설정 호환)
LEGACY_WEBHOOK_PATH = "/functions/v1/stripe-webhook"


def create_app(
    settings: Settings | None = None,
    *,
    record_store: RecordStore | None = None,
    error_tracker: ErrorTracker | None = None,
) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="GradSpeech", version="0.1.0")
    app.state.settings = settings
    app.state.record_store = record_store
    app.state.error_tracker = error_tracker or LoggingErrorTracker()

    app.include_router(health_router, prefix="/api/v1")
    app.include_router(stripe_router, prefix="/api/v1")
    app.add_api_route(LEGACY_WEBHOOK_PATH, stripe_webhook, methods=["POST"], tags=["stripe"])
    app.add_api_route(LEGACY_WEBHOOK_PATH, stripe_webhook_preflight, methods=["OPTIONS"], tags=["stripe"])

    @app.on_event("startup")
    def validate_settings() -> None:
        # 설정 누락은 요청 단위 500으로 응답하므로 여기서는 로그만
        try:
            settings.webhook_config()
        except ConfigurationError as e:
            logger.error("Webhook configuration incomplete, requests will fail: missing=%s", ", ".join(e.missing))

        if not settings.stripe_webhook_secret:
            logger.warning("STRIPE_WEBHOOK_SECRET is not set; signed webhooks will be rejected")
        if settings.allow_test_mode and not settings.test_mode_enabled:
            logger.warning("ALLOW_TEST_MODE is ignored when ENV=production")

    return app


app = create_app()
