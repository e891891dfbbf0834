from __future__ import annotations

from dataclasses import dataclass

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from gradspeech.core.errors import ConfigurationError


def mask_secret(value: SecretStr | str | None, visible: int = 3) -> str:
    """Short prefix/suffix rendering of a secret for diagnostics."""
    if value is None:
        return "<unset>"
    raw = value.get_secret_value() if isinstance(value, SecretStr) else value
    if len(raw) <= visible * 2:
        return "***"
    return f"{raw[:visible]}...{raw[-visible:]}"


@dataclass(frozen=True)
class WebhookConfig:
    stripe_secret_key: SecretStr
    store_url: str
    store_credential: SecretStr
    webhook_secret: SecretStr | None
    tolerance_sec: int | None
    test_mode_enabled: bool


class Settings(BaseSettings):
    env: str = "local"  # local | test | staging | production
    log_level: str = "INFO"

    # Stripe
    stripe_secret_key: SecretStr | None = None
    stripe_webhook_secret: SecretStr | None = None
    webhook_tolerance_sec: int = 300

    # Record store (Supabase Postgres)
    supabase_url: str | None = None
    supabase_service_role_key: SecretStr | None = None

    # x-test-mode 헤더는 인증 우회라서 서버 설정으로만 켠다
    allow_test_mode: bool = False

    cors_allow_origin: str = "*"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def test_mode_enabled(self) -> bool:
        return self.allow_test_mode and self.env != "production"

    def webhook_config(self) -> WebhookConfig:
        """
        Validate everything the webhook needs in one pass.
        Raises ConfigurationError listing every missing field.
        """
        stripe_secret_key = self.stripe_secret_key
        store_url = self.supabase_url
        store_credential = self.supabase_service_role_key

        missing: list[str] = []
        if not stripe_secret_key:
            missing.append("STRIPE_SECRET_KEY")
        if not store_url:
            missing.append("SUPABASE_URL")
        if not store_credential:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")

        if not (stripe_secret_key and store_url and store_credential):
            # 클라이언트에는 카테고리 수준의 메시지만
            if "STRIPE_SECRET_KEY" in missing:
                message = "Server configuration error: Missing Stripe key"
            else:
                message = "Server configuration error: Missing database credentials"
            raise ConfigurationError(message, missing=missing)

        return WebhookConfig(
            stripe_secret_key=stripe_secret_key,
            store_url=store_url,
            store_credential=store_credential,
            webhook_secret=self.stripe_webhook_secret or None,
            tolerance_sec=self.webhook_tolerance_sec or None,
            test_mode_enabled=self.test_mode_enabled,
        )
