from __future__ import annotations


class WebhookError(Exception):
    """Base for errors the webhook endpoint maps to a precise response."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(WebhookError):
    status_code = 500

    def __init__(self, message: str, *, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = list(missing or [])


class AuthenticationError(WebhookError):
    status_code = 400


class SignatureHeaderError(AuthenticationError):
    """Signature header could not be parsed (as opposed to a digest mismatch)."""


class MalformedEventError(WebhookError):
    status_code = 400


class DownstreamError(WebhookError):
    # 레코드 스토어 실패: 상위 catch-all 경로에서 tracking id와 함께 400
    status_code = 400
