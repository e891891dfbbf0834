from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping, Protocol


class ErrorTracker(Protocol):
    def capture_exception(
        self,
        exc: BaseException,
        *,
        tags: Mapping[str, str] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> str:
        """Report an exception and return its tracking id."""
        ...


class LoggingErrorTracker:
    """
    Error tracker that records to the log under a generated tracking id.
    tags/context는 호출 단위로 받는다 (요청 간 공유 scope 없음).
    """

    def __init__(self, logger_name: str = "gradspeech.errors") -> None:
        self._logger = logging.getLogger(logger_name)

    def capture_exception(
        self,
        exc: BaseException,
        *,
        tags: Mapping[str, str] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> str:
        event_id = uuid.uuid4().hex
        self._logger.error(
            "Captured %s [event_id=%s] tags=%s context=%s: %s",
            type(exc).__name__,
            event_id,
            dict(tags or {}),
            dict(context or {}),
            exc,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        return event_id
