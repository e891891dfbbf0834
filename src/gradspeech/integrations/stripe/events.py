from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gradspeech.core.errors import MalformedEventError


class EventKind(str, Enum):
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, event_type: str) -> "EventKind":
        try:
            return cls(event_type)
        except ValueError:
            return cls.UNKNOWN


class EventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # checkout 외 이벤트는 object 형태를 가리지 않는다 (dict 검사는 completion 쪽)
    object: Any = Field(default_factory=dict)


class ParsedEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str
    data: EventData = Field(default_factory=EventData)
    livemode: Optional[bool] = None
    created: Optional[int] = None

    @field_validator("type")
    @classmethod
    def _type_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("event type must not be blank")
        return v

    @property
    def kind(self) -> EventKind:
        return EventKind.from_type(self.type)


def _describe(err: ValidationError) -> str:
    first = err.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ())) or "event"
    return f"{loc}: {first.get('msg', 'invalid value')}"


def parse_event(raw_body: bytes) -> ParsedEvent:
    """
    구조적 디코딩만 한다. 알 수 없는 type은 그대로 통과시키고 downstream에서 무시.
    """
    try:
        decoded = json.loads(raw_body)
    except UnicodeDecodeError as e:
        raise MalformedEventError(f"Body is not valid UTF-8: {e.reason}") from e
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"{e.msg}: line {e.lineno} column {e.colno}") from e

    if not isinstance(decoded, dict):
        raise MalformedEventError("Event body must be a JSON object")
    if "type" not in decoded:
        raise MalformedEventError("Event is missing required field 'type'")

    try:
        return ParsedEvent.model_validate(decoded)
    except ValidationError as e:
        raise MalformedEventError(_describe(e)) from e
