"""
checkout.session.completed → CompletionRecord 저장.

- checkout_session_id 기준으로 idempotent (Stripe는 at-least-once로 재전송함)
- 여기서 재시도하지 않는다. 재시도는 Stripe redelivery 몫
- form data / session id가 없으면 "저장 안 됨" 결과만 돌려주고 예외는 던지지 않음
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import stripe
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gradspeech.core.errors import DownstreamError
from gradspeech.models.completion_record import CompletionRecord

logger = logging.getLogger(__name__)

RECORD_ID_LENGTH = 8

# metadata에서 form snapshot이 아닌 키
_RESERVED_METADATA_KEYS = {"form_data", "preview_id", "previewId"}


@dataclass(frozen=True)
class CompletionResult:
    saved: bool
    deduped: bool = False
    record_id: Optional[str] = None
    reason: Optional[str] = None


def generate_record_id() -> str:
    return uuid.uuid4().hex[:RECORD_ID_LENGTH]


def extract_form_data(checkout_session: dict[str, Any]) -> dict[str, Any]:
    metadata = checkout_session.get("metadata") or {}

    encoded = metadata.get("form_data")
    if encoded:
        try:
            decoded = json.loads(encoded) if isinstance(encoded, str) else encoded
        except json.JSONDecodeError:
            logger.warning("metadata.form_data is not valid JSON; falling back to metadata fields")
        else:
            if isinstance(decoded, dict):
                return decoded

    return {k: v for k, v in metadata.items() if k not in _RESERVED_METADATA_KEYS}


def resolve_customer_email(
    checkout_session: dict[str, Any],
    form_data: dict[str, Any],
    *,
    stripe_api_key: str | None = None,
) -> str:
    details = checkout_session.get("customer_details") or {}
    for candidate in (details.get("email"), checkout_session.get("customer_email"), form_data.get("email")):
        if candidate:
            return str(candidate)

    customer_id = checkout_session.get("customer")
    if customer_id and stripe_api_key:
        try:
            customer = stripe.Customer.retrieve(customer_id, api_key=stripe_api_key)
        except stripe.StripeError:
            logger.warning("Could not look up Stripe customer %s for email", customer_id, exc_info=True)
            return ""
        return getattr(customer, "email", None) or ""

    return ""


def store_checkout_completion(
    db: Session,
    checkout_session: Any,
    *,
    provider_event_id: str | None = None,
    stripe_api_key: str | None = None,
) -> CompletionResult:
    if not isinstance(checkout_session, dict):
        logger.warning("checkout.session.completed with non-object payload (event=%s)", provider_event_id)
        return CompletionResult(saved=False, reason="invalid_session_object")

    session_id = checkout_session.get("id")
    if not session_id:
        logger.warning("checkout.session.completed without session id (event=%s)", provider_event_id)
        return CompletionResult(saved=False, reason="missing_session_id")

    # 1) 이미 저장된 session이면 dedupe
    try:
        existing = (
            db.query(CompletionRecord)
            .filter(CompletionRecord.checkout_session_id == session_id)
            .one_or_none()
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise DownstreamError("Failed to query completion records") from e

    if existing is not None:
        logger.info("Completion already stored: session=%s record=%s", session_id, existing.id)
        return CompletionResult(saved=False, deduped=True, record_id=existing.id)

    form_data = extract_form_data(checkout_session)
    if not form_data:
        logger.warning("No form data attached to checkout session %s", session_id)
        return CompletionResult(saved=False, reason="missing_form_data")

    # preview_id는 여러 결제가 공유할 수 있으니 PK로 쓰지 않는다
    metadata = checkout_session.get("metadata") or {}
    preview_id = metadata.get("preview_id") or metadata.get("previewId")
    record_id = generate_record_id()

    row = CompletionRecord(
        id=record_id,
        preview_id=str(preview_id) if preview_id else None,
        checkout_session_id=session_id,
        provider_event_id=provider_event_id,
        customer_email=resolve_customer_email(checkout_session, form_data, stripe_api_key=stripe_api_key),
        form_data=form_data,
        amount_total=checkout_session.get("amount_total"),
        currency=checkout_session.get("currency"),
        processed=False,
    )

    # 2) UNIQUE(checkout_session_id) race는 IntegrityError로 잡는다
    try:
        db.add(row)
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = (
            db.query(CompletionRecord)
            .filter(CompletionRecord.checkout_session_id == session_id)
            .one_or_none()
        )
        if winner is None:
            # session이 아니라 생성된 id 충돌
            raise DownstreamError(f"Completion record id {record_id} already exists") from None
        logger.info("Completion deduped on insert race: session=%s", session_id)
        return CompletionResult(saved=False, deduped=True, record_id=winner.id)
    except SQLAlchemyError as e:
        db.rollback()
        raise DownstreamError("Failed to store completion record") from e

    logger.info("Completion stored: session=%s record=%s", session_id, row.id)
    return CompletionResult(saved=True, record_id=row.id)
