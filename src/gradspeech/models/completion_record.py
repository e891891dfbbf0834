from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, false, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from gradspeech.db.base import Base

# Postgres에서는 JSONB, 테스트(sqlite)에서는 JSON
JSONType = JSON().with_variant(JSONB(), "postgresql")


class CompletionRecord(Base):
    """
    결제 완료된 speech form snapshot.

    - checkout_session_id UNIQUE로 Stripe 재전송 시 중복 생성 방지
    - processed는 speech 생성 프로세스(별도)가 true로 바꾼다
    """
    __tablename__ = "completion_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    checkout_session_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    provider_event_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    preview_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    customer_email: Mapped[str] = mapped_column(String(320), default="")
    form_data: Mapped[dict] = mapped_column(JSONType, default=dict)

    amount_total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    processed: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
