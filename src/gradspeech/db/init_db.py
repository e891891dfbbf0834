from __future__ import annotations

from sqlalchemy import Engine

from gradspeech.db.base import Base

# 모델 import (Base에 테이블 등록되게)
from gradspeech.models import completion_record  # noqa: F401


def create_all(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
