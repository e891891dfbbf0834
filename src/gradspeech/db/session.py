from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from pydantic import SecretStr
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker


def build_store_url(url: str, credential: SecretStr | str | None) -> str:
    """
    Supabase service credential을 DB password로 주입한다.
    URL에 host가 없으면 (sqlite 등) 그대로 둔다.
    """
    parsed = make_url(url)
    if credential is None or not parsed.host:
        return parsed.render_as_string(hide_password=False)

    secret = credential.get_secret_value() if isinstance(credential, SecretStr) else credential
    return parsed.set(password=secret).render_as_string(hide_password=False)


class RecordStore:
    """Engine + session factory, built once and injected into the app."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessionmaker = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str, credential: SecretStr | str | None = None) -> "RecordStore":
        engine = create_engine(build_store_url(url, credential), pool_pre_ping=True)
        return cls(engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self._sessionmaker()
        try:
            yield db
        finally:
            db.close()

    def ping(self) -> None:
        with self.session() as db:
            db.execute(text("SELECT 1"))
