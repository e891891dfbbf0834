from fastapi import APIRouter, Depends

from gradspeech.api.deps import record_store
from gradspeech.db.session import RecordStore

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/db-ping")
def db_ping(store: RecordStore = Depends(record_store)):  # noqa: B008
    store.ping()
    return {"db": "ok"}
