from __future__ import annotations

from gradspeech.core.config import Settings
from gradspeech.db.init_db import create_all
from gradspeech.db.session import RecordStore


def main() -> int:
    config = Settings().webhook_config()
    store = RecordStore.from_url(config.store_url, config.store_credential)
    create_all(store.engine)
    print("✅ DB tables created")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
