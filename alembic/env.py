import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import engine_from_config, pool

from alembic import context

# add project src/ to PYTHONPATH so "import gradspeech" works
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from gradspeech.core.config import Settings  # noqa: E402
from gradspeech.db.base import Base  # noqa: E402
from gradspeech.db.session import build_store_url  # noqa: E402
from gradspeech.models import completion_record  # noqa: F401, E402  (model import for metadata)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _store_url() -> str:
    store = Settings().webhook_config()
    return build_store_url(store.store_url, store.store_credential)


def run_migrations_offline() -> None:
    context.configure(
        url=_store_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = _store_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
