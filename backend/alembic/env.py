import os
from logging.config import fileConfig
from sqlalchemy import create_engine
from alembic import context

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def database_url() -> str:
    """TASKS_DATABASE_PATH (set by database.init_db) wins over alembic.ini."""
    db_path = os.getenv("TASKS_DATABASE_PATH")
    if db_path:
        return f"sqlite:///{db_path}"
    return config.get_main_option("sqlalchemy.url")


def run_migrations() -> None:
    # Plain SQL migrations, no metadata to autogenerate from
    if context.is_offline_mode():
        context.configure(
            url=database_url(),
            target_metadata=None,
            literal_binds=True,
            dialect_opts={"paramstyle": "named"},
        )
        with context.begin_transaction():
            context.run_migrations()
        return

    engine = create_engine(database_url())
    with engine.connect() as connection:
        # SQLite has limited ALTER TABLE support
        context.configure(connection=connection, target_metadata=None, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


run_migrations()
