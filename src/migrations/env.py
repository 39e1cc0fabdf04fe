import asyncio
import logging
import logging.config

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context
from alembic.operations import MigrationScript
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from src.db.models import BaseModel
from src.settings.db import get_db_settings
from src.settings.log import get_log_settings

config = context.config
logger = logging.getLogger("alembic.env")

# same handlers / format as the application itself
logging.config.dictConfig(get_log_settings().dict_config_any)

target_metadata = BaseModel.metadata
config.set_main_option("sqlalchemy.url", get_db_settings().database_dsn)


def run_migrations_offline() -> None:
    """Emits SQL of the migrations to the script output (no DB connection required)"""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        process_revision_directives=process_revision_directives,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def process_revision_directives(
    migration_context: MigrationContext,
    revision: tuple[str, ...],
    directives: list[MigrationScript],
) -> None:
    """
    Numbers revisions sequentially (0001_initial.py, 0002_*.py, ...)
    and skips autogenerated revisions without schema changes
    """
    migration_script = directives[0]
    if migration_script.upgrade_ops is not None and migration_script.upgrade_ops.is_empty():
        directives[:] = []
        logger.info("No changes in schema detected.")
        return

    head_revision = ScriptDirectory.from_config(config).get_current_head()
    new_rev_id = int(head_revision) + 1 if head_revision else 1
    migration_script.rev_id = f"{new_rev_id:04}"


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
