import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from portfolio_ledger.core.config import settings
from portfolio_ledger.core.database import Base
# 显式导入账本模型，确保持仓表和流水表注册到 metadata
from portfolio_ledger.models import AssetPosition, TransactionRecord  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
LEDGER_TABLES = set(target_metadata.tables)


def ledger_database_url() -> str:
    """`alembic -x db_url=...` 可以临时指定目标库（如迁移前的副本），否则用配置里的 DATABASE_URL"""
    return context.get_x_argument(as_dictionary=True).get("db_url") or settings.DATABASE_URL


def include_object(object, name, type_, reflected, compare_to):
    # 同一个库里可能还有别的应用的表；autogenerate 只管账本自己的两张表
    if type_ == "table":
        return name in LEDGER_TABLES
    return True


def configure_context(**kwargs) -> None:
    # compare_type：Numeric(15,4) 之类的精度变化也要生成迁移，金额精度是账本的一部分
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the ledger DDL as SQL without connecting."""
    configure_context(
        url=ledger_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    # SQLite 不支持大部分 ALTER，batch 模式按“建新表-拷数据-换名”执行
    configure_context(connection=connection, render_as_batch=connection.dialect.name == "sqlite")

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = ledger_database_url()

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
