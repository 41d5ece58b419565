from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy import event
import logging

from portfolio_ledger.core.config import Settings

logger = logging.getLogger(__name__)

# 声明基类：所有 Model 都要继承它，SQLAlchemy 才能通过它找到所有的表
Base = declarative_base()


# 数据库句柄 (Database Handle)
# 职责：持有引擎与会话工厂。由应用启动时创建、关闭时释放，
# 通过依赖注入传给 TradeExecutor / PortfolioQueryService，而不是模块级全局变量。
class Database:
    def __init__(self, url: str, pool_size: int = 5, max_overflow: int = 0, pool_recycle: int = 300, echo: bool = False):
        self.url = url
        is_sqlite = "sqlite" in url

        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if is_sqlite and ":memory:" in url:
            # 内存库只存在于单个连接中，所有会话必须共享它
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=pool_recycle,
            )
            if is_sqlite:
                # 如果数据库被锁，最多等 30 秒，而不是直接报错
                engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}

        self.engine = create_async_engine(url, **engine_kwargs)

        # SQLite 并发优化：WAL 允许读写同时进行
        if is_sqlite:
            @event.listens_for(self.engine.sync_engine, "connect")
            def set_sqlite_pragma(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
                cursor.execute("PRAGMA busy_timeout=30000")
                cursor.close()

        # 会话工厂：它是生产数据库连接的“模具”
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,  # 提交后不立即销毁对象，方便后续读取属性
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )

    async def create_all(self) -> None:
        # 显式导入模型以确保它们注册到 metadata
        from portfolio_ledger import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")
