from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm.exc import StaleDataError

from portfolio_ledger.core.database import Database
from portfolio_ledger.core.exceptions import LedgerConflict, StoreFailure
from portfolio_ledger.models.asset import AssetPosition, AssetType
from portfolio_ledger.models.transaction import TransactionRecord, TransactionType

logger = logging.getLogger(__name__)

# 可重试的并发错误：PostgreSQL 的 SQLSTATE 与 MySQL 的错误码
_RETRYABLE_SQLSTATES = {"40001", "40P01"}  # serialization_failure, deadlock_detected
_RETRYABLE_MYSQL_CODES = {1205, 1213}      # lock wait timeout, deadlock


def is_transient_conflict(error: DBAPIError) -> bool:
    """True when the driver reports a deadlock, serialization failure or lock timeout."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True
    args = getattr(orig, "args", ())
    if args and args[0] in _RETRYABLE_MYSQL_CODES:
        return True
    # SQLite 写锁等待超过 busy_timeout
    return "database is locked" in str(orig)


# 账本存储层 (Ledger Store)
# 职责：持仓表与交易流水表的全部读写，以及“原子工作单元”。
# 所有方法都接收调用方持有的 session，这样多个读写可以落在同一个事务里。
class LedgerStore:
    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[AsyncSession]:
        """
        Atomic unit of work: commit on clean exit, roll back on any exception.

        The session exists before the transaction is opened, so the rollback
        path always has a valid handle. Concurrent-write failures surface as
        ``LedgerConflict``; every other database fault as ``StoreFailure``.
        Business exceptions raised by the caller pass through unchanged.
        """
        session = self.database.session_factory()
        async with session:
            try:
                async with session.begin():
                    yield session
            except (StaleDataError, IntegrityError) as e:
                logger.warning(f"Unit of work conflicted and was rolled back: {type(e).__name__}")
                raise LedgerConflict() from e
            except DBAPIError as e:
                if not is_transient_conflict(e):
                    logger.error(f"Unit of work failed and was rolled back: {type(e).__name__}: {e}")
                    raise StoreFailure() from e
                logger.warning(f"Unit of work hit a lock conflict and was rolled back: {e.orig}")
                raise LedgerConflict() from e
            except SQLAlchemyError as e:
                logger.error(f"Unit of work failed and was rolled back: {type(e).__name__}: {e}")
                raise StoreFailure() from e

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        """Read-only session; no isolation beyond what the database gives by default."""
        async with self.database.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                logger.error(f"Ledger read failed: {type(e).__name__}: {e}")
                raise StoreFailure() from e

    # ---------- 持仓 (Positions) ----------

    async def get_position(
        self,
        session: AsyncSession,
        user_id: str,
        asset_type: str,
        symbol: str,
        for_update: bool = False,
    ) -> Optional[AssetPosition]:
        stmt = select(AssetPosition).where(
            AssetPosition.user_id == user_id,
            AssetPosition.asset_type == asset_type,
            AssetPosition.symbol == symbol,
        )
        if for_update:
            # 行级锁：PostgreSQL / MySQL 下生效，SQLite 会忽略并依赖版本号
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_positions(
        self,
        session: AsyncSession,
        user_id: str,
        asset_type: Optional[str] = None,
    ) -> List[AssetPosition]:
        stmt = select(AssetPosition).where(AssetPosition.user_id == user_id)
        if asset_type:
            stmt = stmt.where(AssetPosition.asset_type == asset_type)
        stmt = stmt.order_by(AssetPosition.asset_type, AssetPosition.symbol)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def save_position(
        self,
        session: AsyncSession,
        user_id: str,
        asset_type: str,
        symbol: str,
        quantity: Decimal,
        average_price: Decimal,
        existing: Optional[AssetPosition] = None,
    ) -> Tuple[AssetPosition, bool]:
        """Insert or update by (user_id, asset_type, symbol). Returns ``(position, created)``."""
        if existing is None:
            existing = await self.get_position(session, user_id, asset_type, symbol, for_update=True)

        if existing is not None:
            existing.quantity = quantity
            existing.average_price = average_price
            position, created = existing, False
        else:
            position = AssetPosition(
                user_id=user_id,
                asset_type=asset_type,
                symbol=symbol,
                quantity=quantity,
                average_price=average_price,
            )
            session.add(position)
            created = True

        await session.flush()
        return position, created

    async def delete_position(self, session: AsyncSession, position: AssetPosition) -> None:
        await session.delete(position)
        await session.flush()

    async def held_symbols(self, session: AsyncSession, user_id: str) -> List[str]:
        stmt = (
            select(AssetPosition.symbol)
            .where(
                AssetPosition.user_id == user_id,
                AssetPosition.asset_type == AssetType.STOCK.value,
                AssetPosition.quantity > 0,
            )
            .order_by(AssetPosition.symbol)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    # ---------- 交易流水 (Transactions) ----------

    async def append_transaction(
        self,
        session: AsyncSession,
        user_id: str,
        symbol: str,
        type: TransactionType,
        quantity: Decimal,
        price: Decimal,
    ) -> TransactionRecord:
        record = TransactionRecord(
            user_id=user_id,
            symbol=symbol,
            type=type.value,
            quantity=quantity,
            price=price,
        )
        session.add(record)
        await session.flush()
        return record

    async def query_transactions(
        self,
        session: AsyncSession,
        user_id: str,
        symbol: Optional[str] = None,
        type: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[int, List[TransactionRecord]]:
        """
        Filtered, newest-first page of a user's transactions plus the total
        match count. LIMIT/OFFSET are bound parameters, never interpolated.
        """
        filters = [TransactionRecord.user_id == user_id]
        if symbol:
            filters.append(TransactionRecord.symbol == symbol)
        if type:
            filters.append(TransactionRecord.type == type)

        count_stmt = select(func.count()).select_from(TransactionRecord).where(*filters)
        total = (await session.execute(count_stmt)).scalar_one()

        page_stmt = (
            select(TransactionRecord)
            .where(*filters)
            .order_by(TransactionRecord.timestamp.desc(), TransactionRecord.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        result = await session.execute(page_stmt)
        return total, list(result.scalars().all())
