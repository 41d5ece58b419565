import asyncio
import sys

from portfolio_ledger.core.config import settings
from portfolio_ledger.core.database import Database
from portfolio_ledger.services.asset_service import AssetService
from portfolio_ledger.services.ledger_store import LedgerStore

# 用法: python scripts/init_db.py [user_id] [cash_amount]
# 创建表；如果给出用户和金额，则为该用户录入一笔初始现金


async def init_db(user_id: str = None, cash: str = None):
    database = Database.from_settings(settings)
    try:
        print("🔧 Creating tables...")
        await database.create_all()

        if user_id and cash:
            service = AssetService(LedgerStore(database), cash_symbol=settings.CASH_SYMBOL)
            change = await service.add_asset(user_id, "cash", settings.CASH_SYMBOL, cash, 1)
            print(f"🌱 Cash {change.action} for {user_id}: {change.quantity} {change.symbol}")

        print("✅ Database ready.")
    finally:
        await database.dispose()

if __name__ == "__main__":
    args = sys.argv[1:]
    asyncio.run(init_db(*args[:2]))
