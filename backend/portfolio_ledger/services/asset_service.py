import logging
from typing import Any

from portfolio_ledger.core.exceptions import InvalidInput, LedgerConflict, StoreFailure
from portfolio_ledger.models.asset import AssetType
from portfolio_ledger.schemas.portfolio import AssetChange
from portfolio_ledger.services.accountant import CASH_PRICE, compute_weighted_average, round_quantity
from portfolio_ledger.services.ledger_store import LedgerStore
from portfolio_ledger.services.validation import normalize_symbol, parse_amount

logger = logging.getLogger(__name__)

ASSET_TYPES = [t.value for t in AssetType]

# 手动录入资产 (Manual Position Adjustment)
# 用于初始入金、补录历史持仓等非市场交易场景；不写交易流水。
class AssetService:
    def __init__(self, store: LedgerStore, cash_symbol: str = "USD", max_retries: int = 3):
        self.store = store
        self.cash_symbol = cash_symbol
        self.max_retries = max(1, max_retries)

    async def add_asset(self, user_id: str, asset_type: Any, symbol: Any, quantity: Any, average_price: Any) -> AssetChange:
        """
        Seed or top up a position without a trade.

        A new row is inserted as given; an existing row has the lot folded in
        with the weighted average. Cash always carries an average price of 1
        and only the configured cash symbol is accepted.
        """
        # 1. 校验必填字段 (Required fields)
        if asset_type is None or symbol is None or quantity is None or average_price is None:
            raise InvalidInput("Missing required fields: asset_type, symbol, quantity, average_price")
        if asset_type not in ASSET_TYPES:
            raise InvalidInput('asset_type must be either "stock" or "cash"')

        symbol = normalize_symbol(symbol)
        qty = parse_amount(quantity, "quantity")

        if asset_type == AssetType.CASH.value:
            # 现金均价恒为 1，且目前只支持单一币种
            if symbol != self.cash_symbol:
                raise InvalidInput(f"Only {self.cash_symbol} is supported for cash assets currently")
            price = CASH_PRICE
        else:
            price = parse_amount(average_price, "average_price", allow_zero=True)

        # 2. 读-算-写放在同一个工作单元里，并发补录不会丢失更新
        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.store.unit_of_work() as session:
                    existing = await self.store.get_position(session, user_id, asset_type, symbol, for_update=True)
                    if existing is not None:
                        new_qty, new_avg = compute_weighted_average(
                            asset_type, existing.quantity, existing.average_price, qty, price
                        )
                    else:
                        new_qty, new_avg = qty, price
                    position, created = await self.store.save_position(
                        session, user_id, asset_type, symbol, new_qty, round_quantity(new_avg), existing=existing
                    )
                break
            except LedgerConflict as e:
                if attempt == self.max_retries:
                    raise StoreFailure() from e
                logger.warning(f"Asset add for user {user_id} {asset_type}:{symbol} conflicted, retry {attempt}")

        action = "created" if created else "updated"
        logger.info(f"Asset {action} for user {user_id}: {asset_type} {symbol} qty={position.quantity} avg={position.average_price}")
        return AssetChange(
            id=position.id,
            user_id=user_id,
            asset_type=asset_type,
            symbol=symbol,
            quantity=position.quantity,
            average_price=round_quantity(position.average_price),
            action=action,
        )
