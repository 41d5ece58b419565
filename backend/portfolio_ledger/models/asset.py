from sqlalchemy import Column, Integer, String, Numeric, DateTime, UniqueConstraint
from datetime import datetime
import enum
from portfolio_ledger.core.database import Base

# 资产类别 (Asset Type)
class AssetType(str, enum.Enum):
    STOCK = "stock"
    CASH = "cash"

# 资产持仓表 (Asset Positions)
# 每个用户、每种资产类别、每个代码只有一行记录。
# 现金持仓的 average_price 恒为 1；股票持仓为加权平均成本价。
class AssetPosition(Base):
    __tablename__ = "asset_positions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    asset_type = Column(String(10), nullable=False, default=AssetType.STOCK.value)
    symbol = Column(String(10), nullable=False)

    quantity = Column(Numeric(15, 4), nullable=False, default=0)       # 持仓数量，永不为负
    average_price = Column(Numeric(15, 4), nullable=False, default=0)  # 持仓均价

    # 乐观锁版本号：并发交易写同一行时，过期的一方会在 flush 时失败
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "asset_type", "symbol", name="unique_user_asset"),
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_cash(self) -> bool:
        return self.asset_type == AssetType.CASH.value

    def __repr__(self):
        return f"<AssetPosition {self.user_id}:{self.asset_type}:{self.symbol} qty={self.quantity} avg={self.average_price}>"
