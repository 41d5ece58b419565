from sqlalchemy import Column, Integer, String, Numeric, DateTime, Index
from datetime import datetime
import enum
from portfolio_ledger.core.database import Base

class TransactionType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"

# 交易记录表 (Transaction Log)
# 只追加、不修改、不删除。与持仓表没有外键，只通过 (user_id, symbol) 关联。
class TransactionRecord(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    symbol = Column(String(10), nullable=False)
    type = Column(String(4), nullable=False)
    quantity = Column(Numeric(15, 4), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # 历史查询总是按用户过滤、按时间倒序
        Index("ix_transactions_user_timestamp", "user_id", "timestamp"),
    )
