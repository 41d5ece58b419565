from portfolio_ledger.models.asset import AssetPosition, AssetType
from portfolio_ledger.models.transaction import TransactionRecord, TransactionType
