# 业务异常体系 (Ledger Error Hierarchy)
# 服务层只抛出这些异常；HTTP 状态码的映射集中在 main.py 的全局异常处理器中。


class LedgerError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidInput(LedgerError):
    status_code = 400
    message = "Invalid input"


class PriceUnavailable(LedgerError):
    status_code = 404
    message = "Stock price not found"

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Stock price not found for {symbol}")


class InsufficientFunds(LedgerError):
    status_code = 400
    message = "Insufficient cash balance"


class InsufficientHoldings(LedgerError):
    status_code = 400
    message = "Insufficient stock holdings"


class NotFound(LedgerError):
    status_code = 404
    message = "Asset not found"


class StoreFailure(LedgerError):
    """Persistence fault. The message never carries storage-layer detail."""
    status_code = 500
    message = "Internal server error"


class LedgerConflict(StoreFailure):
    """A concurrent unit of work modified the same rows; safe to retry."""
