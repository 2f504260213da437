# backend-services/stock-price-service/errors.py
"""
Exception taxonomy for the stock-price-service.

- UpstreamUnavailable: the quote service could not provide a price
- HashFailure: an IP could not be hashed
- StoreFailure: a MongoDB operation failed
"""


class StockServiceError(Exception):
    """Base class for all stock-price-service errors."""


class UpstreamUnavailable(StockServiceError):
    def __init__(self, symbol: str, message: str):
        self.symbol = symbol
        super().__init__(f"Price unavailable for {symbol}: {message}")


class HashFailure(StockServiceError):
    pass


class StoreFailure(StockServiceError):
    def __init__(self, operation: str, symbol: str, message: str):
        self.operation = operation
        self.symbol = symbol
        super().__init__(f"{operation} failed for {symbol}: {message}")
