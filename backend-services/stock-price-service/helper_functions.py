# stock-price-service/helper_functions.py
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from shared.contracts import (
    MAX_TICKER_LEN,
    StockPriceSingleResponse,
    StockPriceCompareResponse,
)

# Use logger
logger = logging.getLogger(__name__)

# Allowed ticker characters: letters, digits, dot, hyphen
_TICKER_PATTERN = re.compile(r"^[A-Za-z0-9.\-]+$")

_TRUTHY = {"true", "1", "yes", "on"}

def normalize_and_validate_symbols(raw_symbols: List[Any]) -> List[str]:
    """
    Normalizes the repeated `stock` query parameter.

    Args:
        raw_symbols (list): Values of every `stock` parameter in the query string.

    Returns:
        list: Upper-cased symbols, one or two of them.

    Raises:
        ValueError: If no symbol, more than two symbols, or a malformed symbol is given.
    """
    symbols = []
    for raw in raw_symbols or []:
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError("Stock symbol cannot be empty")
        symbol = raw.strip().upper()
        if len(symbol) > MAX_TICKER_LEN:
            raise ValueError(f"Stock symbol too long (max {MAX_TICKER_LEN} characters)")
        if not _TICKER_PATTERN.match(symbol):
            raise ValueError("Stock symbol may contain only letters, digits, '.' and '-'")
        symbols.append(symbol)

    if not symbols:
        raise ValueError("Query parameter 'stock' is required")
    if len(symbols) > 2:
        raise ValueError(f"At most two stocks can be compared, got {len(symbols)}")
    return symbols

def parse_like_flag(raw: Optional[str]) -> bool:
    """`like=true` (also 1/yes/on, any case) means like; anything else does not."""
    if raw is None:
        return False
    return raw.strip().lower() in _TRUTHY

def resolve_client_ip(remote_addr: Optional[str], forwarded_for: Optional[str], trust_proxy: bool) -> Optional[str]:
    """
    Picks the caller IP used for like deduplication.

    When running behind a trusted reverse proxy the first X-Forwarded-For entry
    is the original client; otherwise the socket peer address is used.
    """
    if trust_proxy and forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return remote_addr

def build_validated_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validates an orchestrator payload against the response contracts.

    Raises:
        ValidationError: If the payload matches neither contract.
    """
    stock_data = payload.get("stockData") if isinstance(payload, dict) else None
    try:
        if isinstance(stock_data, list):
            return StockPriceCompareResponse.model_validate(payload).model_dump()
        return StockPriceSingleResponse.model_validate(payload).model_dump()
    except ValidationError as e:
        logger.error(f"Stock price payload failed contract validation: {e}")
        raise
