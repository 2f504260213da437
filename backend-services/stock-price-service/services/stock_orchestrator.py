# backend-services/stock-price-service/services/stock_orchestrator.py
"""
Request orchestration for GET /api/stock-prices

Composes price_fetcher, database.mongo_client and ip_dedup:
- single stock: refresh price, optionally like, report likes
- two stocks: the same for each, then report relative likes

Failure policy:
- UpstreamUnavailable: logged, the stored (last known) price is reported
- HashFailure: logged, the like is skipped, price data still returns
- StoreFailure: propagated to the route
"""
import logging
from typing import Any, Dict, List

from database import mongo_client
from errors import HashFailure, UpstreamUnavailable
from services import ip_dedup, price_fetcher
from shared.contracts import StockRecord

logger = logging.getLogger(__name__)


def _like_stock(db: Any, record: Dict[str, Any], symbol: str, ip: str) -> Dict[str, Any]:
    hashes = mongo_client.get_liker_hashes(db, symbol)
    if ip_dedup.is_already_liked(ip, hashes):
        logger.info(f"Like for {symbol} ignored: caller already liked this stock")
        return record

    try:
        new_hash = ip_dedup.hash_ip(ip)
    except HashFailure as e:
        logger.error(f"Like for {symbol} aborted, could not hash caller IP: {e}")
        return record

    record = mongo_client.record_like(db, symbol, new_hash)
    logger.info(f"Recorded like for {symbol}; likes={record.get('likes')}")
    return record


def process_stock(db: Any, symbol: str, ip: str, like: bool) -> Dict[str, Any]:
    """
    Refreshes one stock's price and applies a like from `ip` when requested.

    Returns:
        Dict with keys stock, price, likes taken from the final stored record.

    Raises:
        StoreFailure: If any store operation fails
    """
    try:
        price = price_fetcher.fetch_price(symbol)
    except UpstreamUnavailable as e:
        logger.warning(f"{e}; keeping last known price")
        price = None

    record = mongo_client.upsert_price(db, symbol, price)

    if like:
        record = _like_stock(db, record, symbol, ip)

    stock_record = StockRecord.model_validate(record)
    return {
        "stock": stock_record.stock,
        "price": stock_record.price,
        "likes": stock_record.likes,
    }


def compare_stocks(db: Any, symbols: List[str], ip: str, like: bool) -> List[Dict[str, Any]]:
    """
    Processes two stocks in order and reports each one's likes relative to the other.

    rel_likes of the first entry is likes(first) - likes(second), and vice versa,
    so the two values are always exact negations. The like flag applies to both.
    """
    if len(symbols) != 2:
        raise ValueError("Comparison requires exactly two symbols")

    first = process_stock(db, symbols[0], ip, like)
    second = process_stock(db, symbols[1], ip, like)

    # Own likes minus the other stock's, so the stock ahead in likes gets a positive rel_likes
    return [
        {
            "stock": first["stock"],
            "price": first["price"],
            "rel_likes": first["likes"] - second["likes"],
        },
        {
            "stock": second["stock"],
            "price": second["price"],
            "rel_likes": second["likes"] - first["likes"],
        },
    ]


def get_stock_prices(db: Any, symbols: List[str], ip: str, like: bool) -> Dict[str, Any]:
    """
    Builds the /api/stock-prices payload for one or two symbols.

    Raises:
        ValueError: If symbols does not hold exactly one or two entries
    """
    if len(symbols) == 1:
        return {"stockData": process_stock(db, symbols[0], ip, like)}
    if len(symbols) == 2:
        return {"stockData": compare_stocks(db, symbols, ip, like)}
    raise ValueError(f"Expected 1 or 2 stock symbols, got {len(symbols)}")
