# backend-services/stock-price-service/database/mongo_client.py
"""
MongoDB client and store operations for stock-price-service
Owns the `stocks` collection: one document per ticker symbol holding the
last known price, the like count and the hashed IPs that liked it.

Every store operation takes the database handle explicitly; the handle is
created by connect() and released by close().
"""

import os, sys
import logging
from datetime import datetime, timezone
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from typing import List, Dict, Any, Tuple, Optional
from errors import StoreFailure

logger = logging.getLogger(__name__)

_STOCKS_COLL = "stocks"

def connect() -> Tuple[MongoClient, Any]:
    """
    Establishes connection to MongoDB and returns client and database handle

    Returns:
        Tuple[MongoClient, Database]: MongoDB client and database object

    Raises:
        ConnectionFailure: If the server does not answer a ping
    """
    MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/')
    timeout_ms = int(os.getenv('MONGO_SERVER_SELECTION_TIMEOUT_MS', '5000'))
    if os.getenv("ENV") == "test":
        stock_db_name = os.getenv("TEST_DB_NAME", "test_stock_analysis")
    else:
        stock_db_name = os.getenv("STOCK_DB", "stock_analysis")
        # Safety: Prevent test code from accidentally hitting prod
        if "pytest" in sys.modules and "test" not in stock_db_name.lower():
            raise RuntimeError(
                f"Refusing to use prod DB '{stock_db_name}' during test run. "
                f"Set ENV=test or TEST_DB_NAME."
            )
    client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=timeout_ms)
    # The ping command is cheap and does not require auth.
    client.admin.command('ping')
    db = client[stock_db_name]
    return client, db


def close(client: Optional[MongoClient]) -> None:
    """Closes the client returned by connect(); None is ignored."""
    if client is not None:
        client.close()


def initialize_indexes(db: Any) -> None:
    """
    Creates required indexes on the stocks collection

    CRITICAL: the unique index on `stock` is what makes concurrent first
    lookups of the same symbol converge on a single document.

    Raises:
        OperationFailure: If index creation fails
    """
    db[_STOCKS_COLL].create_index(
        [("stock", 1)],
        name="stock_unique_idx",
        unique=True,
        background=True,
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _require_symbol(symbol: str) -> None:
    if not symbol:
        raise ValueError("Symbol cannot be empty or None")


def upsert_price(db: Any, symbol: str, price: Optional[float]) -> Dict[str, Any]:
    """
    Creates the stock document if absent, otherwise updates its price in place

    A None price leaves an existing price untouched (last-known value is kept);
    a newly created document then starts with price None.

    Args:
        db: MongoDB database handle
        symbol: Normalized ticker symbol
        price: Latest fetched price, or None when the fetch failed

    Returns:
        Dict: The stock document after the update

    Raises:
        ValueError: If symbol is empty or None
        StoreFailure: If the update fails
    """
    _require_symbol(symbol)

    now = _now()
    set_fields: Dict[str, Any] = {"updated_at": now}
    on_insert: Dict[str, Any] = {
        "stock": symbol,
        "likes": 0,
        "liker_hashes": [],
        "created_at": now,
    }
    if price is not None:
        set_fields["price"] = price
    else:
        on_insert["price"] = None

    update = {"$set": set_fields, "$setOnInsert": on_insert}

    try:
        try:
            doc = db[_STOCKS_COLL].find_one_and_update(
                {"stock": symbol},
                update,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # Another request inserted the same symbol between our match and insert;
            # the retry matches that document instead of inserting.
            logger.info(f"Concurrent insert detected for {symbol}; retrying upsert once")
            doc = db[_STOCKS_COLL].find_one_and_update(
                {"stock": symbol},
                update,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
    except PyMongoError as e:
        raise StoreFailure("upsert_price", symbol, str(e)) from e

    return doc


def get_liker_hashes(db: Any, symbol: str) -> List[str]:
    """
    Returns the hashed IPs that liked a stock, in insertion order

    Returns an empty list when the document or the field is absent.
    """
    _require_symbol(symbol)
    try:
        doc = db[_STOCKS_COLL].find_one({"stock": symbol}, {"liker_hashes": 1, "_id": 0})
    except PyMongoError as e:
        raise StoreFailure("get_liker_hashes", symbol, str(e)) from e

    if not doc:
        return []
    return list(doc.get("liker_hashes") or [])


def record_like(db: Any, symbol: str, new_hash: str) -> Dict[str, Any]:
    """
    Increments the like count and appends the hash in one atomic update

    CRITICAL: $inc and $push go through the same single-document update so
    `likes` always equals len(liker_hashes), also under concurrent likes.

    Args:
        db: MongoDB database handle
        symbol: Normalized ticker symbol
        new_hash: bcrypt hash of the liking IP

    Returns:
        Dict: The stock document after the update

    Raises:
        ValueError: If symbol or new_hash is empty
        StoreFailure: If the update fails or the stock does not exist
    """
    _require_symbol(symbol)
    if not new_hash:
        raise ValueError("Refusing to record a like without a hash")

    try:
        doc = db[_STOCKS_COLL].find_one_and_update(
            {"stock": symbol},
            {
                "$inc": {"likes": 1},
                "$push": {"liker_hashes": new_hash},
                "$set": {"updated_at": _now()},
            },
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        raise StoreFailure("record_like", symbol, str(e)) from e

    if doc is None:
        raise StoreFailure("record_like", symbol, "stock document not found")
    return doc
