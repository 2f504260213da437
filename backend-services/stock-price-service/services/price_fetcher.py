# backend-services/stock-price-service/services/price_fetcher.py
"""
Client for the upstream quote service.

GET {QUOTE_API_URL} with the symbol interpolated into the path, expecting a
JSON body with a numeric `latestPrice`. Any failure is raised as
UpstreamUnavailable; there are no retries.
"""

import os
import logging
from urllib.parse import quote

import requests
from pydantic import ValidationError

from errors import UpstreamUnavailable
from shared.contracts import QuoteResponse

logger = logging.getLogger(__name__)

DEFAULT_QUOTE_API_URL = os.getenv(
    "QUOTE_API_URL",
    "https://stock-price-checker-proxy.freecodecamp.rocks/v1/stock/{symbol}/quote",
)

_TIMEOUT = float(os.getenv("QUOTE_API_TIMEOUT_SECONDS", "10"))


def fetch_price(symbol: str) -> float:
    """
    Fetches the latest price for a ticker symbol.

    Args:
        symbol: The stock symbol to fetch the price for.

    Returns:
        The latest price as a float.

    Raises:
        UpstreamUnavailable: On network errors, non-2xx responses, non-JSON
            bodies, or a missing/non-numeric latestPrice.
    """
    url = DEFAULT_QUOTE_API_URL.format(symbol=quote(symbol, safe=""))
    try:
        resp = requests.get(url, timeout=_TIMEOUT)
        resp.raise_for_status()
        payload = resp.json()
    except requests.exceptions.RequestException as e:
        raise UpstreamUnavailable(symbol, f"request to quote service failed: {e}") from e
    except ValueError as e:
        raise UpstreamUnavailable(symbol, "quote service returned a non-JSON body") from e

    # The proxy answers unknown symbols with a bare string such as "Unknown symbol"
    if not isinstance(payload, dict):
        raise UpstreamUnavailable(symbol, f"unexpected quote payload: {payload!r}")

    try:
        quote_data = QuoteResponse.model_validate(payload)
    except ValidationError as e:
        raise UpstreamUnavailable(symbol, "quote payload has no numeric latestPrice") from e

    logger.debug(f"Fetched price for {symbol}: {quote_data.latestPrice}")
    return quote_data.latestPrice
