# backend-services/stock-price-service/app.py
from flask import Flask, request, jsonify
import os
import atexit
import logging
from logging.handlers import RotatingFileHandler
import threading
from pymongo.errors import PyMongoError
from pydantic import ValidationError
from database import mongo_client
from errors import StoreFailure
# --- 1. Initialize Flask App and Basic Config ---
app = Flask(__name__)
PORT = int(os.getenv("PORT", 3008))
TRUST_PROXY_HEADERS = os.getenv("TRUST_PROXY_HEADERS", "false").strip().lower() in ("1", "true", "yes", "on")

# --- 2. Define Logging Setup Function ---
def setup_logging(app):
    """Configures comprehensive logging for the Flask app."""
    log_level_str = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Handlers (console + rotating file), built once
    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    log_directory = os.environ.get("LOG_DIR", "/app/logs")
    file_log_error = None
    try:
        os.makedirs(log_directory, exist_ok=True)
        log_file = os.path.join(log_directory, "stock_price_service.log")
        file_handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    except OSError as e:
        file_log_error = e

    app.logger.setLevel(log_level)
    app.logger.propagate = False

    # Clear existing handlers to avoid duplication
    for h in list(app.logger.handlers):
        app.logger.removeHandler(h)

    # Attach the handlers to app.logger
    for h in handlers:
        app.logger.addHandler(h)

    # prevent werkzeug from duplicating to root/stdout
    werk = logging.getLogger("werkzeug")
    werk.propagate = False
    for h in list(werk.handlers):
        if isinstance(h, logging.StreamHandler):
            werk.removeHandler(h)

    # Module loggers that should emit through the same handlers
    module_names = [
        "database.mongo_client",
        "services.price_fetcher",
        "services.ip_dedup",
        "services.stock_orchestrator",
        "helper_functions",
    ]
    for name in module_names:
        module_loggers = logging.getLogger(name)
        module_loggers.setLevel(log_level)
        module_loggers.propagate = False
        # Clear existing handlers
        for h in list(module_loggers.handlers):
            module_loggers.removeHandler(h)
        # Attach shared handlers
        for h in handlers:
            module_loggers.addHandler(h)

    if file_log_error is not None:
        app.logger.warning(f"File logging disabled, cannot write to {log_directory}: {file_log_error}")
    app.logger.info("Stock price service logging initialized.")
# --- End of Logging Setup ---
setup_logging(app)

# --- 3. Import Project-Specific Modules ---
from services import stock_orchestrator
from helper_functions import (
    normalize_and_validate_symbols,
    parse_like_flag,
    resolve_client_ip,
    build_validated_payload,
)

# --- 4. Database lifecycle ---
# One MongoClient per process, created on first use and shared by request threads.
_db_state = {"client": None, "db": None}
_db_lock = threading.Lock()

def get_db():
    """Returns the shared database handle, connecting and creating indexes on first use."""
    with _db_lock:
        if _db_state["db"] is None:
            client, db = mongo_client.connect()
            mongo_client.initialize_indexes(db)
            _db_state["client"], _db_state["db"] = client, db
            app.logger.info("Connected to MongoDB and ensured stock indexes.")
        return _db_state["db"]

def close_db():
    """Closes the shared MongoDB client, if one was opened."""
    with _db_lock:
        mongo_client.close(_db_state["client"])
        _db_state["client"], _db_state["db"] = None, None

atexit.register(close_db)

@app.route('/api/stock-prices', methods=['GET'])
def get_stock_prices():
    """
    Reports price and likes for one stock, or price and relative likes for two.

    Query Parameters:
      - stock: ticker symbol; repeat once to compare two stocks
               Example: ?stock=GOOG&stock=MSFT
      - like:  "true" to like the stock(s) once per caller IP

    Returns (JSON):
      { "stockData": { "stock": str, "price": float|null, "likes": int } }
      or
      { "stockData": [ { "stock", "price", "rel_likes" }, { ... } ] }

    Status Codes:
      - 200: Success
      - 400: Missing, malformed, or more than two symbols
      - 500: Unexpected error or invalid response shape
      - 503: Database unavailable
    """
    try:
        symbols = normalize_and_validate_symbols(request.args.getlist('stock'))
    except ValueError as ve:
        return jsonify({"error": str(ve)}), 400

    like = parse_like_flag(request.args.get('like'))
    ip = resolve_client_ip(
        request.remote_addr,
        request.headers.get('X-Forwarded-For'),
        TRUST_PROXY_HEADERS,
    )
    app.logger.info(f"GET /api/stock-prices - symbols={symbols} like={like}")

    try:
        db = get_db()
    except (PyMongoError, RuntimeError) as e:
        app.logger.error(f"Database connection failure in /api/stock-prices: {e}", exc_info=True)
        return jsonify({"error": "Service unavailable - database connection failed"}), 503

    try:
        payload = stock_orchestrator.get_stock_prices(db, symbols, ip, like)
    except StoreFailure as sf:
        app.logger.error(f"Store failure in /api/stock-prices: {sf}", exc_info=True)
        return jsonify({"error": "Service unavailable - database operation failed"}), 503
    except ValidationError as ve:
        # Subclass of ValueError: a stored document broke the StockRecord contract
        app.logger.error(f"Stored stock document failed contract validation: {ve}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500
    except ValueError as ve:
        return jsonify({"error": str(ve)}), 400
    except Exception as e:
        app.logger.error(f"An unexpected error occurred in /api/stock-prices: {e}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500

    try:
        return jsonify(build_validated_payload(payload)), 200
    except ValidationError:
        return jsonify({"error": "Invalid response format from service"}), 500

@app.route('/health', methods=['GET'])
def health_check():
    """Standard health check endpoint."""
    return jsonify({"status": "healthy"}), 200

if __name__ == '__main__':
    app.run(host="0.0.0.0", port=PORT, threaded=True)
