from flask import Flask, request, jsonify, current_app
from flask_wtf import CSRFProtect
import os
import logging
from config import (
    DB_CONFIG,
    DB_CONNECT_TIMEOUT,
    SECRET_KEY,
    DISABLE_RATE_LIMITS,
    LOG_LEVEL,
    LOG_FILE,
)
from advocate_query import run_in_memory, collect_filter_options
from seed_data import ADVOCATE_DATA
from store import StoreError, create_store

app = Flask(__name__)
app.secret_key = SECRET_KEY
app.config['WTF_CSRF_ENABLED'] = False
app.json.sort_keys = False

csrf = CSRFProtect(app)

if DISABLE_RATE_LIMITS:
    class NoopLimiter:
        def limit(self, *args, **kwargs):
            def decorator(func):
                return func
            return decorator
    limiter = NoopLimiter()
else:
    from flask_limiter import Limiter
    from flask_limiter.util import get_remote_address
    limiter = Limiter(get_remote_address, app=app, default_limits=[], storage_uri=os.getenv('RATELIMIT_STORAGE_URL', 'memory://'))

log_dir = os.path.dirname(LOG_FILE)
if log_dir:
    os.makedirs(log_dir, exist_ok=True)
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s %(levelname)s: %(message)s',
    handlers=[logging.FileHandler(LOG_FILE), logging.StreamHandler()]
)

# The store handle lives for the process; tests swap it through set_store()
app.extensions['advocate_store'] = create_store(DB_CONFIG, connect_timeout=DB_CONNECT_TIMEOUT)


@app.after_request
def add_security_headers(response):
    response.headers.setdefault('X-Content-Type-Options', 'nosniff')
    response.headers.setdefault('X-Frame-Options', 'DENY')
    response.headers.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
    return response

@app.errorhandler(429)
def ratelimit_handler(e):
    logging.warning(f"Rate limit exceeded: {request.remote_addr}")
    return jsonify({'error': 'Rate limit exceeded. Please try again later.'}), 429

@app.errorhandler(400)
def bad_request_handler(e):
    logging.warning(f"Bad request: {request.remote_addr} - {str(e)}")
    return jsonify({'error': 'Bad request. Please check your input.'}), 400

@app.errorhandler(500)
def internal_error_handler(e):
    logging.error(f"Internal server error: {str(e)}")
    return jsonify({'error': 'Internal server error. Please try again later.'}), 500


def get_store():
    return current_app.extensions['advocate_store']

def set_store(store):
    previous = app.extensions.get('advocate_store')
    app.extensions['advocate_store'] = store
    return previous

def get_fallback_records():
    """Static advocate list served when the database is absent or failing"""
    return ADVOCATE_DATA

def init_database():
    """Initialize the advocates table if a database is configured"""
    store = app.extensions['advocate_store']
    if not store.configured:
        logging.info("No database configured; skipping schema initialization")
        return False
    try:
        return store.init_schema()
    except StoreError as e:
        logging.error(f"Error creating tables: {e}")
        return False

def fetch_advocates(store, listing_query):
    """Run the query against the store, or the static list if it can't answer"""
    if store.configured:
        try:
            return store.query(listing_query)
        except Exception as e:
            logging.warning(f"Database error, falling back to static advocate data: {e}")
    return run_in_memory(get_fallback_records(), listing_query)

def fetch_filter_options(store):
    records = None
    if store.configured:
        try:
            records = store.fetch_all()
        except Exception as e:
            logging.warning(f"Database error, building filter options from static data: {e}")
    if records is None:
        records = get_fallback_records()
    return collect_filter_options(records)

def seed_advocates(store):
    """Insert the static dataset into the store; raises StoreError on failure"""
    return store.bulk_insert(get_fallback_records())
