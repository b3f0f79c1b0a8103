from flask import request, jsonify, Response
import logging
from datetime import datetime
from config import CACHE_CONTROL
from core import (
    app,
    csrf,
    limiter,
    get_store,
    fetch_advocates,
    fetch_filter_options,
    seed_advocates,
)
from advocate_query import listing_query_from_params
from export import advocates_to_csv, default_export_filename
from store import StoreError, StoreNotConfiguredError


@app.route('/api/health')
def health_check():
    return jsonify({
        'success': True,
        'status': 'ok',
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'store': get_store().name,
    })

@app.route('/api/advocates')
def list_advocates():
    """Paginated, filterable advocate listing"""
    try:
        listing_query = listing_query_from_params(request.args)
        page = fetch_advocates(get_store(), listing_query)
        response = jsonify(page.to_dict())
        response.headers['Cache-Control'] = CACHE_CONTROL
        return response
    except Exception as e:
        logging.error(f"Error fetching advocates: {e}")
        return jsonify({'error': 'Failed to fetch advocates'}), 500

@app.route('/api/advocates/filters')
def advocate_filter_options():
    """Distinct cities, degrees and specialties plus the experience bounds"""
    try:
        response = jsonify(fetch_filter_options(get_store()))
        response.headers['Cache-Control'] = CACHE_CONTROL
        return response
    except Exception as e:
        logging.error(f"Error building advocate filter options: {e}")
        return jsonify({'error': 'Failed to fetch filter options'}), 500

@app.route('/api/advocates/export')
def export_advocates():
    """Every advocate matching the current filters, as CSV"""
    try:
        listing_query = listing_query_from_params(request.args, paginate=False)
        page = fetch_advocates(get_store(), listing_query)
    except Exception as e:
        logging.error(f"Error exporting advocates: {e}")
        return jsonify({'error': 'Failed to export advocates'}), 500

    filename = default_export_filename()
    return Response(
        advocates_to_csv(page.data),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )

@app.route('/api/seed', methods=['POST'])
@csrf.exempt
@limiter.limit("3 per hour")
def seed_database():
    store = get_store()
    if not store.configured:
        return jsonify({'error': 'Database not configured. Set DATABASE_URL to seed the database.'}), 500

    try:
        records = seed_advocates(store)
        logging.info(f"Seeded {len(records)} advocates")
        return jsonify({'advocates': records})
    except StoreNotConfiguredError:
        return jsonify({'error': 'Database not configured. Set DATABASE_URL to seed the database.'}), 500
    except StoreError as e:
        logging.error(f"Error seeding database: {e}")
        return jsonify({'error': 'Failed to seed database'}), 500
