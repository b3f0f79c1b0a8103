"""Client-side listing state for the advocate directory.

``AdvocateListing`` owns the filter state a user edits (search box, filter
checkboxes, experience slider, sortable columns, pager) and turns it into
listing requests. Requests go through a transport: ``HttpTransport`` calls
the ``/api/advocates`` endpoint with httpx, ``LocalTransport`` answers from a
static record list using the same query code as the server's fallback path.

Search input is debounced; filter and search changes send the view back to
page 1. Every request carries a sequence number and only the response to the
most recent request is applied, so a slow earlier response cannot overwrite
newer results.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Set, Tuple

import httpx

from advocate_query import listing_query_from_params, run_in_memory, toggle_sort_direction
from config import API_BASE_URL
from export import default_export_filename, write_csv
from validation import DEFAULT_LIMIT, DEFAULT_SORT_FIELD, validate_sort_field

SEARCH_DEBOUNCE_SECONDS = 0.3
DEFAULT_EXPERIENCE_FILTER = (0, 20)
# Asks for everything; the server clamps and the rest is fetched page by page
EXPORT_LIMIT = 10000


@dataclass
class FilterState:
    cities: Set[str] = field(default_factory=set)
    degrees: Set[str] = field(default_factory=set)
    specialties: Set[str] = field(default_factory=set)
    experience_range: Tuple[int, int] = DEFAULT_EXPERIENCE_FILTER
    search: str = ''
    sort_field: str = DEFAULT_SORT_FIELD
    sort_direction: str = 'asc'
    items_per_page: int = DEFAULT_LIMIT
    page: int = 1

    def to_params(self, page=None, limit=None):
        params = {
            'page': page or self.page,
            'limit': limit or self.items_per_page,
            'sortField': self.sort_field,
            'sortDirection': self.sort_direction,
            'minExperience': self.experience_range[0],
            'maxExperience': self.experience_range[1],
        }
        if self.search:
            params['search'] = self.search
        for name in ('cities', 'degrees', 'specialties'):
            selected = getattr(self, name)
            if selected:
                params[name] = ','.join(sorted(selected))
        return params


class Debouncer:
    """Runs ``callback`` once ``delay`` seconds after the last call"""

    def __init__(self, delay, callback, on_error=None):
        self.delay = delay
        self.callback = callback
        self.on_error = on_error
        self._timer = None
        self._args = None
        self._lock = threading.Lock()

    @property
    def pending(self):
        return self._timer is not None

    def call(self, *args):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._args = args
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self):
        with self._lock:
            if self._timer is None:
                return
            args = self._args
            self._timer = None
            self._args = None
        # Runs on the timer thread, where an exception would otherwise vanish
        try:
            self.callback(*args)
        except Exception as e:
            logging.error(f"Debounced call failed: {e}")
            if self.on_error is not None:
                self.on_error(e)

    def flush(self):
        """Run the pending call now instead of waiting for the timer"""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            args = self._args
            self._timer = None
            self._args = None
        self.callback(*args)
        return True

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._args = None


class HttpTransport:
    """Fetches listing pages from a running advocate directory server"""

    def __init__(self, base_url=API_BASE_URL, timeout=10.0, client=None):
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def fetch(self, params):
        response = self.client.get('/api/advocates', params=params)
        response.raise_for_status()
        return response.json()

    def close(self):
        self.client.close()


class LocalTransport:
    """Answers listing requests from an in-memory record list"""

    def __init__(self, records):
        self.records = list(records)

    def fetch(self, params):
        return run_in_memory(self.records, listing_query_from_params(params)).to_dict()

    def close(self):
        pass


class AdvocateListing:

    def __init__(self, transport, debounce_delay=SEARCH_DEBOUNCE_SECONDS, recent_searches=None):
        self.transport = transport
        self.recent_searches = recent_searches
        self.filters = FilterState()
        self.search_input = ''
        self.advocates = []
        self.pagination: Optional[dict] = None
        self.error: Optional[str] = None
        self.loading = False
        self._sequence = 0
        self._lock = threading.Lock()
        self._debouncer = Debouncer(debounce_delay, self._apply_search, on_error=self._search_failed)

    # Search

    def type_search(self, text):
        """Record a keystroke; the term becomes active after the debounce delay"""
        self.search_input = text
        self._debouncer.call(text)

    def flush_search(self):
        return self._debouncer.flush()

    def _apply_search(self, text):
        term = text.strip()
        with self._lock:
            if term == self.filters.search:
                return
            self.filters.search = term
        if term and self.recent_searches is not None:
            self.recent_searches.add(term)
        self._filters_changed()

    def _search_failed(self, error):
        with self._lock:
            self.error = str(error) or 'Failed to fetch advocates'
            self.loading = False

    # Filters

    def toggle_city(self, city):
        self._toggle(self.filters.cities, city)

    def toggle_degree(self, degree):
        self._toggle(self.filters.degrees, degree)

    def toggle_specialty(self, specialty):
        self._toggle(self.filters.specialties, specialty)

    def _toggle(self, selected, value):
        with self._lock:
            if value in selected:
                selected.remove(value)
            else:
                selected.add(value)
        self._filters_changed()

    def set_experience_range(self, low, high):
        with self._lock:
            self.filters.experience_range = (low, high)
        self._filters_changed()

    def reset_filters(self):
        self._debouncer.cancel()
        self.search_input = ''
        with self._lock:
            self.filters = FilterState()
        return self.refresh()

    def _filters_changed(self):
        with self._lock:
            self.filters.page = 1
        self.refresh()

    # Sorting and paging

    def set_sort(self, sort_field):
        """Clicking the active column flips direction; another column sorts ascending"""
        sort_field = validate_sort_field(sort_field)
        if sort_field == self.filters.sort_field:
            self.filters.sort_direction = toggle_sort_direction(self.filters.sort_direction)
        else:
            self.filters.sort_field = sort_field
            self.filters.sort_direction = 'asc'
        return self.refresh()

    @property
    def total_pages(self):
        if not self.pagination:
            return 0
        return self.pagination['totalPages']

    def set_page(self, page):
        self.filters.page = max(1, min(page, self.total_pages or 1))
        return self.refresh()

    def set_items_per_page(self, items_per_page):
        self.filters.items_per_page = items_per_page
        self.filters.page = 1
        return self.refresh()

    # Requests

    def refresh(self):
        """Fetch the current page; returns False when the response was not applied"""
        with self._lock:
            self._sequence += 1
            sequence = self._sequence
            params = self.filters.to_params()
            self.loading = True

        try:
            payload = self.transport.fetch(params)
            advocates, pagination = payload['data'], payload['pagination']
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            with self._lock:
                if sequence != self._sequence:
                    return False
                logging.error(f"Error fetching advocates: {e}")
                self.error = str(e) or 'Failed to fetch advocates'
            return False
        finally:
            with self._lock:
                if sequence == self._sequence:
                    self.loading = False

        with self._lock:
            if sequence != self._sequence:
                logging.debug(f"Discarding stale advocate response #{sequence} (latest #{self._sequence})")
                return False
            self.advocates = advocates
            self.pagination = pagination
            self.error = None
        return True

    def retry(self):
        return self.refresh()

    def export_all(self):
        """Every advocate matching the current filters, across all pages"""
        params = self.filters.to_params(page=1, limit=EXPORT_LIMIT)
        payload = self.transport.fetch(params)
        records = list(payload['data'])
        total_pages = payload['pagination']['totalPages']
        page = 1
        while page < total_pages:
            page += 1
            payload = self.transport.fetch(dict(params, page=page))
            records.extend(payload['data'])
        return records

    def export_csv(self, path=None):
        records = self.export_all()
        if not records:
            logging.info("No advocates to export")
            return None
        return write_csv(records, path or default_export_filename())

    def close(self):
        self._debouncer.cancel()
        self.transport.close()
