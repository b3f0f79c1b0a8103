import os
import tempfile
import threading
import time
import unittest

import httpx

from listing_client import AdvocateListing, Debouncer, FilterState, HttpTransport, LocalTransport
from recent_searches import RecentSearches
from seed_data import ADVOCATE_DATA


class RecordingTransport(LocalTransport):
    """LocalTransport that remembers every request and can clamp the page size"""

    def __init__(self, records, max_limit=None):
        super().__init__(records)
        self.max_limit = max_limit
        self.requests = []

    def fetch(self, params):
        self.requests.append(dict(params))
        if self.max_limit is not None:
            params = dict(params, limit=min(int(params['limit']), self.max_limit))
        return super().fetch(params)


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FilterStateTests(unittest.TestCase):
    def test_default_params(self):
        self.assertEqual(FilterState().to_params(), {
            'page': 1,
            'limit': 10,
            'sortField': 'firstName',
            'sortDirection': 'asc',
            'minExperience': 0,
            'maxExperience': 20,
        })

    def test_selections_become_comma_separated(self):
        state = FilterState(cities={'Reno', 'Boise'}, specialties={'ADHD'}, search='amy')
        params = state.to_params(page=2, limit=50)
        self.assertEqual(params['cities'], 'Boise,Reno')
        self.assertEqual(params['specialties'], 'ADHD')
        self.assertEqual(params['search'], 'amy')
        self.assertEqual((params['page'], params['limit']), (2, 50))
        self.assertNotIn('degrees', params)


class DebouncerTests(unittest.TestCase):
    def test_only_last_call_fires(self):
        calls = []
        fired = threading.Event()

        def callback(value):
            calls.append(value)
            fired.set()

        debouncer = Debouncer(0.05, callback)
        debouncer.call('a')
        debouncer.call('ab')
        debouncer.call('abc')
        self.assertTrue(fired.wait(2))
        time.sleep(0.1)
        self.assertEqual(calls, ['abc'])
        self.assertFalse(debouncer.pending)

    def test_flush_and_cancel(self):
        calls = []
        debouncer = Debouncer(10, calls.append)
        self.assertFalse(debouncer.flush())
        debouncer.call('x')
        self.assertTrue(debouncer.pending)
        self.assertTrue(debouncer.flush())
        self.assertEqual(calls, ['x'])
        debouncer.call('y')
        debouncer.cancel()
        self.assertFalse(debouncer.flush())
        self.assertEqual(calls, ['x'])


class ListingStateTests(unittest.TestCase):
    def setUp(self):
        self.transport = RecordingTransport(ADVOCATE_DATA)
        self.listing = AdvocateListing(self.transport, debounce_delay=10)
        self.addCleanup(self.listing.close)
        self.listing.refresh()

    def test_initial_page(self):
        self.assertEqual(len(self.listing.advocates), 10)
        self.assertEqual(self.listing.total_pages, 2)
        self.assertIsNone(self.listing.error)

    def test_search_waits_for_debounce(self):
        self.listing.type_search('hou')
        self.listing.type_search('houston')
        self.assertEqual(self.listing.filters.search, '')
        self.assertEqual(len(self.transport.requests), 1)

        self.listing.flush_search()

        self.assertEqual(len(self.transport.requests), 2)
        self.assertEqual(self.transport.requests[-1]['search'], 'houston')
        self.assertEqual([a['city'] for a in self.listing.advocates], ['Houston'])

    def test_debounced_search_fires_on_its_own(self):
        listing = AdvocateListing(self.transport, debounce_delay=0.02)
        self.addCleanup(listing.close)
        listing.type_search('Austin')
        self.assertTrue(wait_for(lambda: listing.filters.search == 'Austin'))
        self.assertTrue(wait_for(lambda: [a['city'] for a in listing.advocates] == ['Austin']))

    def test_filter_change_resets_page(self):
        self.listing.set_page(2)
        self.assertEqual(self.listing.filters.page, 2)
        self.listing.toggle_degree('MD')
        self.assertEqual(self.listing.filters.page, 1)
        self.assertEqual(self.transport.requests[-1]['page'], 1)
        self.assertTrue(all(a['degree'] == 'MD' for a in self.listing.advocates))

    def test_search_change_resets_page(self):
        self.listing.set_page(2)
        self.listing.type_search('an')
        self.listing.flush_search()
        self.assertEqual(self.listing.filters.page, 1)

    def test_toggling_twice_removes_selection(self):
        self.listing.toggle_city('Boise')
        self.assertEqual(self.listing.advocates, [])
        self.listing.toggle_city('Boise')
        self.assertEqual(len(self.listing.advocates), 10)
        self.assertNotIn('cities', self.transport.requests[-1])

    def test_set_page_is_clamped_to_known_pages(self):
        self.listing.set_page(99)
        self.assertEqual(self.listing.filters.page, 2)
        self.listing.set_page(0)
        self.assertEqual(self.listing.filters.page, 1)

    def test_sort_toggles_direction_on_same_field(self):
        self.listing.set_sort('yearsOfExperience')
        self.assertEqual(self.listing.advocates[0]['yearsOfExperience'], 3)
        self.listing.set_sort('yearsOfExperience')
        self.assertEqual(self.listing.filters.sort_direction, 'desc')
        self.assertEqual(self.listing.advocates[0]['yearsOfExperience'], 14)
        self.listing.set_sort('city')
        self.assertEqual((self.listing.filters.sort_field, self.listing.filters.sort_direction), ('city', 'asc'))

    def test_experience_range(self):
        self.listing.set_experience_range(10, 12)
        self.assertTrue(all(10 <= a['yearsOfExperience'] <= 12 for a in self.listing.advocates))
        self.listing.set_experience_range(12, 10)
        self.assertEqual(self.listing.advocates, [])

    def test_reset_filters(self):
        self.listing.toggle_city('Austin')
        self.listing.type_search('pending')
        self.listing.set_items_per_page(5)
        self.listing.reset_filters()
        self.assertEqual(self.listing.filters, FilterState())
        self.assertEqual(self.listing.search_input, '')
        self.assertFalse(self.listing.flush_search())
        self.assertEqual(len(self.listing.advocates), 10)


class StaleResponseTests(unittest.TestCase):
    def test_slow_earlier_response_is_discarded(self):
        transport = RecordingTransport(ADVOCATE_DATA)
        listing = AdvocateListing(transport, debounce_delay=10)
        self.addCleanup(listing.close)
        real_fetch = transport.fetch
        state = {'interleaved': False}

        def slow_fetch(params):
            stale = real_fetch(params)
            if not state['interleaved']:
                # a newer request starts and completes before this one returns
                state['interleaved'] = True
                listing.filters.cities = {'Austin'}
                listing.refresh()
            return stale

        transport.fetch = slow_fetch

        applied = listing.refresh()

        self.assertFalse(applied)
        self.assertEqual([a['city'] for a in listing.advocates], ['Austin'])
        self.assertFalse(listing.loading)


class ErrorTests(unittest.TestCase):
    def test_transport_error_sets_error_and_retry_recovers(self):
        transport = RecordingTransport(ADVOCATE_DATA)
        listing = AdvocateListing(transport, debounce_delay=10)
        self.addCleanup(listing.close)
        real_fetch = transport.fetch

        def failing_fetch(params):
            raise httpx.ConnectError('server down')

        transport.fetch = failing_fetch

        self.assertFalse(listing.refresh())
        self.assertEqual(listing.error, 'server down')
        self.assertEqual(listing.advocates, [])

        transport.fetch = real_fetch
        self.assertTrue(listing.retry())
        self.assertIsNone(listing.error)

    def test_malformed_payload_clears_loading(self):
        transport = RecordingTransport(ADVOCATE_DATA)
        transport.fetch = lambda params: {'advocates': []}
        listing = AdvocateListing(transport, debounce_delay=10)
        self.addCleanup(listing.close)

        self.assertFalse(listing.refresh())

        self.assertFalse(listing.loading)
        self.assertIsNotNone(listing.error)

    def test_debounced_search_failure_is_reported(self):
        transport = RecordingTransport(ADVOCATE_DATA)
        real_fetch = transport.fetch

        def fetch(params):
            if 'search' in params:
                raise KeyError('search')
            return real_fetch(params)

        transport.fetch = fetch
        listing = AdvocateListing(transport, debounce_delay=0.01)
        self.addCleanup(listing.close)

        listing.type_search('x')

        self.assertTrue(wait_for(lambda: listing.error is not None))
        self.assertFalse(listing.loading)
        transport.fetch = real_fetch
        self.assertTrue(listing.retry())
        self.assertIsNone(listing.error)

    def test_unexpected_error_on_timer_thread_is_reported(self):
        transport = RecordingTransport(ADVOCATE_DATA)

        def fetch(params):
            raise RuntimeError('renderer exploded')

        transport.fetch = fetch
        listing = AdvocateListing(transport, debounce_delay=0.01)
        self.addCleanup(listing.close)

        with self.assertLogs(level='ERROR') as logs:
            listing.type_search('x')
            self.assertTrue(wait_for(lambda: listing.error == 'renderer exploded'))
        self.assertFalse(listing.loading)
        self.assertTrue(any('Debounced call failed' in line for line in logs.output))

    def test_debouncer_hands_errors_to_callback(self):
        errors = []

        def callback():
            raise RuntimeError('boom')

        debouncer = Debouncer(0.01, callback, on_error=errors.append)
        with self.assertLogs(level='ERROR'):
            debouncer.call()
            self.assertTrue(wait_for(lambda: errors))
        self.assertEqual(str(errors[0]), 'boom')


class ExportTests(unittest.TestCase):
    def test_export_all_walks_every_page(self):
        transport = RecordingTransport(ADVOCATE_DATA, max_limit=4)
        listing = AdvocateListing(transport, debounce_delay=10)
        self.addCleanup(listing.close)
        listing.refresh()

        records = listing.export_all()

        self.assertEqual(len(records), len(ADVOCATE_DATA))
        self.assertEqual(transport.requests[1]['limit'], 10000)
        self.assertEqual([r['page'] for r in transport.requests[1:]], [1, 2, 3, 4])

    def test_export_keeps_current_filters(self):
        transport = RecordingTransport(ADVOCATE_DATA, max_limit=2)
        listing = AdvocateListing(transport, debounce_delay=10)
        self.addCleanup(listing.close)
        listing.toggle_degree('PhD')
        listing.set_items_per_page(1)

        records = listing.export_all()

        expected = sorted(a['firstName'] for a in ADVOCATE_DATA if a['degree'] == 'PhD')
        self.assertEqual(sorted(r['firstName'] for r in records), expected)

    def test_export_csv_writes_file(self):
        listing = AdvocateListing(LocalTransport(ADVOCATE_DATA), debounce_delay=10)
        self.addCleanup(listing.close)
        with tempfile.TemporaryDirectory() as tmp:
            path = listing.export_csv(os.path.join(tmp, 'out.csv'))
            with open(path, encoding='utf-8') as f:
                lines = f.read().split('\n')
        self.assertEqual(len(lines), len(ADVOCATE_DATA) + 1)

    def test_export_csv_with_no_matches(self):
        listing = AdvocateListing(LocalTransport(ADVOCATE_DATA), debounce_delay=10)
        self.addCleanup(listing.close)
        listing.filters.cities = {'Atlantis'}
        self.assertIsNone(listing.export_csv('unused.csv'))


class RecentSearchIntegrationTests(unittest.TestCase):
    def test_applied_searches_are_remembered(self):
        with tempfile.TemporaryDirectory() as tmp:
            recent = RecentSearches(os.path.join(tmp, 'recent.json'))
            listing = AdvocateListing(LocalTransport(ADVOCATE_DATA), debounce_delay=10, recent_searches=recent)
            listing.type_search('Dallas')
            listing.flush_search()
            listing.type_search('  ')
            listing.flush_search()
            listing.close()
            self.assertEqual(recent.searches, ['Dallas'])


class HttpTransportTests(unittest.TestCase):
    def test_fetches_listing_endpoint(self):
        seen = {}

        def handler(request):
            seen['path'] = request.url.path
            seen['params'] = dict(request.url.params)
            return httpx.Response(200, json={'data': [], 'pagination': {'page': 1, 'limit': 10, 'total': 0, 'totalPages': 0}})

        client = httpx.Client(base_url='http://directory.test', transport=httpx.MockTransport(handler))
        transport = HttpTransport(client=client)
        self.addCleanup(transport.close)

        payload = transport.fetch({'page': 1, 'cities': 'Boise'})

        self.assertEqual(seen['path'], '/api/advocates')
        self.assertEqual(seen['params'], {'page': '1', 'cities': 'Boise'})
        self.assertEqual(payload['pagination']['total'], 0)

    def test_server_error_surfaces_as_listing_error(self):
        client = httpx.Client(
            base_url='http://directory.test',
            transport=httpx.MockTransport(lambda request: httpx.Response(500, json={'error': 'Failed to fetch advocates'})),
        )
        listing = AdvocateListing(HttpTransport(client=client), debounce_delay=10)
        self.addCleanup(listing.close)
        self.assertFalse(listing.refresh())
        self.assertIsNotNone(listing.error)


if __name__ == '__main__':
    unittest.main()
