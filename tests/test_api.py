import unittest
import csv
import io
from datetime import datetime, timedelta, timezone

from services.api.server import app
from services.api.service import CapitalService
from services.capital.errors import StorageUnavailableError
from services.capital.storage import InMemoryStorage
from services.capital.store import HistoryStore

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def iso_days_ago(n: int) -> str:
    return (NOW - timedelta(days=n)).isoformat()


class TestCapitalAPI(unittest.TestCase):
    def setUp(self):
        app.testing = True
        app.config['API_KEY'] = None
        self.storage = InMemoryStorage()
        self.service = CapitalService(HistoryStore(self.storage, clock=lambda: NOW))
        app.config['CAPITAL_SERVICE'] = self.service
        self.client = app.test_client()

    def _add(self, name, rate, cents, days):
        rv = self.client.post('/capital/sources', json={
            'name': name, 'annual_rate': rate, 'available_cents': cents, 'effective_date': iso_days_ago(days),
        })
        self.assertEqual(rv.status_code, 201)
        return rv.get_json()['source_id']

    def test_scenario_flow(self):
        grant = self._add('Grant Capital', 0.05, 50_000_000, 90)
        bank = self._add('Bank LOC', 0.14, 75_000_000, 90)

        rv = self.client.get('/capital/wacc', query_string={'date': NOW.isoformat()})
        self.assertEqual(rv.status_code, 200)
        self.assertAlmostEqual(rv.get_json()['wacc'], 0.104)
        self.assertEqual(rv.get_json()['total_capital_cents'], 125_000_000)

        rv = self.client.post(f'/capital/sources/{grant}/amount', json={
            'available_cents': 30_000_000, 'effective_date': iso_days_ago(10), 'notes': 'reduced',
        })
        self.assertEqual(rv.status_code, 200)
        rv = self.client.get('/capital/wacc', query_string={'date': iso_days_ago(5)})
        self.assertAlmostEqual(rv.get_json()['wacc'], 12_000_000 / 105_000_000)

        rv = self.client.post(f'/capital/sources/{bank}/remove', json={'effective_date': NOW.isoformat()})
        self.assertEqual(rv.status_code, 200)
        rv = self.client.get('/capital/sources', query_string={'as_of': NOW.isoformat()})
        names = [s['name'] for s in rv.get_json()['sources']]
        self.assertEqual(names, ['Grant Capital'])
        rv = self.client.get('/capital/wacc')
        self.assertAlmostEqual(rv.get_json()['wacc'], 0.05)

        rv = self.client.post(f'/capital/sources/{grant}/rate', json={'annual_rate': 0.06, 'effective_date': NOW.isoformat()})
        self.assertEqual(rv.status_code, 200)
        rv = self.client.get('/capital/history', query_string={'source_id': grant})
        actions = [e['action'] for e in rv.get_json()['entries']]
        self.assertEqual(actions, ['ADDED', 'AMOUNT_CHANGED', 'RATE_CHANGED'])

    def test_future_date_is_400(self):
        rv = self.client.post('/capital/sources', json={
            'name': 'Late', 'annual_rate': 0.1, 'available_cents': 100,
            'effective_date': (NOW + timedelta(days=1)).isoformat(),
        })
        self.assertEqual(rv.status_code, 400)
        self.assertEqual(rv.get_json()['error'], 'future_date')
        self.assertEqual(self.service.get_capital_history(), [])

    def test_unknown_source_is_404(self):
        rv = self.client.post('/capital/sources/unknown-id/rate', json={'annual_rate': 0.2, 'effective_date': NOW.isoformat()})
        self.assertEqual(rv.status_code, 404)
        self.assertEqual(rv.get_json()['error'], 'source_not_found')

    def test_validation_errors_are_400(self):
        rv = self.client.post('/capital/sources', json={})
        self.assertEqual(rv.status_code, 400)
        rv = self.client.post('/capital/sources', json={
            'name': 'Bad', 'annual_rate': 0.1, 'available_cents': 10.5, 'effective_date': NOW.isoformat(),
        })
        self.assertEqual(rv.status_code, 400)
        self.assertEqual(rv.get_json()['error'], 'invalid_request')
        rv = self.client.get('/capital/wacc', query_string={'date': 'not-a-date'})
        self.assertEqual(rv.status_code, 400)
        rv = self.client.get('/capital/wacc/trend', query_string={'period_type': 'weekly'})
        self.assertEqual(rv.status_code, 400)

    def test_storage_failure_is_503(self):
        def broken_save(entries):
            raise StorageUnavailableError('offline')

        self.storage.save = broken_save
        rv = self.client.post('/capital/sources', json={
            'name': 'Grant Capital', 'annual_rate': 0.05, 'available_cents': 100, 'effective_date': NOW.isoformat(),
        })
        self.assertEqual(rv.status_code, 503)
        self.assertEqual(self.service.get_capital_history(), [])

    def test_trend_and_period_endpoints(self):
        self._add('Grant Capital', 0.05, 50_000_000, 400)
        rv = self.client.get('/capital/wacc/trend', query_string={'period_type': 'monthly'})
        points = rv.get_json()['points']
        self.assertEqual(len(points), 12)
        self.assertEqual(points[-1]['period'], 'Jun 2025')
        for p in points:
            self.assertAlmostEqual(p['wacc'], 0.05)
            self.assertEqual(p['total_capital'], 50_000_000)

        for kind, n in (('quarterly', 4), ('yearly', 3), ('60-day', 6), ('90-day', 6)):
            rv = self.client.get('/capital/wacc/trend', query_string={'period_type': kind})
            self.assertEqual(len(rv.get_json()['points']), n, kind)

        rv = self.client.get('/capital/wacc/trend', query_string={
            'period_type': 'custom', 'start': '2025-02-01', 'end': '2025-02-15',
        })
        self.assertEqual(len(rv.get_json()['points']), 1)

        rv = self.client.get('/capital/wacc/period', query_string={'period_type': 'quarterly'})
        body = rv.get_json()
        for k in ('start', 'end', 'average'):
            self.assertAlmostEqual(body[k], 0.05)

        rv = self.client.get('/capital/wacc/trend', query_string={'period_type': 'custom', 'start': '2025-02-01'})
        self.assertEqual(rv.status_code, 400)

        rv = self.client.get('/capital/wacc/period.md', query_string={'period_type': 'quarterly'})
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(rv.mimetype, 'text/markdown')
        md = rv.get_data(as_text=True)
        self.assertIn('# WACC Summary: Q2 2025', md)
        self.assertIn('- Grant Capital: 5.00% on 500,000.00', md)

    def test_csv_downloads(self):
        self._add('Grant Capital', 0.05, 50_000_000, 30)
        rv = self.client.get('/capital/history.csv')
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(rv.mimetype, 'text/csv')
        rows = list(csv.DictReader(io.StringIO(rv.get_data(as_text=True))))
        self.assertEqual(rows[0]['name'], 'Grant Capital')
        rv = self.client.get('/capital/wacc/trend.csv', query_string={'period_type': 'yearly'})
        self.assertTrue(rv.get_data(as_text=True).startswith('period,wacc,total_capital'))

    def test_history_range_query(self):
        self._add('Old', 0.05, 100, 60)
        self._add('New', 0.05, 100, 5)
        rv = self.client.get('/capital/history', query_string={'start': iso_days_ago(10), 'end': NOW.isoformat()})
        self.assertEqual([e['name'] for e in rv.get_json()['entries']], ['New'])
        for partial in ({'start': iso_days_ago(10)}, {'end': NOW.isoformat()}):
            rv = self.client.get('/capital/history', query_string=partial)
            self.assertEqual(rv.status_code, 400)
            self.assertEqual(rv.get_json()['error'], 'invalid_request')


if __name__ == "__main__":
    unittest.main()
