import unittest
from datetime import datetime, timedelta, timezone

from services.capital.models import CapitalSource
from services.capital.storage import InMemoryStorage
from services.capital.store import HistoryStore
from services.valuation.wacc import average_wacc, compute_wacc, period_wacc, snapshot_at, total_capital_cents

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def src(cents, rate, name="S"):
    return CapitalSource(source_id=name, name=name, annual_rate=rate, available_cents=cents, remaining_cents=cents)


class TestComputeWACC(unittest.TestCase):
    def test_weighted_average(self):
        val = compute_wacc([src(50_000_000, 0.05), src(75_000_000, 0.14)])
        self.assertAlmostEqual(val, 0.104)

    def test_single_source_equals_rate(self):
        for cents in (1, 100, 123_456_789):
            self.assertAlmostEqual(compute_wacc([src(cents, 0.137)]), 0.137)

    def test_zero_capital(self):
        self.assertEqual(compute_wacc([]), 0.0)
        self.assertEqual(compute_wacc([src(0, 0.2)]), 0.0)
        self.assertEqual(compute_wacc([src(0, 0.2), src(0, 0.1)]), 0.0)

    def test_zero_amount_source_has_no_weight(self):
        self.assertAlmostEqual(compute_wacc([src(0, 0.9), src(100, 0.1)]), 0.1)

    def test_total_capital(self):
        self.assertEqual(total_capital_cents([src(1, 0.1), src(2, 0.2)]), 3)


class TestSnapshots(unittest.TestCase):
    def setUp(self):
        self.store = HistoryStore(InMemoryStorage(), clock=lambda: NOW)
        self.grant = self.store.add_source("Grant Capital", 0.05, 50_000_000, NOW - timedelta(days=90))
        self.bank = self.store.add_source("Bank LOC", 0.14, 75_000_000, NOW - timedelta(days=90))

    def test_example_scenarios(self):
        snap = snapshot_at(self.store.snapshot(), NOW)
        self.assertAlmostEqual(snap.wacc, 0.104)
        self.assertEqual(snap.total_capital_cents, 125_000_000)
        self.assertEqual(len(snap.sources), 2)

        self.store.update_amount(self.grant, 30_000_000, NOW - timedelta(days=10))
        snap = snapshot_at(self.store.snapshot(), NOW - timedelta(days=5))
        self.assertAlmostEqual(snap.wacc, (30_000_000 * 0.05 + 75_000_000 * 0.14) / 105_000_000)
        self.assertAlmostEqual(snap.wacc, 0.11428571, places=7)

        self.store.remove_source(self.bank, NOW)
        snap = snapshot_at(self.store.snapshot(), NOW)
        self.assertAlmostEqual(snap.wacc, 0.05)
        self.assertEqual([s.name for s in snap.sources], ["Grant Capital"])

    def test_before_any_source(self):
        snap = snapshot_at(self.store.snapshot(), NOW - timedelta(days=365))
        self.assertEqual(snap.wacc, 0.0)
        self.assertEqual(snap.total_capital_cents, 0)
        self.assertEqual(snap.sources, ())

    def test_snapshot_to_dict(self):
        d = snapshot_at(self.store.snapshot(), NOW).to_dict()
        self.assertEqual(d["total_capital_cents"], 125_000_000)
        self.assertEqual(d["date"], NOW.isoformat())
        self.assertEqual({s["name"] for s in d["sources"]}, {"Grant Capital", "Bank LOC"})


class TestAverageWACC(unittest.TestCase):
    def setUp(self):
        self.store = HistoryStore(InMemoryStorage(), clock=lambda: NOW)
        self.jan1 = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.store.add_source("A", 0.10, 100, self.jan1)
        self.store.add_source("B", 0.20, 100, self.jan1 + timedelta(days=10))

    def test_time_weighted(self):
        entries = self.store.snapshot()
        avg = average_wacc(entries, self.jan1, self.jan1 + timedelta(days=20))
        self.assertAlmostEqual(avg, 0.125)

    def test_no_changes_inside_range(self):
        entries = self.store.snapshot()
        start = self.jan1 + timedelta(days=15)
        self.assertAlmostEqual(average_wacc(entries, start, start + timedelta(days=30)), 0.15)

    def test_zero_length_range(self):
        entries = self.store.snapshot()
        self.assertAlmostEqual(average_wacc(entries, self.jan1, self.jan1), 0.10)

    def test_reversed_range(self):
        with self.assertRaises(ValueError):
            average_wacc(self.store.snapshot(), self.jan1 + timedelta(days=1), self.jan1)

    def test_period_wacc(self):
        out = period_wacc(self.store.snapshot(), self.jan1, self.jan1 + timedelta(days=20))
        self.assertAlmostEqual(out["start"], 0.10)
        self.assertAlmostEqual(out["end"], 0.15)
        self.assertAlmostEqual(out["average"], 0.125)


if __name__ == "__main__":
    unittest.main()
