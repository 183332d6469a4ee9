import unittest
from datetime import datetime, timedelta, timezone

from invoicedesk.periods import EPOCH, period_start

NOW = datetime(2026, 10, 16, 15, 42, 7, 123456, tzinfo=timezone(timedelta(hours=3)))


class PeriodStartTests(unittest.TestCase):
    def test_daily_is_local_midnight(self):
        self.assertEqual(
            period_start("daily", NOW),
            datetime(2026, 10, 16, tzinfo=timezone(timedelta(hours=3))),
        )

    def test_missing_period_means_daily(self):
        self.assertEqual(period_start(None, NOW), period_start("daily", NOW))
        self.assertEqual(period_start("", NOW), period_start("daily", NOW))

    def test_rolling_windows(self):
        self.assertEqual(period_start("weekly", NOW), NOW - timedelta(days=7))
        self.assertEqual(period_start("monthly", NOW), NOW - timedelta(days=30))

    def test_names_are_case_insensitive(self):
        self.assertEqual(period_start("Weekly", NOW), NOW - timedelta(days=7))

    def test_unknown_period_has_no_lower_bound(self):
        self.assertEqual(period_start("yearly", NOW), EPOCH)
        self.assertEqual(period_start("all", NOW), EPOCH)

    def test_defaults_to_current_time(self):
        start = period_start("weekly")
        expected = datetime.now(timezone.utc) - timedelta(days=7)
        self.assertLess(abs((start - expected).total_seconds()), 5)


if __name__ == "__main__":
    unittest.main()
