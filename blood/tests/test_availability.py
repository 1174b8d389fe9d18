from datetime import date, datetime, timedelta

from django.test import SimpleTestCase

from blood.services.matching import DONATION_RECOVERY_DAYS, days_since, is_available, next_eligible_date

TODAY = date(2024, 6, 1)


class AvailabilityRuleTests(SimpleTestCase):
    def test_recovery_window_is_ninety_days(self):
        self.assertEqual(DONATION_RECOVERY_DAYS, 90)

    def test_never_donated_is_available(self):
        self.assertTrue(is_available(True, None, TODAY))

    def test_boundary_is_inclusive(self):
        self.assertFalse(is_available(True, TODAY - timedelta(days=89), TODAY))
        self.assertTrue(is_available(True, TODAY - timedelta(days=90), TODAY))
        self.assertTrue(is_available(True, TODAY - timedelta(days=91), TODAY))

    def test_monotonic_in_days_since(self):
        results = [is_available(True, TODAY - timedelta(days=d), TODAY) for d in range(0, 200)]
        self.assertEqual(results, [d >= 90 for d in range(0, 200)])

    def test_inactive_is_never_available(self):
        for last in [None, TODAY - timedelta(days=10), TODAY - timedelta(days=400)]:
            self.assertFalse(is_available(False, last, TODAY))

    def test_recently_donated_unavailable(self):
        self.assertFalse(is_available(True, TODAY - timedelta(days=10), TODAY))

    def test_future_donation_date_is_not_recovered(self):
        self.assertFalse(is_available(True, TODAY + timedelta(days=3), TODAY))

    def test_accepts_datetimes(self):
        now = datetime(2024, 6, 1, 23, 59)
        self.assertTrue(is_available(True, datetime(2024, 3, 3, 0, 1), now))
        self.assertEqual(days_since(datetime(2024, 5, 31, 23, 0), now), 1)

    def test_custom_recovery_days(self):
        last = TODAY - timedelta(days=60)
        self.assertTrue(is_available(True, last, TODAY, recovery_days=56))
        self.assertFalse(is_available(True, last, TODAY))

    def test_next_eligible_date(self):
        self.assertIsNone(next_eligible_date(None))
        self.assertEqual(next_eligible_date(date(2024, 1, 1)), date(2024, 3, 31))
