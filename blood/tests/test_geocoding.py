from decimal import Decimal
from types import SimpleNamespace
from unittest import mock

from django.test import TestCase, override_settings
from celery.exceptions import Retry
from geopy.exc import GeocoderServiceError, GeocoderTimedOut

from blood import models, tasks
from blood.services import geocoding
from donor.models import Donor


class GeocodingServiceTests(TestCase):
	def setUp(self):
		geocoding.clear_caches()
		self.addCleanup(geocoding.clear_caches)

	def test_fixture_lookup_is_case_and_space_insensitive(self):
		result = geocoding.geocode_address("  MIRPUR ,  dhaka ", allow_remote=False)
		self.assertIsNotNone(result)
		self.assertEqual(result.provider, "fixture")
		self.assertEqual(result.latitude, Decimal("23.822350"))
		self.assertEqual(result.longitude, Decimal("90.365417"))

	def test_unknown_place_without_remote(self):
		self.assertIsNone(geocoding.geocode_address("Atlantis", allow_remote=False))
		self.assertIsNone(geocoding.geocode_address("   ", allow_remote=False))

	def test_resolve_location_falls_back_to_city(self):
		result = geocoding.resolve_location("Dhaka", "Nowhere Lane", allow_remote=False)
		self.assertEqual((result.latitude, result.longitude), (Decimal("23.810332"), Decimal("90.412518")))
		self.assertIsNone(geocoding.resolve_location("", "", allow_remote=False))

	def test_fixture_overrides_need_cache_reset(self):
		with override_settings(GEOCODER_STATIC_FIXTURES={"Khulna": (22.845641, 89.540328)}):
			geocoding.clear_caches()
			result = geocoding.resolve_location("khulna", allow_remote=False)
		self.assertEqual(result.latitude, Decimal("22.845641"))

	def test_remote_lookup_is_cached(self):
		location = SimpleNamespace(latitude=22.3569, longitude=91.7832, raw={"type": "city"})
		geocode = mock.Mock(return_value=location)
		with mock.patch.object(geocoding, "_geocode_callable", return_value=geocode):
			first = geocoding.geocode_address("Pahartali, Chattogram", allow_remote=True)
			second = geocoding.geocode_address("pahartali, chattogram", allow_remote=True)

		self.assertEqual(first.provider, "nominatim")
		self.assertEqual(first.accuracy, "city")
		self.assertEqual(first.latitude, Decimal("22.356900"))
		self.assertEqual(first, second)
		geocode.assert_called_once()

	def test_remote_errors_are_logged_not_raised(self):
		geocode = mock.Mock(side_effect=GeocoderServiceError("service down"))
		with mock.patch.object(geocoding, "_geocode_callable", return_value=geocode):
			with self.assertLogs("blood.services.geocoding", level="WARNING"):
				self.assertIsNone(geocoding.geocode_address("Somewhere", allow_remote=True))

	def test_raise_errors_propagates_provider_failures(self):
		geocode = mock.Mock(side_effect=GeocoderTimedOut("timed out"))
		with mock.patch.object(geocoding, "_geocode_callable", return_value=geocode):
			with self.assertLogs("blood.services.geocoding", level="WARNING"):
				with self.assertRaises(GeocoderTimedOut):
					geocoding.resolve_location("Khulna", allow_remote=True, raise_errors=True)

	@override_settings(GEOCODER_USER_AGENT="")
	def test_missing_user_agent_disables_remote(self):
		with self.assertLogs("blood.services.geocoding", level="WARNING"):
			self.assertIsNone(geocoding.geocode_address("Somewhere else", allow_remote=True))


class CoordinateTaskTests(TestCase):
	def setUp(self):
		geocoding.clear_caches()
		self.addCleanup(geocoding.clear_caches)

	def _remote(self, latitude, longitude):
		return geocoding.GeocodeResult(latitude=Decimal(latitude), longitude=Decimal(longitude), provider="nominatim")

	def test_resolve_donor_coordinates(self):
		donor = Donor.objects.create(full_name="Rupa", phone="+8801700000009", bloodgroup="B+", city="Khulna", area="Sonadanga")
		self.assertFalse(donor.has_coordinates)

		with mock.patch.object(tasks, "resolve_location", return_value=self._remote("22.820000", "89.550000")) as resolve:
			self.assertTrue(tasks.resolve_donor_coordinates.apply(args=[donor.id]).get())
		resolve.assert_called_once_with("Khulna", "Sonadanga", allow_remote=True, raise_errors=True)

		donor.refresh_from_db()
		self.assertEqual(donor.latitude, Decimal("22.820000"))
		self.assertFalse(donor.location_verified)

	def test_resolve_donor_coordinates_unresolved(self):
		donor = Donor.objects.create(full_name="Rupa", phone="+8801700000009", bloodgroup="B+", city="Khulna")
		with mock.patch.object(tasks, "resolve_location", return_value=None):
			self.assertFalse(tasks.resolve_donor_coordinates.apply(args=[donor.id]).get())
		donor.refresh_from_db()
		self.assertIsNone(donor.latitude)

	def test_provider_timeout_schedules_retry(self):
		donor = Donor.objects.create(full_name="Rupa", phone="+8801700000009", bloodgroup="B+", city="Khulna")
		geocode = mock.Mock(side_effect=GeocoderTimedOut("timed out"))

		with mock.patch.object(geocoding, "_geocode_callable", return_value=geocode), \
				mock.patch("celery.app.task.Task.retry", side_effect=Retry("retrying")) as retry, \
				self.assertLogs("blood.services.geocoding", level="WARNING"):
			with self.assertRaises(Retry):
				tasks.resolve_donor_coordinates(donor.id)

		retry.assert_called_once()
		self.assertIsInstance(retry.call_args.kwargs["exc"], GeocoderTimedOut)
		self.assertIn("countdown", retry.call_args.kwargs)
		self.assertEqual(retry.call_args.kwargs["max_retries"], 3)
		donor.refresh_from_db()
		self.assertIsNone(donor.latitude)

	def test_resolve_request_coordinates(self):
		blood_request = models.EmergencyRequest.objects.create(
			bloodgroup="O+", hospital_name="Khulna Medical College", contact_phone="+8801700000010", city="Khulna",
		)
		with mock.patch.object(tasks, "resolve_location", return_value=self._remote("22.845641", "89.540328")):
			self.assertTrue(tasks.resolve_request_coordinates.apply(args=[blood_request.id]).get())

		blood_request.refresh_from_db()
		self.assertTrue(blood_request.has_coordinates)
		self.assertEqual(blood_request.longitude, Decimal("89.540328"))

	@override_settings(GEOCODER_ALLOW_REMOTE=True)
	def test_unplaced_donor_queues_remote_lookup(self):
		with mock.patch("blood.tasks.resolve_donor_coordinates") as task:
			with self.captureOnCommitCallbacks(execute=True):
				donor = Donor.objects.create(full_name="Mita", phone="+8801700000011", bloodgroup="A+", city="Bogura")
		task.delay.assert_called_once_with(donor.id)

	@override_settings(GEOCODER_ALLOW_REMOTE=True)
	def test_fixture_placed_donor_skips_remote_lookup(self):
		with mock.patch("blood.tasks.resolve_donor_coordinates") as task:
			with self.captureOnCommitCallbacks(execute=True):
				Donor.objects.create(full_name="Mita", phone="+8801700000011", bloodgroup="A+", city="Dhaka", area="Banani")
		task.delay.assert_not_called()
