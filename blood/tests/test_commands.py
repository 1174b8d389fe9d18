from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings

from blood.models import EmergencyRequest, RequestStatus
from blood.services import geocoding
from blood.services.matching import BloodGroup
from donor.models import Donor


class GeocodeDonorsCommandTests(TestCase):
	def setUp(self):
		geocoding.clear_caches()
		self.addCleanup(geocoding.clear_caches)
		self.placed = Donor.objects.create(full_name="Placed", phone="1", bloodgroup="A+", city="Dhaka", area="Mirpur")
		self.missing = Donor.objects.create(full_name="Missing", phone="2", bloodgroup="A+", city="Sylhet", area="Zindabazar")
		self.unknown = Donor.objects.create(full_name="Unknown", phone="3", bloodgroup="A+", city="Bogura")
		# Simulate rows saved before coordinates were filled in
		Donor.objects.filter(pk=self.missing.pk).update(latitude=None, longitude=None)

	@override_settings(GEOCODER_ALLOW_REMOTE=False)
	def test_command_fills_missing_coordinates(self):
		out, err = StringIO(), StringIO()
		call_command("geocode_donors", stdout=out, stderr=err)

		self.missing.refresh_from_db()
		self.assertEqual(self.missing.latitude, Decimal("24.896200"))
		self.assertIn("Geocoded 1 of 2 donors.", out.getvalue())
		self.assertIn(f"#{self.unknown.id}", err.getvalue())

		self.placed.refresh_from_db()
		self.assertEqual(self.placed.latitude, Decimal("23.822350"))

	@override_settings(GEOCODER_ALLOW_REMOTE=False)
	def test_dry_run_leaves_database_unchanged(self):
		out = StringIO()
		call_command("geocode_donors", dry_run=True, stdout=out, stderr=StringIO())

		self.missing.refresh_from_db()
		self.assertIsNone(self.missing.latitude)
		self.assertIn("DRY-RUN", out.getvalue())

	@override_settings(GEOCODER_ALLOW_REMOTE=False)
	def test_inactive_donors_skipped_by_default(self):
		Donor.objects.filter(pk=self.missing.pk).update(is_active=False)
		call_command("geocode_donors", stdout=StringIO(), stderr=StringIO())
		self.missing.refresh_from_db()
		self.assertIsNone(self.missing.latitude)

		call_command("geocode_donors", include_inactive=True, stdout=StringIO(), stderr=StringIO())
		self.missing.refresh_from_db()
		self.assertIsNotNone(self.missing.latitude)


class SeedDemoDonorsCommandTests(TestCase):
	def test_seed_creates_donors_and_pending_requests(self):
		out = StringIO()
		call_command("seed_demo_donors", donors=25, requests=4, seed=7, stdout=out)

		self.assertEqual(Donor.objects.count(), 25)
		self.assertEqual(EmergencyRequest.objects.filter(status=RequestStatus.PENDING).count(), 4)
		self.assertIn("Seed complete: 25 donors, 4 pending requests.", out.getvalue())

		groups = set(Donor.objects.values_list("bloodgroup", flat=True))
		self.assertTrue(groups <= {group.value for group in BloodGroup})
		self.assertFalse(Donor.objects.filter(latitude__isnull=True).exists())
		self.assertFalse(EmergencyRequest.objects.filter(latitude__isnull=True).exists())

	def test_purge_replaces_existing_records(self):
		Donor.objects.create(full_name="Old", phone="1", bloodgroup="O+", city="Dhaka")
		call_command("seed_demo_donors", donors=3, seed=1, purge=True, stdout=StringIO())

		self.assertEqual(Donor.objects.count(), 3)
		self.assertFalse(Donor.objects.filter(full_name="Old").exists())
