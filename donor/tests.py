import json
from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from blood.services import geocoding
from donor.forms import DonorForm
from donor import models as dmodels


class DonorFormGeoTests(TestCase):
	def setUp(self):
		self.base_data = {
			'full_name': 'Ayesha Rahman',
			'phone': '+8801711223344',
			'bloodgroup': 'ab-',
			'city': 'Dhaka',
			'area': 'Dhanmondi',
			'is_active': True,
		}

	def test_coordinates_optional_when_both_blank(self):
		form = DonorForm(data=self.base_data)
		self.assertTrue(form.is_valid(), form.errors)
		self.assertEqual(form.cleaned_data['bloodgroup'], 'AB-')

	def test_rejects_partial_coordinate_submission(self):
		partial = {**self.base_data, 'latitude': '23.7465'}
		form = DonorForm(data=partial)
		self.assertFalse(form.is_valid())
		self.assertIn('Please provide both latitude and longitude or leave both blank.', form.errors['__all__'])

	def test_accepts_valid_coordinate_pair(self):
		data = {
			**self.base_data,
			'latitude': '23.746466',
			'longitude': '90.376015',
		}
		form = DonorForm(data=data)
		self.assertTrue(form.is_valid(), form.errors)

	def test_rejects_unknown_blood_group(self):
		form = DonorForm(data={**self.base_data, 'bloodgroup': 'AB'})
		self.assertFalse(form.is_valid())
		self.assertIn('bloodgroup', form.errors)


@override_settings(GEOCODER_ALLOW_REMOTE=False)
class DonorLocationSignalTests(TestCase):
	def setUp(self):
		geocoding.clear_caches()
		self.addCleanup(geocoding.clear_caches)

	def _create_donor(self, city, area='', **extra):
		return dmodels.Donor.objects.create(
			full_name='Test Donor',
			phone='+8801700000000',
			bloodgroup='O+',
			city=city,
			area=area,
			**extra,
		)

	def test_fixture_coordinates_filled_on_save(self):
		donor = self._create_donor('Dhaka', 'Mirpur')
		donor.refresh_from_db()
		self.assertEqual(donor.latitude, Decimal('23.822350'))
		self.assertEqual(donor.longitude, Decimal('90.365417'))
		self.assertFalse(donor.location_verified)

	def test_unknown_area_falls_back_to_city(self):
		donor = self._create_donor('Chittagong', 'Halishahar')
		self.assertEqual(donor.latitude, Decimal('22.356851'))

	def test_manual_pin_is_kept(self):
		donor = self._create_donor('Dhaka', 'Mirpur', latitude=Decimal('23.800000'), longitude=Decimal('90.350000'), location_verified=True)
		donor.refresh_from_db()
		self.assertEqual(donor.latitude, Decimal('23.800000'))
		self.assertTrue(donor.location_verified)

	def test_unknown_place_left_blank(self):
		donor = self._create_donor('Bogura')
		self.assertFalse(donor.has_coordinates)

	def test_city_change_reresolves_coordinates(self):
		donor = self._create_donor('Dhaka', 'Mirpur')
		donor.city = 'Sylhet'
		donor.area = ''
		donor.save()
		donor.refresh_from_db()
		self.assertEqual(donor.latitude, Decimal('24.894930'))
		self.assertEqual(donor.longitude, Decimal('91.868706'))

	def test_move_to_unknown_city_clears_coordinates(self):
		donor = self._create_donor('Dhaka', 'Mirpur')
		donor.city = 'Bogura'
		donor.area = ''
		donor.save()
		donor.refresh_from_db()
		self.assertFalse(donor.has_coordinates)

	def test_verified_pin_survives_location_change(self):
		donor = self._create_donor('Dhaka', 'Mirpur', latitude=Decimal('23.800000'), longitude=Decimal('90.350000'), location_verified=True)
		donor.city = 'Sylhet'
		donor.save()
		donor.refresh_from_db()
		self.assertEqual(donor.latitude, Decimal('23.800000'))

	def test_new_coordinates_sent_with_move_are_kept(self):
		donor = self._create_donor('Dhaka', 'Mirpur')
		donor.city = 'Bogura'
		donor.latitude = Decimal('24.846500')
		donor.longitude = Decimal('89.377800')
		donor.save()
		donor.refresh_from_db()
		self.assertEqual(donor.latitude, Decimal('24.846500'))

	def test_case_only_edit_keeps_coordinates(self):
		donor = self._create_donor('Dhaka', 'Mirpur')
		donor.city = ' dhaka '
		donor.save()
		donor.refresh_from_db()
		self.assertEqual(donor.latitude, Decimal('23.822350'))


class DonorAvailabilityTests(TestCase):
	def _donor(self, **extra):
		return dmodels.Donor.objects.create(full_name='Test Donor', phone='1', bloodgroup='B-', city='Rajshahi', **extra)

	def test_availability_follows_recovery_window(self):
		donor = self._donor(last_donated_at=date(2024, 1, 1))
		self.assertFalse(donor.is_available_on(date(2024, 3, 30)))
		self.assertTrue(donor.is_available_on(date(2024, 3, 31)))
		self.assertEqual(donor.next_eligible_donation_date, date(2024, 3, 31))

	def test_never_donated_is_available(self):
		donor = self._donor()
		self.assertTrue(donor.is_available_on())
		self.assertIsNone(donor.next_eligible_donation_date)

	@override_settings(DONATION_RECOVERY_DAYS=56)
	def test_recovery_window_is_configurable(self):
		today = date(2024, 6, 1)
		donor = self._donor(last_donated_at=today - timedelta(days=60))
		self.assertTrue(donor.is_available_on(today))

	def test_deactivate_and_reactivate(self):
		donor = self._donor()
		donor.deactivate()
		donor.refresh_from_db()
		self.assertFalse(donor.is_active)
		self.assertIsNotNone(donor.deactivated_at)
		self.assertFalse(donor.is_available_on())

		donor.reactivate()
		donor.refresh_from_db()
		self.assertTrue(donor.is_active)
		self.assertIsNone(donor.deactivated_at)

	def test_record_donation_keeps_latest_date(self):
		donor = self._donor(last_donated_at=date(2024, 5, 1))
		self.assertEqual(donor.record_donation(date(2024, 4, 1)), date(2024, 5, 1))
		self.assertEqual(donor.record_donation(date(2024, 6, 1)), date(2024, 6, 1))
		donor.refresh_from_db()
		self.assertEqual(donor.last_donated_at, date(2024, 6, 1))


@override_settings(GEOCODER_ALLOW_REMOTE=False)
class DonorProfileViewTests(TestCase):
	def setUp(self):
		geocoding.clear_caches()
		self.addCleanup(geocoding.clear_caches)
		self.owner = User.objects.create_user('ayesha', 'ayesha@example.com', 'pass1234')
		self.other = User.objects.create_user('rafi', 'rafi@example.com', 'pass1234')
		self.admin = User.objects.create_superuser('admin', 'admin@example.com', 'pass1234')
		self.payload = {
			'name': 'Ayesha Rahman',
			'email': 'ayesha@example.com',
			'phone': '+8801711223344',
			'bloodGroup': 'ab-',
			'city': 'Dhaka',
			'area': 'Mirpur',
			'dateOfBirth': '1995-04-12',
		}

	def _send(self, method, url, payload=None):
		return getattr(self.client, method)(url, data=json.dumps(payload or {}), content_type='application/json')

	def _register(self, user=None, **extra):
		self.client.force_login(user or self.owner)
		return self._send('post', reverse('donor-register'), {**self.payload, **extra})

	def test_register_links_donor_to_user(self):
		response = self._register()
		self.assertEqual(response.status_code, 201)
		body = response.json()['donor']
		self.assertEqual(body['bloodGroup'], 'AB-')
		self.assertTrue(body['isAvailable'])
		self.assertIsNone(body['nextEligibleDate'])
		self.assertEqual(body['latitude'], 23.82235)
		donor = dmodels.Donor.objects.get(pk=body['id'])
		self.assertEqual(donor.user, self.owner)

	def test_register_requires_login(self):
		response = self._send('post', reverse('donor-register'), self.payload)
		self.assertEqual(response.status_code, 401)

	def test_register_twice_rejected(self):
		self._register()
		response = self._register(phone='+8801799999999', email='other@example.com')
		self.assertEqual(response.status_code, 400)
		self.assertEqual(dmodels.Donor.objects.count(), 1)

	def test_register_duplicate_phone_rejected(self):
		self._register()
		response = self._register(user=self.other, email='rafi@example.com')
		self.assertEqual(response.status_code, 400)
		self.assertIn('phone', response.json()['fields'])

	def test_register_underage_rejected(self):
		born = timezone.localdate() - timedelta(days=365 * 17)
		response = self._register(dateOfBirth=born.isoformat())
		self.assertEqual(response.status_code, 400)
		self.assertIn('date_of_birth', response.json()['fields'])

	def test_register_invalid_blood_group(self):
		response = self._register(bloodGroup='C+')
		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.json()['error'], 'Invalid blood group')

	def test_admin_registers_unlinked_donor(self):
		response = self._register(user=self.admin)
		self.assertEqual(response.status_code, 201)
		self.assertIsNone(dmodels.Donor.objects.get().user)

	def test_owner_reads_profile(self):
		donor_id = self._register().json()['donor']['id']
		response = self.client.get(reverse('donor-detail', args=[donor_id]))
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['donor']['dateOfBirth'], '1995-04-12')

	def test_other_user_forbidden(self):
		donor_id = self._register().json()['donor']['id']
		self.client.force_login(self.other)
		self.assertEqual(self.client.get(reverse('donor-detail', args=[donor_id])).status_code, 403)
		self.assertEqual(self._send('delete', reverse('donor-detail', args=[donor_id])).status_code, 403)

	def test_admin_reads_any_profile(self):
		donor_id = self._register().json()['donor']['id']
		self.client.force_login(self.admin)
		self.assertEqual(self.client.get(reverse('donor-detail', args=[donor_id])).status_code, 200)

	def test_update_applies_recovery_rule(self):
		donor_id = self._register().json()['donor']['id']
		recent = timezone.localdate() - timedelta(days=10)
		response = self._send('put', reverse('donor-detail', args=[donor_id]), {'lastDonationDate': recent.isoformat()})
		self.assertEqual(response.status_code, 200)
		body = response.json()['donor']
		self.assertFalse(body['isAvailable'])
		self.assertEqual(body['nextEligibleDate'], (recent + timedelta(days=90)).isoformat())
		self.assertEqual(body['name'], 'Ayesha Rahman')

	def test_update_city_moves_coordinates(self):
		donor_id = self._register().json()['donor']['id']
		response = self._send('put', reverse('donor-detail', args=[donor_id]), {'city': 'Sylhet', 'area': ''})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['donor']['latitude'], 24.89493)

	def test_update_rejects_future_donation(self):
		donor_id = self._register().json()['donor']['id']
		tomorrow = timezone.localdate() + timedelta(days=1)
		response = self._send('put', reverse('donor-detail', args=[donor_id]), {'lastDonationDate': tomorrow.isoformat()})
		self.assertEqual(response.status_code, 400)

	def test_delete_marks_inactive(self):
		donor_id = self._register().json()['donor']['id']
		response = self._send('delete', reverse('donor-detail', args=[donor_id]))
		self.assertEqual(response.status_code, 200)
		donor = dmodels.Donor.objects.get(pk=donor_id)
		self.assertFalse(donor.is_active)
		self.assertIsNotNone(donor.deactivated_at)
		self.assertEqual(self.client.get(reverse('donor-detail', args=[donor_id])).status_code, 404)

	def test_record_donation(self):
		donor_id = self._register().json()['donor']['id']
		response = self._send('post', reverse('donor-donation', args=[donor_id]))
		self.assertEqual(response.status_code, 200)
		body = response.json()
		today = timezone.localdate()
		self.assertFalse(body['isAvailable'])
		self.assertEqual(body['nextEligibleDate'], (today + timedelta(days=90)).isoformat())
		self.assertEqual(body['donor']['lastDonationDate'], today.isoformat())

	def test_record_donation_rejects_future_date(self):
		donor_id = self._register().json()['donor']['id']
		tomorrow = timezone.localdate() + timedelta(days=1)
		response = self._send('post', reverse('donor-donation', args=[donor_id]), {'donationDate': tomorrow.isoformat()})
		self.assertEqual(response.status_code, 400)
		self.assertIsNone(dmodels.Donor.objects.get(pk=donor_id).last_donated_at)
