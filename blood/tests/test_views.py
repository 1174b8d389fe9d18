import json
from datetime import timedelta
from unittest import mock

import redis

from django.contrib.auth.models import User
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from donor.models import Donor
from blood.models import DonorMatch, EmergencyRequest, RequestStatus


REQUEST_PAYLOAD = {
    "bloodGroup": "A+",
    "unitsRequired": 2,
    "urgency": "critical",
    "patientName": "Rahim Uddin",
    "hospitalName": "Dhaka Medical College Hospital",
    "contactPhone": "+8801712345678",
    "city": "Dhaka",
    "area": "Mirpur",
}


class ApiTestCase(TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser("admin", "admin@example.com", "pass1234")
        self.staff = User.objects.create_user("staff", "staff@example.com", "pass1234")
        self.mirpur = Donor.objects.create(
            full_name="Karim", phone="+8801711000001", bloodgroup="O-", city="Dhaka", area="Mirpur"
        )
        self.gulshan = Donor.objects.create(
            full_name="Nasrin", phone="+8801711000002", bloodgroup="A+", city="Dhaka", area="Gulshan"
        )
        self.resting = Donor.objects.create(
            full_name="Sabbir", phone="+8801711000003", bloodgroup="A-", city="Dhaka", area="Mirpur",
            last_donated_at=timezone.localdate() - timedelta(days=15),
        )
        self.incompatible = Donor.objects.create(
            full_name="Tania", phone="+8801711000004", bloodgroup="B+", city="Dhaka", area="Mirpur"
        )

    def post_json(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def make_request(self, **extra):
        fields = {
            "bloodgroup": "A+",
            "hospital_name": "Square Hospital",
            "contact_phone": "+8801799999999",
            "city": "Dhaka",
            "area": "Mirpur",
        }
        fields.update(extra)
        return EmergencyRequest.objects.create(**fields)


class CreateRequestViewTests(ApiTestCase):
    def test_create_returns_pending_request_and_preview(self):
        response = self.post_json(reverse("request-create"), REQUEST_PAYLOAD)

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["request"]["status"], "pending")
        self.assertEqual(body["request"]["bloodGroup"], "A+")
        self.assertEqual([d["name"] for d in body["matchedDonors"]], ["Karim", "Nasrin"])
        self.assertEqual(EmergencyRequest.objects.count(), 1)
        self.assertFalse(DonorMatch.objects.exists())

    def test_create_normalizes_blood_group(self):
        response = self.post_json(reverse("request-create"), {**REQUEST_PAYLOAD, "bloodGroup": " a+ "})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(EmergencyRequest.objects.get().bloodgroup, "A+")

    def test_create_rejects_invalid_blood_group(self):
        response = self.post_json(reverse("request-create"), {**REQUEST_PAYLOAD, "bloodGroup": "X+"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid blood group")
        self.assertFalse(EmergencyRequest.objects.exists())

    def test_create_requires_city(self):
        response = self.post_json(reverse("request-create"), {**REQUEST_PAYLOAD, "city": "  "})
        self.assertEqual(response.status_code, 400)
        self.assertIn("city", response.json()["fields"])

    def test_create_rejects_malformed_json(self):
        response = self.client.post(reverse("request-create"), data="{not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_active_requests_hide_closed_ones(self):
        pending = self.make_request(urgency="medium")
        critical = self.make_request(urgency="critical")
        self.make_request(status=RequestStatus.REJECTED)

        response = self.client.get(reverse("request-active"))
        ids = [item["id"] for item in response.json()["requests"]]
        self.assertEqual(ids, [str(critical.id), str(pending.id)])


class DonorSearchViewTests(ApiTestCase):
    def test_filters_by_group_and_availability(self):
        response = self.client.get(reverse("donor-search"), {"bloodGroup": "A-"})
        donors = response.json()["donors"]
        self.assertEqual([d["name"] for d in donors], ["Sabbir"])
        self.assertFalse(donors[0]["isAvailable"])
        resting_until = self.resting.last_donated_at + timedelta(days=90)
        self.assertEqual(donors[0]["nextEligibleDate"], resting_until.isoformat())

        response = self.client.get(reverse("donor-search"), {"city": "dhaka", "available": "true"})
        self.assertEqual({d["name"] for d in response.json()["donors"]}, {"Karim", "Nasrin", "Tania"})

    def test_invalid_group(self):
        response = self.client.get(reverse("donor-search"), {"bloodGroup": "C+"})
        self.assertEqual(response.status_code, 400)

    def test_match_view_ranks_compatible_donors(self):
        response = self.client.get(reverse("donor-match"), {"bloodGroup": "A+", "city": "Dhaka", "area": "Mirpur"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["bloodGroup"], "A+")
        self.assertEqual(body["compatibleGroups"], ["A+", "A-", "O+", "O-"])
        self.assertEqual([d["name"] for d in body["matchedDonors"]], ["Karim", "Nasrin"])
        self.assertEqual(body["matchedCount"], 2)
        self.assertEqual(body["canDonateTo"], ["A+", "AB+"])

    def test_match_view_area_locality_needs_area(self):
        response = self.client.get(reverse("donor-match"), {"bloodGroup": "A+", "city": "Dhaka", "locality": "area"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["field"], "area")

    def test_match_view_requires_group(self):
        response = self.client.get(reverse("donor-match"), {"city": "Dhaka"})
        self.assertEqual(response.status_code, 400)


class AdminWorkflowViewTests(ApiTestCase):
    def test_requires_superuser(self):
        blood_request = self.make_request()
        url = reverse("admin-request-approve", args=[blood_request.id])

        self.assertEqual(self.client.post(url).status_code, 403)
        self.client.force_login(self.staff)
        self.assertEqual(self.client.post(url).status_code, 403)
        self.assertEqual(self.client.get(reverse("admin-request-list")).status_code, 403)

        blood_request.refresh_from_db()
        self.assertEqual(blood_request.status, RequestStatus.PENDING)

    def test_approve_persists_matches(self):
        blood_request = self.make_request()
        self.client.force_login(self.admin)

        response = self.client.post(reverse("admin-request-approve", args=[blood_request.id]))

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["request"]["status"], "approved")
        self.assertEqual(body["matchedCount"], 2)
        self.assertEqual([d["id"] for d in body["matchedDonors"]], [str(self.mirpur.id), str(self.gulshan.id)])
        self.assertEqual(
            list(DonorMatch.objects.filter(request=blood_request).values_list("donor_id", flat=True)),
            [self.mirpur.id, self.gulshan.id],
        )

    def test_second_approval_conflicts(self):
        blood_request = self.make_request()
        self.client.force_login(self.admin)
        url = reverse("admin-request-approve", args=[blood_request.id])

        self.assertEqual(self.client.put(url).status_code, 200)
        self.assertEqual(self.client.put(url).status_code, 409)
        self.assertEqual(DonorMatch.objects.filter(request=blood_request).count(), 2)

    def test_unknown_request(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse("admin-request-approve", args=[9999]))
        self.assertEqual(response.status_code, 404)

    def test_reject_and_complete(self):
        rejected = self.make_request()
        approved = self.make_request()
        self.client.force_login(self.admin)

        response = self.post_json(reverse("admin-request-reject", args=[rejected.id]), {"reason": "Duplicate"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["request"]["rejectionReason"], "Duplicate")

        self.assertEqual(self.client.post(reverse("admin-request-approve", args=[rejected.id])).status_code, 409)
        self.assertEqual(self.client.post(reverse("admin-request-complete", args=[approved.id])).status_code, 409)

        self.client.post(reverse("admin-request-approve", args=[approved.id]))
        response = self.client.post(reverse("admin-request-complete", args=[approved.id]))
        self.assertEqual(response.json()["request"]["status"], "completed")

    def test_request_list_filters_by_status(self):
        pending = self.make_request()
        self.make_request(status=RequestStatus.COMPLETED)
        self.client.force_login(self.admin)

        response = self.client.get(reverse("admin-request-list"), {"status": "pending"})
        self.assertEqual([item["id"] for item in response.json()["requests"]], [str(pending.id)])

        self.assertEqual(len(self.client.get(reverse("admin-request-list")).json()["requests"]), 2)
        self.assertEqual(self.client.get(reverse("admin-request-list"), {"status": "bogus"}).status_code, 400)


class UtilityViewTests(ApiTestCase):
    def test_statistics(self):
        self.incompatible.deactivate()
        body = self.client.get(reverse("statistics")).json()

        self.assertEqual(body["totalDonors"], 3)
        self.assertEqual(body["inactiveDonors"], 1)
        self.assertEqual(body["availableDonors"], 2)
        self.assertEqual(body["unavailableDonors"], 1)
        self.assertEqual(body["byBloodGroup"]["O-"], 1)
        self.assertEqual(body["byBloodGroup"]["B+"], 0)
        self.assertEqual(body["byCity"], {"Dhaka": 3})

    @override_settings(CELERY_TASK_ALWAYS_EAGER=True)
    def test_health_with_eager_tasks(self):
        response = self.client.get(reverse("health"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")
        self.assertTrue(response.json()["broker"]["eager"])

    @override_settings(CELERY_TASK_ALWAYS_EAGER=False, CELERY_BROKER_URL="redis://localhost:6399/0")
    def test_health_reports_unreachable_broker(self):
        with mock.patch("blood.views.redis.Redis.from_url") as from_url, mock.patch("blood.views.cache") as cache:
            cache.get.return_value = None
            from_url.return_value.ping.side_effect = redis.ConnectionError("refused")
            response = self.client.get(reverse("health"))

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["broker"]["error"], "refused")
