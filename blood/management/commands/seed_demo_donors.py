import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from faker import Faker

from blood import models as blood_models
from blood.services import workflow
from blood.services.matching import BloodGroup
from donor import models as donor_models

# Rough population shares so rare groups stay rare in demo data.
BLOOD_GROUP_WEIGHTS = {
    BloodGroup.O_POS: 35,
    BloodGroup.A_POS: 26,
    BloodGroup.B_POS: 25,
    BloodGroup.AB_POS: 7,
    BloodGroup.O_NEG: 3,
    BloodGroup.A_NEG: 2,
    BloodGroup.B_NEG: 1,
    BloodGroup.AB_NEG: 1,
}
LOCATIONS = {
    "Dhaka": ["Mirpur", "Dhanmondi", "Gulshan", "Banani", "Uttara", "Mohammadpur"],
    "Chittagong": ["Agrabad", "Panchlaish", "Halishahar"],
    "Sylhet": ["Zindabazar", "Ambarkhana"],
    "Rajshahi": ["Shaheb Bazar", "Uposhohor"],
    "Gazipur": ["Tongi", "Joydebpur"],
}
REQUEST_URGENCIES = [choice for choice, _ in blood_models.RequestUrgency.choices]


class Command(BaseCommand):
    help = "Generate demo donors (and optionally pending emergency requests) for local testing"

    def add_arguments(self, parser):
        parser.add_argument("--donors", type=int, default=60, help="Number of donors to create (default 60)")
        parser.add_argument("--requests", type=int, default=0, help="Number of pending emergency requests to create")
        parser.add_argument("--seed", type=int, help="Random seed for deterministic runs")
        parser.add_argument("--purge", action="store_true", help="Delete existing donors and requests before seeding")
        parser.add_argument(
            "--ratio-inactive",
            type=float,
            default=0.1,
            help="Fraction of donors created deactivated (0.0-0.9). Default: 0.1",
        )
        parser.add_argument(
            "--ratio-recent",
            type=float,
            default=0.25,
            help="Fraction of donors who donated within the recovery window (0.0-0.9). Default: 0.25",
        )

    def handle(self, *args, **options):
        faker = Faker()
        if options.get("seed") is not None:
            Faker.seed(options["seed"])
            random.seed(options["seed"])

        ratio_inactive = max(0.0, min(0.9, float(options["ratio_inactive"])))
        ratio_recent = max(0.0, min(0.9, float(options["ratio_recent"])))

        if options.get("purge"):
            self._purge_existing()

        with transaction.atomic():
            donors = self._create_donors(options["donors"], faker, ratio_inactive, ratio_recent)
            request_count = self._create_requests(options["requests"], faker)

        self.stdout.write(
            self.style.SUCCESS(f"Seed complete: {len(donors)} donors, {request_count} pending requests.")
        )

    # ------------------------------------------------------------------
    def _purge_existing(self):
        self.stdout.write("Purging existing donors and requests…")
        blood_models.EmergencyRequest.objects.all().delete()
        donor_models.Donor.objects.all().delete()
        self.stdout.write(self.style.WARNING("Existing demo records removed."))

    def _random_group(self):
        groups = list(BLOOD_GROUP_WEIGHTS)
        return random.choices(groups, weights=[BLOOD_GROUP_WEIGHTS[g] for g in groups], k=1)[0]

    def _random_place(self):
        city = random.choice(list(LOCATIONS))
        return city, random.choice(LOCATIONS[city])

    def _create_donors(self, count, faker, ratio_inactive, ratio_recent):
        today = timezone.localdate()
        donors = []
        for _ in range(max(0, count)):
            city, area = self._random_place()
            roll = random.random()
            if roll < ratio_recent:
                last_donated = today - timedelta(days=random.randint(1, 89))
            elif roll < ratio_recent + 0.35:
                last_donated = today - timedelta(days=random.randint(90, 720))
            else:
                last_donated = None

            donor = donor_models.Donor(
                full_name=faker.name(),
                email=faker.unique.email(),
                phone=faker.unique.numerify("+8801#########"),
                gender=random.choice(["M", "F", "O"]),
                date_of_birth=faker.date_of_birth(minimum_age=18, maximum_age=60),
                bloodgroup=self._random_group().value,
                city=city,
                area=area,
                address=faker.street_address(),
                last_donated_at=last_donated,
                is_active=random.random() >= ratio_inactive,
            )
            # save() runs the signals that place donors on the map
            donor.save()
            donors.append(donor)
        return donors

    def _create_requests(self, count, faker):
        created = 0
        for _ in range(max(0, count)):
            city, area = self._random_place()
            blood_request = blood_models.EmergencyRequest(
                bloodgroup=self._random_group().value,
                units_required=random.randint(1, 4),
                urgency=random.choice(REQUEST_URGENCIES),
                patient_name=faker.name(),
                hospital_name=f"{faker.last_name()} General Hospital",
                contact_name=faker.name(),
                contact_phone=faker.numerify("+8801#########"),
                city=city,
                area=area,
            )
            workflow.ensure_request_coordinates(blood_request)
            blood_request.save()
            created += 1
        return created
