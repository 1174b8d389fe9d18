from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from blood.services.matching import BloodGroup, is_available, next_eligible_date


class Donor(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)

    full_name = models.CharField(max_length=120)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20)
    alternate_phone = models.CharField(max_length=20, blank=True)
    gender = models.CharField(
        max_length=1,
        choices=(('M', 'Male'), ('F', 'Female'), ('O', 'Other')),
        blank=True,
    )
    date_of_birth = models.DateField(null=True, blank=True)

    bloodgroup = models.CharField(max_length=3, choices=BloodGroup.choices(), db_index=True)

    city = models.CharField(max_length=80, db_index=True)
    area = models.CharField(max_length=80, blank=True)
    address = models.CharField(max_length=255, blank=True)
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
        help_text="Decimal latitude between -90 and 90"
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
        help_text="Decimal longitude between -180 and 180"
    )
    location_verified = models.BooleanField(default=False)

    # Donation recovery tracking
    last_donated_at = models.DateField(null=True, blank=True)

    # Soft delete; inactive donors never show up in matches
    is_active = models.BooleanField(default=True, db_index=True)
    deactivated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.full_name} ({self.bloodgroup})"

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def location_query(self) -> str:
        """Text handed to the location resolver ("area, city" or "city")."""
        parts = [part.strip() for part in (self.area, self.city) if part and part.strip()]
        return ", ".join(parts)

    @property
    def donation_recovery_days(self) -> int:
        return int(getattr(settings, "DONATION_RECOVERY_DAYS", 90))

    @property
    def next_eligible_donation_date(self):
        return next_eligible_date(self.last_donated_at, self.donation_recovery_days)

    def is_available_on(self, today=None) -> bool:
        today = today or timezone.localdate()
        return is_available(self.is_active, self.last_donated_at, today, self.donation_recovery_days)

    def record_donation(self, donated_on=None):
        """Store a donation; an older date than the one on file is ignored."""
        donated_on = donated_on or timezone.localdate()
        if self.last_donated_at is None or donated_on > self.last_donated_at:
            self.last_donated_at = donated_on
            self.save(update_fields=["last_donated_at", "updated_at"])
        return self.last_donated_at

    def deactivate(self):
        self.is_active = False
        self.deactivated_at = timezone.now()
        self.save(update_fields=["is_active", "deactivated_at", "updated_at"])

    def reactivate(self):
        self.is_active = True
        self.deactivated_at = None
        self.save(update_fields=["is_active", "deactivated_at", "updated_at"])
