from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models

from donor import models as dmodels

from .services.matching import BloodGroup, EmergencyRequestInput, Location, Urgency


class RequestStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'
    COMPLETED = 'completed', 'Completed'


class RequestUrgency(models.TextChoices):
    CRITICAL = Urgency.CRITICAL.value, 'Critical'
    HIGH = Urgency.HIGH.value, 'High'
    MEDIUM = Urgency.MEDIUM.value, 'Medium'


class EmergencyRequest(models.Model):
    bloodgroup = models.CharField(max_length=3, choices=BloodGroup.choices())
    units_required = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1), MaxValueValidator(100)])
    urgency = models.CharField(max_length=10, choices=RequestUrgency.choices, default=RequestUrgency.MEDIUM)

    patient_name = models.CharField(max_length=120, blank=True)
    hospital_name = models.CharField(max_length=160)
    contact_name = models.CharField(max_length=120, blank=True)
    contact_phone = models.CharField(max_length=20)
    notes = models.TextField(blank=True)
    required_by = models.DateField(null=True, blank=True)

    city = models.CharField(max_length=80)
    area = models.CharField(max_length=80, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    status = models.CharField(max_length=10, choices=RequestStatus.choices, default=RequestStatus.PENDING, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='approved_emergency_requests')
    rejection_reason = models.CharField(max_length=500, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    matched_count = models.PositiveIntegerField(default=0)

    donors = models.ManyToManyField(dmodels.Donor, through='DonorMatch', related_name='matched_requests', blank=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.hospital_name} - {self.bloodgroup} ({self.status})"

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_matching_input(self) -> EmergencyRequestInput:
        return EmergencyRequestInput(
            required_blood_group=self.bloodgroup,
            location=Location(
                city=self.city or "",
                area=self.area or "",
                latitude=float(self.latitude) if self.latitude is not None else None,
                longitude=float(self.longitude) if self.longitude is not None else None,
            ),
            units_required=self.units_required,
            urgency=Urgency(self.urgency),
        )

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'bloodGroup': self.bloodgroup,
            'unitsRequired': self.units_required,
            'urgency': self.urgency,
            'patientName': self.patient_name,
            'hospitalName': self.hospital_name,
            'contactName': self.contact_name,
            'contactPhone': self.contact_phone,
            'city': self.city,
            'area': self.area,
            'notes': self.notes,
            'requiredBy': self.required_by.isoformat() if self.required_by else None,
            'status': self.status,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'approvedAt': self.approved_at.isoformat() if self.approved_at else None,
            'rejectionReason': self.rejection_reason or None,
            'matchedCount': self.matched_count,
        }


class DonorMatch(models.Model):
    """A donor matched to a request at approval time, in rank order."""

    request = models.ForeignKey(EmergencyRequest, on_delete=models.CASCADE, related_name='matches')
    donor = models.ForeignKey(dmodels.Donor, on_delete=models.CASCADE, related_name='matches')
    rank = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['request', 'rank']
        constraints = [
            models.UniqueConstraint(fields=['request', 'donor'], name='unique_donor_per_request'),
        ]

    def __str__(self):
        return f"#{self.rank} {self.donor} for request {self.request_id}"
