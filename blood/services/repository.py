"""Donor repository: loads donor rows and hands the matcher immutable snapshots."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.utils import timezone

from donor.models import Donor

from .matching import BloodGroup, DonorRecord, InvalidBloodGroup, Location, is_available

logger = logging.getLogger(__name__)


def _coordinate(value) -> Optional[float]:
    return float(value) if value is not None else None


def donor_to_record(donor: Donor) -> DonorRecord:
    return DonorRecord(
        id=donor.id,
        blood_group=donor.bloodgroup,
        location=Location(
            city=donor.city or "",
            area=donor.area or "",
            latitude=_coordinate(donor.latitude),
            longitude=_coordinate(donor.longitude),
        ),
        last_donation_date=donor.last_donated_at,
        is_active=donor.is_active,
        name=donor.full_name,
        phone=donor.phone,
    )


def _to_records(donors: Iterable[Donor]) -> List[DonorRecord]:
    records: List[DonorRecord] = []
    for donor in donors:
        try:
            records.append(donor_to_record(donor))
        except InvalidBloodGroup:
            logger.warning("Skipping donor %s with unrecognised blood group %r", donor.id, donor.bloodgroup)
    return records


def find_candidates(blood_groups: Optional[Iterable[Any]] = None, *, city: Optional[str] = None) -> List[DonorRecord]:
    """Snapshot of active donors, optionally narrowed to ``blood_groups`` and ``city``."""

    queryset = Donor.objects.filter(is_active=True)
    if blood_groups is not None:
        queryset = queryset.filter(bloodgroup__in=sorted(BloodGroup.parse(group).value for group in blood_groups))
    if city:
        queryset = queryset.filter(city__iexact=city.strip())

    records = _to_records(queryset.order_by("id"))
    logger.debug("Loaded %d candidate donors (groups=%s, city=%s)", len(records), blood_groups, city)
    return records


def donor_to_dict(donor: Donor, today: date) -> Dict[str, Any]:
    recovery_days = int(getattr(settings, "DONATION_RECOVERY_DAYS", 90))
    next_eligible = donor.next_eligible_donation_date
    return {
        "id": str(donor.id),
        "name": donor.full_name,
        "email": donor.email,
        "phone": donor.phone,
        "alternatePhone": donor.alternate_phone,
        "gender": donor.get_gender_display() if donor.gender else "",
        "bloodGroup": donor.bloodgroup,
        "city": donor.city,
        "area": donor.area,
        "latitude": _coordinate(donor.latitude),
        "longitude": _coordinate(donor.longitude),
        "lastDonationDate": donor.last_donated_at.isoformat() if donor.last_donated_at else None,
        "isAvailable": is_available(donor.is_active, donor.last_donated_at, today, recovery_days),
        "nextEligibleDate": next_eligible.isoformat() if next_eligible else None,
        "isDeleted": not donor.is_active,
    }


def search_donors(
    *,
    blood_group: Optional[str] = None,
    city: Optional[str] = None,
    area: Optional[str] = None,
    available: Optional[bool] = None,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Registry search over active donors: exact group, partial city/area, optional availability."""

    today = today or timezone.localdate()
    queryset = Donor.objects.filter(is_active=True)
    if blood_group:
        queryset = queryset.filter(bloodgroup=BloodGroup.parse(blood_group).value)
    if city:
        queryset = queryset.filter(city__icontains=city.strip())
    if area:
        queryset = queryset.filter(area__icontains=area.strip())

    donors = [donor_to_dict(donor, today) for donor in queryset.order_by("id")]
    if available is not None:
        donors = [donor for donor in donors if donor["isAvailable"] is available]
    return donors
