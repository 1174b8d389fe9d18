from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Any, Dict, Optional

from django.conf import settings
from django.utils import timezone

from donor.models import Donor

from .matching import BloodGroup, is_available


def donor_statistics(today: Optional[date] = None) -> Dict[str, Any]:
    """Registry totals; availability uses the same recovery rule as matching."""

    today = today or timezone.localdate()
    recovery_days = int(getattr(settings, "DONATION_RECOVERY_DAYS", 90))

    rows = list(Donor.objects.values_list("bloodgroup", "city", "is_active", "last_donated_at"))
    active = [row for row in rows if row[2]]
    available = sum(1 for _, _, is_active, last in active if is_available(is_active, last, today, recovery_days))

    by_group = Counter(group for group, _, _, _ in active)
    by_city = Counter((city or "").strip() or "Unknown" for _, city, _, _ in active)

    return {
        "totalDonors": len(active),
        "activeDonors": len(active),
        "inactiveDonors": len(rows) - len(active),
        "availableDonors": available,
        "unavailableDonors": len(active) - available,
        "byBloodGroup": {group.value: by_group.get(group.value, 0) for group in BloodGroup},
        "byCity": dict(sorted(by_city.items())),
    }
