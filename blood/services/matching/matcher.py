"""Select compatible, available donors for a request and rank them by proximity.

The pipeline is filter (compatibility) -> filter (availability) ->
score (proximity) -> sort -> truncate -> project. It reads its inputs and
returns a new ``MatchResult``; nothing is logged, stored or fetched here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Hashable, Iterable, List, Optional, Tuple, Union

from .availability import DONATION_RECOVERY_DAYS, is_available
from .bloodgroups import BloodGroup, compatible_donor_groups
from .exceptions import InvalidLocation
from .formatter import format_matches
from .proximity import ProximityKey, ProximityTier, proximity_key
from .records import DonorRecord, EmergencyRequestInput, MatchResult, Urgency

LOCALITY_CITY = "city"
LOCALITY_AREA = "area"
LOCALITIES = (LOCALITY_CITY, LOCALITY_AREA)


@dataclass(frozen=True)
class MatchOptions:
    limit: Optional[int] = None
    today: Optional[Union[date, datetime]] = None
    recovery_days: int = DONATION_RECOVERY_DAYS
    locality: Optional[str] = None

    def __post_init__(self):
        if self.limit is not None and (isinstance(self.limit, bool) or int(self.limit) < 1):
            raise ValueError(f"limit must be a positive integer or None, got {self.limit!r}")
        if self.recovery_days < 0:
            raise ValueError("recovery_days cannot be negative")
        if self.locality is not None and self.locality not in LOCALITIES:
            raise ValueError(f"locality must be one of {LOCALITIES} or None, got {self.locality!r}")


def _id_sort_key(donor_id: Hashable) -> Tuple[int, int, str]:
    if isinstance(donor_id, int) and not isinstance(donor_id, bool):
        return (0, donor_id, "")
    return (1, 0, str(donor_id))


def _check_locality(request: EmergencyRequestInput, locality: Optional[str]) -> None:
    if locality is None:
        return
    if not (request.location.city or "").strip():
        raise InvalidLocation("Request city is required for locality matching", field="city")
    if locality == LOCALITY_AREA and not (request.location.area or "").strip():
        raise InvalidLocation("Request area is required for area matching", field="area")


def _within_locality(key: ProximityKey, locality: Optional[str]) -> bool:
    if locality == LOCALITY_AREA:
        return key.tier == ProximityTier.SAME_AREA
    if locality == LOCALITY_CITY:
        return key.tier <= ProximityTier.SAME_CITY
    return True


def rank_donors(
    request: EmergencyRequestInput,
    candidates: Iterable[DonorRecord],
    options: MatchOptions,
    today: date,
) -> List[Tuple[ProximityKey, DonorRecord]]:
    """Filter and order ``candidates``; each entry keeps its proximity key."""

    eligible_groups = compatible_donor_groups(request.required_blood_group)
    seen = set()
    ranked: List[Tuple[ProximityKey, DonorRecord]] = []

    for donor in candidates:
        if donor.id in seen:
            continue
        seen.add(donor.id)

        if donor.blood_group not in eligible_groups:
            continue
        if not is_available(donor.is_active, donor.last_donation_date, today, options.recovery_days):
            continue

        key = proximity_key(request.location, donor.location)
        if not _within_locality(key, options.locality):
            continue
        ranked.append((key, donor))

    ranked.sort(key=lambda item: (item[0].sort_value(), _id_sort_key(item[1].id)))
    if options.limit is not None:
        ranked = ranked[: int(options.limit)]
    return ranked


def match_donors_for_request(
    request: EmergencyRequestInput,
    candidates: Iterable[DonorRecord],
    options: Optional[MatchOptions] = None,
) -> MatchResult:
    """Return the ranked compatible, available donors for ``request``.

    Raises ``InvalidBloodGroup`` for an unknown request group and
    ``InvalidLocation`` when locality matching lacks a city/area. Zero
    matches come back as an empty ``MatchResult``.
    """

    options = options or MatchOptions()
    blood_group = BloodGroup.parse(request.required_blood_group)
    _check_locality(request, options.locality)

    today = options.today if options.today is not None else datetime.now(timezone.utc).date()
    if isinstance(today, datetime):
        today = today.date()

    candidates = tuple(candidates)
    ranked = rank_donors(request, candidates, options, today)

    return MatchResult(
        blood_group=blood_group,
        eligible_groups=compatible_donor_groups(blood_group),
        urgency=Urgency(request.urgency),
        donors=tuple(format_matches(donor for _, donor in ranked)),
        candidates_considered=len(candidates),
    )
