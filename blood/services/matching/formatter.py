from __future__ import annotations

from typing import Iterable, List

from .records import DonorRecord, MatchedDonor


def to_matched_donor(donor: DonorRecord) -> MatchedDonor:
    location = donor.location
    return MatchedDonor(
        id=donor.id,
        name=donor.name,
        blood_group=donor.blood_group,
        city=location.city,
        area=location.area,
        phone=donor.phone,
        latitude=location.latitude if location.has_coordinates else None,
        longitude=location.longitude if location.has_coordinates else None,
    )


def format_matches(donors: Iterable[DonorRecord]) -> List[MatchedDonor]:
    """Project ranked donors 1:1 into ``MatchedDonor`` records, keeping order."""

    return [to_matched_donor(donor) for donor in donors]
