"""Emergency-request donor matching.

Pure functions over in-memory snapshots: callers load donors, resolve
coordinates and pick the clock before calling in.
"""

from .availability import DONATION_RECOVERY_DAYS, days_since, is_available, next_eligible_date
from .bloodgroups import (
    ALL_GROUPS,
    COMPATIBLE_DONORS,
    BloodGroup,
    can_donate,
    compatible_donor_groups,
    compatible_receiver_groups,
)
from .exceptions import InvalidBloodGroup, InvalidLocation, MatchingError
from .formatter import format_matches, to_matched_donor
from .matcher import LOCALITIES, LOCALITY_AREA, LOCALITY_CITY, MatchOptions, match_donors_for_request, rank_donors
from .proximity import ProximityKey, ProximityTier, haversine_km, proximity_key
from .records import DonorRecord, EmergencyRequestInput, Location, MatchedDonor, MatchResult, Urgency

__all__ = [
    "ALL_GROUPS",
    "COMPATIBLE_DONORS",
    "DONATION_RECOVERY_DAYS",
    "LOCALITIES",
    "LOCALITY_AREA",
    "LOCALITY_CITY",
    "BloodGroup",
    "DonorRecord",
    "EmergencyRequestInput",
    "InvalidBloodGroup",
    "InvalidLocation",
    "Location",
    "MatchOptions",
    "MatchResult",
    "MatchedDonor",
    "MatchingError",
    "ProximityKey",
    "ProximityTier",
    "Urgency",
    "can_donate",
    "compatible_donor_groups",
    "compatible_receiver_groups",
    "days_since",
    "format_matches",
    "haversine_km",
    "is_available",
    "match_donors_for_request",
    "next_eligible_date",
    "proximity_key",
    "rank_donors",
    "to_matched_donor",
]
