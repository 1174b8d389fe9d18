"""Immutable snapshots the matcher works on, and the shape it hands back."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, FrozenSet, Hashable, Iterator, Optional, Tuple

from .bloodgroups import BloodGroup


class Urgency(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {Urgency.CRITICAL: 0, Urgency.HIGH: 1, Urgency.MEDIUM: 2}


@dataclass(frozen=True)
class Location:
    city: str = ""
    area: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class DonorRecord:
    """The part of a donor the matcher reads. Contact fields are only projected."""

    id: Hashable
    blood_group: BloodGroup
    location: Location
    last_donation_date: Optional[date]
    is_active: bool
    name: str = ""
    phone: str = ""

    def __post_init__(self):
        object.__setattr__(self, "blood_group", BloodGroup.parse(self.blood_group))


@dataclass(frozen=True)
class EmergencyRequestInput:
    required_blood_group: Any
    location: Location
    units_required: int = 1
    urgency: Urgency = Urgency.MEDIUM


@dataclass(frozen=True)
class MatchedDonor:
    id: Hashable
    name: str
    blood_group: BloodGroup
    city: str
    area: str
    phone: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": str(self.id),
            "name": self.name,
            "bloodGroup": self.blood_group.value,
            "city": self.city,
            "area": self.area,
            "phone": self.phone,
        }
        if self.latitude is not None and self.longitude is not None:
            payload["latitude"] = self.latitude
            payload["longitude"] = self.longitude
        return payload


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one matching call. An empty result is not an error."""

    blood_group: BloodGroup
    eligible_groups: FrozenSet[BloodGroup]
    urgency: Urgency
    donors: Tuple[MatchedDonor, ...] = field(default_factory=tuple)
    candidates_considered: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.donors

    def __len__(self) -> int:
        return len(self.donors)

    def __iter__(self) -> Iterator[MatchedDonor]:
        return iter(self.donors)

    def to_list(self):
        return [donor.to_dict() for donor in self.donors]
