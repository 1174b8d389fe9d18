"""Blood groups and the transfusion compatibility table.

The table is keyed by receiver group; each entry lists the donor groups
that may supply that receiver. It is the only place compatibility is
defined, and it is never mutated at runtime.
"""

from __future__ import annotations

import re
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping

from .exceptions import InvalidBloodGroup

_TOKEN_RE = re.compile(r"^(A|B|AB|O)([+-])$")


class BloodGroup(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, token: object) -> "BloodGroup":
        """Return the group for ``token`` (case and surrounding space ignored)."""

        if isinstance(token, cls):
            return token
        if not isinstance(token, str):
            raise InvalidBloodGroup(token)
        normalized = token.strip().upper()
        if not _TOKEN_RE.match(normalized):
            raise InvalidBloodGroup(token)
        return cls(normalized)

    @classmethod
    def choices(cls):
        return [(group.value, group.value) for group in cls]


ALL_GROUPS: FrozenSet[BloodGroup] = frozenset(BloodGroup)

_A_POS, _A_NEG = BloodGroup.A_POS, BloodGroup.A_NEG
_B_POS, _B_NEG = BloodGroup.B_POS, BloodGroup.B_NEG
_AB_POS, _AB_NEG = BloodGroup.AB_POS, BloodGroup.AB_NEG
_O_POS, _O_NEG = BloodGroup.O_POS, BloodGroup.O_NEG

# receiver -> donors
COMPATIBLE_DONORS: Mapping[BloodGroup, FrozenSet[BloodGroup]] = MappingProxyType({
    _O_NEG: frozenset({_O_NEG}),
    _O_POS: frozenset({_O_NEG, _O_POS}),
    _A_NEG: frozenset({_O_NEG, _A_NEG}),
    _A_POS: frozenset({_O_NEG, _O_POS, _A_NEG, _A_POS}),
    _B_NEG: frozenset({_O_NEG, _B_NEG}),
    _B_POS: frozenset({_O_NEG, _O_POS, _B_NEG, _B_POS}),
    _AB_NEG: frozenset({_O_NEG, _A_NEG, _B_NEG, _AB_NEG}),
    _AB_POS: ALL_GROUPS,  # Universal recipient
})


def compatible_donor_groups(receiver: object) -> FrozenSet[BloodGroup]:
    """Donor groups that may supply ``receiver``.

    Raises ``InvalidBloodGroup`` for unknown tokens.
    """

    return COMPATIBLE_DONORS[BloodGroup.parse(receiver)]


def compatible_receiver_groups(donor: object) -> FrozenSet[BloodGroup]:
    """Receiver groups that ``donor`` may supply (the inverse view of the table)."""

    group = BloodGroup.parse(donor)
    return frozenset(receiver for receiver, donors in COMPATIBLE_DONORS.items() if group in donors)


def can_donate(donor: object, receiver: object) -> bool:
    return BloodGroup.parse(donor) in compatible_donor_groups(receiver)
