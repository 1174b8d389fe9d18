"""Emergency request lifecycle.

Requests move ``pending -> approved | rejected`` and ``approved -> completed``.
Donor matching runs exactly once, on the pending -> approved transition; the
matched donors are persisted in rank order alongside the status change.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, FrozenSet, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import Case, IntegerField, Value, When
from django.utils import timezone

from blood.models import DonorMatch, EmergencyRequest, RequestStatus

from . import repository
from .geocoding import resolve_location
from .matching import (
    BloodGroup,
    EmergencyRequestInput,
    Location,
    MatchOptions,
    MatchResult,
    Urgency,
    compatible_donor_groups,
    match_donors_for_request,
)

logger = logging.getLogger(__name__)


TRANSITIONS: Dict[str, FrozenSet[str]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED}),
    RequestStatus.APPROVED: frozenset({RequestStatus.COMPLETED}),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.COMPLETED: frozenset(),
}


class InvalidTransition(Exception):
    """Raised when a request cannot move from its current status to the target one."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move request from '{current}' to '{target}'")


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def _check_transition(blood_request: EmergencyRequest, target: str) -> None:
    if not can_transition(blood_request.status, target):
        raise InvalidTransition(blood_request.status, target)


def matching_options(*, limit: Optional[int] = None, today: Optional[date] = None, locality: Optional[str] = None) -> MatchOptions:
    """Build matcher options from settings plus per-call overrides."""

    if limit is None:
        limit = getattr(settings, "DONOR_MATCH_LIMIT", None)
    return MatchOptions(
        limit=limit,
        today=today or timezone.localdate(),
        recovery_days=int(getattr(settings, "DONATION_RECOVERY_DAYS", 90)),
        locality=locality,
    )


def run_matching(
    request_input: EmergencyRequestInput,
    *,
    limit: Optional[int] = None,
    today: Optional[date] = None,
    locality: Optional[str] = None,
) -> MatchResult:
    """Load candidates for the request's eligible groups and hand them to the matcher."""

    options = matching_options(limit=limit, today=today, locality=locality)
    eligible = compatible_donor_groups(request_input.required_blood_group)
    candidates = repository.find_candidates(eligible)
    return match_donors_for_request(request_input, candidates, options)


def search_matches(
    blood_group: str,
    city: str = "",
    area: str = "",
    *,
    urgency: str = Urgency.MEDIUM.value,
    limit: Optional[int] = None,
    today: Optional[date] = None,
    locality: Optional[str] = None,
) -> MatchResult:
    """Ad-hoc matching for a blood group and place, without storing anything."""

    geo = resolve_location(city, area, allow_remote=False) if (city or "").strip() else None
    request_input = EmergencyRequestInput(
        required_blood_group=blood_group,
        location=Location(
            city=city or "",
            area=area or "",
            latitude=float(geo.latitude) if geo else None,
            longitude=float(geo.longitude) if geo else None,
        ),
        urgency=Urgency(urgency),
    )
    return run_matching(request_input, limit=limit, today=today, locality=locality)


def ensure_request_coordinates(blood_request: EmergencyRequest) -> bool:
    """Fill request coordinates from the static fixtures. Returns True if set."""

    if blood_request.has_coordinates:
        return True
    result = resolve_location(blood_request.city, blood_request.area, allow_remote=False)
    if result is None:
        return False
    blood_request.latitude = result.latitude
    blood_request.longitude = result.longitude
    return True


def create_request(data: dict, *, today: Optional[date] = None) -> Tuple[EmergencyRequest, MatchResult]:
    """Store a pending request and return it with a matching preview.

    The preview is informational; approval re-runs matching against the
    donor population at that time.
    """

    data = {**data, "bloodgroup": BloodGroup.parse(data.get("bloodgroup")).value}
    blood_request = EmergencyRequest(status=RequestStatus.PENDING, **data)
    located = ensure_request_coordinates(blood_request)
    blood_request.save()

    if not located and getattr(settings, "GEOCODER_ALLOW_REMOTE", False):
        from blood.tasks import resolve_request_coordinates

        request_id = blood_request.pk
        transaction.on_commit(lambda: resolve_request_coordinates.delay(request_id))

    preview = run_matching(blood_request.to_matching_input(), today=today)
    logger.info(
        "Emergency request %s created (%s, %s/%s, %s); %d donors currently match",
        blood_request.id,
        blood_request.bloodgroup,
        blood_request.city,
        blood_request.area,
        blood_request.urgency,
        len(preview),
    )
    return blood_request, preview


def _locked(blood_request: EmergencyRequest) -> EmergencyRequest:
    return EmergencyRequest.objects.select_for_update().get(pk=blood_request.pk)


@transaction.atomic
def approve_request(
    blood_request: EmergencyRequest,
    *,
    approved_by=None,
    today: Optional[date] = None,
    limit: Optional[int] = None,
    locality: Optional[str] = None,
) -> MatchResult:
    """Approve a pending request and persist its matched donors."""

    locked = _locked(blood_request)
    _check_transition(locked, RequestStatus.APPROVED)

    result = run_matching(locked.to_matching_input(), limit=limit, today=today, locality=locality)

    DonorMatch.objects.bulk_create(
        DonorMatch(request=locked, donor_id=matched.id, rank=rank)
        for rank, matched in enumerate(result.donors, start=1)
    )
    locked.status = RequestStatus.APPROVED
    locked.approved_at = timezone.now()
    locked.approved_by = approved_by
    locked.matched_count = len(result)
    locked.save(update_fields=["status", "approved_at", "approved_by", "matched_count", "updated_at"])

    if result.is_empty:
        logger.warning("Request %s approved with no compatible donors available (%s)", locked.id, locked.bloodgroup)
    else:
        logger.info("Request %s approved; %d donors matched", locked.id, len(result))

    _refresh(blood_request, locked)
    return result


@transaction.atomic
def reject_request(blood_request: EmergencyRequest, reason: str = "") -> EmergencyRequest:
    locked = _locked(blood_request)
    _check_transition(locked, RequestStatus.REJECTED)
    locked.status = RequestStatus.REJECTED
    locked.rejection_reason = (reason or "").strip()[:500]
    locked.save(update_fields=["status", "rejection_reason", "updated_at"])
    logger.info("Request %s rejected: %s", locked.id, locked.rejection_reason or "no reason given")
    _refresh(blood_request, locked)
    return blood_request


@transaction.atomic
def complete_request(blood_request: EmergencyRequest) -> EmergencyRequest:
    locked = _locked(blood_request)
    _check_transition(locked, RequestStatus.COMPLETED)
    locked.status = RequestStatus.COMPLETED
    locked.completed_at = timezone.now()
    locked.save(update_fields=["status", "completed_at", "updated_at"])
    logger.info("Request %s completed", locked.id)
    _refresh(blood_request, locked)
    return blood_request


def _refresh(target: EmergencyRequest, source: EmergencyRequest) -> None:
    if target is not source:
        target.refresh_from_db()


def matched_donors_for(blood_request: EmergencyRequest):
    """Persisted matches of an approved request, in rank order."""

    return [match.donor for match in blood_request.matches.select_related("donor").order_by("rank")]


def request_queue(status: Optional[str] = None):
    """Requests for the admin queue: critical first, then high, medium; oldest first within urgency."""

    urgency_order = Case(
        *[When(urgency=urgency.value, then=Value(urgency.rank)) for urgency in Urgency],
        default=Value(len(Urgency)),
        output_field=IntegerField(),
    )
    queryset = EmergencyRequest.objects.annotate(urgency_order=urgency_order)
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by("urgency_order", "created_at", "id")
