from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from blood.services.geocoding import resolve_location
from .models import Donor

LOGGER = logging.getLogger(__name__)


def _place_key(city, area):
	return ((city or "").strip().casefold(), (area or "").strip().casefold())


def _clear_stale_coordinates(instance: Donor) -> None:
	"""Drop coordinates resolved for a previous city/area unless the donor pinned them."""

	if instance.pk is None or instance.location_verified:
		return
	previous = (
		Donor.objects.filter(pk=instance.pk)
		.values("city", "area", "latitude", "longitude")
		.first()
	)
	if previous is None:
		return
	if _place_key(previous["city"], previous["area"]) == _place_key(instance.city, instance.area):
		return
	# New coordinates sent along with the move count as a fresh pin.
	if (instance.latitude, instance.longitude) != (previous["latitude"], previous["longitude"]):
		return

	instance.latitude = None
	instance.longitude = None
	LOGGER.debug("Cleared coordinates of donor %s after a location change", instance.pk)


@receiver(pre_save, sender=Donor)
def populate_coordinates_from_location(sender, instance: Donor, **kwargs):
	"""Fill latitude/longitude from the static fixtures when city/area exist but coords are blank."""

	if not kwargs.get("raw"):
		_clear_stale_coordinates(instance)

	if not instance.location_query:
		return

	# Only geocode when either coordinate is absent to avoid overriding manual pins
	if instance.has_coordinates:
		return

	result = resolve_location(instance.city, instance.area, allow_remote=False)
	if not result:
		LOGGER.debug("No static coordinates for donor location '%s'", instance.location_query)
		return

	instance.latitude = result.latitude
	instance.longitude = result.longitude
	instance.location_verified = False
	LOGGER.debug("Assigned coordinates (%s, %s) to donor %s", result.latitude, result.longitude, instance)


@receiver(post_save, sender=Donor)
def queue_remote_geocoding(sender, instance: Donor, created: bool, raw: bool = False, **kwargs):
	"""Queue a remote lookup for donors the fixtures could not place."""

	if raw or instance.has_coordinates or not instance.location_query:
		return
	if not getattr(settings, "GEOCODER_ALLOW_REMOTE", False):
		return

	from blood.tasks import resolve_donor_coordinates

	donor_id = instance.pk
	transaction.on_commit(lambda: resolve_donor_coordinates.delay(donor_id))
