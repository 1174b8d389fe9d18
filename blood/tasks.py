import logging

from celery import shared_task
from geopy.exc import GeocoderServiceError, GeocoderTimedOut, GeocoderUnavailable

from blood import models
from blood.services.geocoding import resolve_location
from donor import models as donor_models


logger = logging.getLogger(__name__)

# Provider failures worth another attempt; "no match" is not one of them.
RETRYABLE_GEOCODER_ERRORS = (GeocoderTimedOut, GeocoderUnavailable, GeocoderServiceError, ConnectionError)


@shared_task(bind=True, autoretry_for=RETRYABLE_GEOCODER_ERRORS, retry_backoff=True, retry_kwargs={'max_retries': 3})
def resolve_donor_coordinates(self, donor_id: int) -> bool:
    donor = donor_models.Donor.objects.get(pk=donor_id)
    if donor.has_coordinates:
        return True

    result = resolve_location(donor.city, donor.area, allow_remote=True, raise_errors=True)
    if result is None:
        logger.info("Could not resolve coordinates for donor %s (%s)", donor_id, donor.location_query)
        return False

    donor.latitude = result.latitude
    donor.longitude = result.longitude
    donor.location_verified = False
    donor.save(update_fields=['latitude', 'longitude', 'location_verified', 'updated_at'])
    logger.info("Donor %s placed via %s", donor_id, result.provider)
    return True


@shared_task(bind=True, autoretry_for=RETRYABLE_GEOCODER_ERRORS, retry_backoff=True, retry_kwargs={'max_retries': 3})
def resolve_request_coordinates(self, request_id: int) -> bool:
    blood_request = models.EmergencyRequest.objects.get(pk=request_id)
    if blood_request.has_coordinates:
        return True

    result = resolve_location(blood_request.city, blood_request.area, allow_remote=True, raise_errors=True)
    if result is None:
        logger.info("Could not resolve coordinates for request %s (%s/%s)", request_id, blood_request.city, blood_request.area)
        return False

    models.EmergencyRequest.objects.filter(pk=request_id, latitude__isnull=True).update(
        latitude=result.latitude,
        longitude=result.longitude,
    )
    logger.info("Request %s placed via %s", request_id, result.provider)
    return True
