"""Location resolver: turns a city/area pair into coordinates.

Lookups go to the static fixtures first, then an in-process cache, and
only then (when allowed) to a remote Nominatim geocoder. The matching
core never calls this module; callers resolve coordinates before
matching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Dict, Optional, Tuple

from django.conf import settings
from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

LOGGER = logging.getLogger(__name__)

_DECIMAL_PLACES = Decimal("0.000001")


@dataclass(frozen=True)
class GeocodeResult:
	"""Container describing an address lookup outcome."""

	latitude: Decimal
	longitude: Decimal
	provider: str = "static"
	accuracy: Optional[str] = None
	raw: Optional[Dict] = None


class GeocoderUnavailable(RuntimeError):
	"""Raised when a remote geocoder backend cannot be used."""


def _quantize(value: float | Decimal) -> Decimal:
	return Decimal(str(value)).quantize(_DECIMAL_PLACES, rounding=ROUND_HALF_UP)


def _normalize_key(text: str) -> str:
	return ", ".join(part.strip() for part in text.lower().split(",") if part.strip())


def _fixture_table() -> Dict[str, Tuple[float, float]]:
	fixtures = getattr(settings, "GEOCODER_STATIC_FIXTURES", {}) or {}
	return {_normalize_key(key): value for key, value in fixtures.items() if isinstance(value, (tuple, list)) and len(value) == 2}


@lru_cache(maxsize=1)
def _get_fixtures() -> Dict[str, Tuple[float, float]]:
	return _fixture_table()


_GEOCODE_CACHE: Dict[str, GeocodeResult] = {}


def _get_rate_limited_geocode():
	user_agent = getattr(settings, "GEOCODER_USER_AGENT", "donorregistry-geocoder")
	timeout = getattr(settings, "GEOCODER_TIMEOUT", 10)
	min_delay = getattr(settings, "GEOCODER_MIN_DELAY_SECONDS", 1.0)

	if not user_agent:
		raise GeocoderUnavailable("GEOCODER_USER_AGENT must be set for remote lookups")

	geolocator = Nominatim(user_agent=user_agent, timeout=timeout)
	return RateLimiter(geolocator.geocode, min_delay_seconds=min_delay, swallow_exceptions=False)


@lru_cache(maxsize=1)
def _geocode_callable():
	return _get_rate_limited_geocode()


def clear_caches() -> None:
	"""Forget fixtures and cached lookups (settings changes, tests)."""

	_get_fixtures.cache_clear()
	_geocode_callable.cache_clear()
	_GEOCODE_CACHE.clear()


def location_query(city: Optional[str], area: Optional[str] = None) -> str:
	parts = [part.strip() for part in (area, city) if part and part.strip()]
	return ", ".join(parts)


def geocode_address(
	address: str,
	*,
	country_bias: Optional[str] = None,
	allow_remote: bool = True,
	raise_errors: bool = False,
) -> Optional[GeocodeResult]:
	"""Resolve a free-text place into coordinates.

	Parameters
	----------
	address:
		The textual place to geocode, e.g. ``"Mirpur, Dhaka"``.
	country_bias:
		Optional ISO country code hint forwarded to the provider.
	allow_remote:
		When False, only static fixtures and cached results are used (ideal for tests).
	raise_errors:
		Re-raise provider failures instead of treating them as "no result"
		(background tasks retry on them).
	"""

	if not address:
		return None

	normalized = address.strip()
	key = _normalize_key(normalized)
	if not key:
		return None

	# Static fixtures act as deterministic lookups for tests/demo content
	fixture = _get_fixtures().get(key)
	if fixture:
		result = GeocodeResult(
			latitude=_quantize(fixture[0]),
			longitude=_quantize(fixture[1]),
			provider="fixture",
			accuracy="exact",
		)
		_GEOCODE_CACHE[key] = result
		return result

	if key in _GEOCODE_CACHE:
		return _GEOCODE_CACHE[key]

	if not allow_remote:
		return None

	try:
		geocode_fn = _geocode_callable()
		location = geocode_fn(query=normalized, addressdetails=True, country_codes=country_bias)
	except GeocoderUnavailable as exc:
		LOGGER.warning("Geocoder unavailable: %s", exc)
		return None
	except GeopyError as exc:
		LOGGER.warning("Remote geocoding failed for '%s': %s", normalized, exc)
		if raise_errors:
			raise
		return None

	if not location:
		LOGGER.info("No geocoding result for '%s'", normalized)
		return None

	result = GeocodeResult(
		latitude=_quantize(location.latitude),
		longitude=_quantize(location.longitude),
		provider="nominatim",
		accuracy=str(location.raw.get('type')) if isinstance(location.raw, dict) else None,
		raw=location.raw if isinstance(location.raw, dict) else None,
	)
	_GEOCODE_CACHE[key] = result
	return result


def resolve_location(
	city: Optional[str],
	area: Optional[str] = None,
	*,
	allow_remote: Optional[bool] = None,
	raise_errors: bool = False,
) -> Optional[GeocodeResult]:
	"""Coordinates for a city/area pair, falling back to the city centre."""

	if allow_remote is None:
		allow_remote = getattr(settings, "GEOCODER_ALLOW_REMOTE", False)
	country_bias = getattr(settings, "GEOCODER_COUNTRY_BIAS", None)

	queries = [location_query(city, area)]
	if area and area.strip() and city and city.strip():
		queries.append(location_query(city))

	for query in queries:
		result = geocode_address(query, country_bias=country_bias, allow_remote=allow_remote, raise_errors=raise_errors)
		if result is not None:
			return result
	return None


__all__ = ["GeocodeResult", "GeocoderUnavailable", "clear_caches", "geocode_address", "location_query", "resolve_location"]
