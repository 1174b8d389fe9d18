from __future__ import annotations

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db.models import Q

from blood.services.geocoding import resolve_location
from donor.models import Donor


class Command(BaseCommand):
	help = "Populate donor latitude/longitude pairs from their city and area."

	def add_arguments(self, parser):
		parser.add_argument('--force', action='store_true', help='Re-geocode donors even if coordinates already exist.')
		parser.add_argument('--limit', type=int, help='Maximum number of donors to process this run.')
		parser.add_argument('--dry-run', action='store_true', help='Preview geocoding results without saving changes.')
		parser.add_argument('--include-inactive', action='store_true', help='Also geocode deactivated donors.')
		parser.add_argument('--fixtures-only', action='store_true', help='Skip remote lookups and only use the static location fixtures.')

	def handle(self, *args, **options):
		queryset = Donor.objects.all()
		if not options['force']:
			queryset = queryset.filter(Q(latitude__isnull=True) | Q(longitude__isnull=True))
		if not options['include_inactive']:
			queryset = queryset.filter(is_active=True)

		queryset = queryset.order_by('id')
		limit = options.get('limit')
		if limit:
			queryset = queryset[:limit]

		donors = list(queryset)
		total = len(donors)
		if not total:
			self.stdout.write(self.style.SUCCESS('No donors require geocoding.'))
			return

		allow_remote = getattr(settings, 'GEOCODER_ALLOW_REMOTE', False) and not options['fixtures_only']

		success_count = 0
		failures = []

		for donor in donors:
			result = resolve_location(donor.city, donor.area, allow_remote=allow_remote)
			if not result:
				failures.append(donor)
				self.stderr.write(f"Unable to geocode donor #{donor.id} ({donor.location_query or 'no location'})")
				continue

			if options['dry_run']:
				self.stdout.write(f"DRY-RUN #{donor.id} -> {result.latitude}, {result.longitude} [{result.provider}]")
				success_count += 1
				continue

			donor.latitude = result.latitude
			donor.longitude = result.longitude
			donor.location_verified = False
			donor.save(update_fields=['latitude', 'longitude', 'location_verified', 'updated_at'])
			success_count += 1
			self.stdout.write(f"Updated donor #{donor.id} coordinates via {result.provider}")

		self.stdout.write(self.style.SUCCESS(f"Geocoded {success_count} of {total} donors."))
		if failures:
			self.stdout.write(self.style.WARNING(f"{len(failures)} locations could not be resolved."))
