import logging

from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from blood.services.repository import donor_to_dict
from blood.views import BadRequest, json_error, read_json
from .forms import DonationForm, DonorProfileForm
from .models import Donor

logger = logging.getLogger(__name__)

# JSON field -> DonorProfileForm field
DONOR_FIELD_MAP = {
    'name': 'full_name',
    'email': 'email',
    'phone': 'phone',
    'alternatePhone': 'alternate_phone',
    'gender': 'gender',
    'dateOfBirth': 'date_of_birth',
    'bloodGroup': 'bloodgroup',
    'city': 'city',
    'area': 'area',
    'address': 'address',
    'latitude': 'latitude',
    'longitude': 'longitude',
    'lastDonationDate': 'last_donated_at',
}


def _form_data(payload):
    return {field: payload[key] for key, field in DONOR_FIELD_MAP.items() if key in payload}


def _profile(donor):
    """Public donor fields plus the private ones only the owner and admins see."""
    data = donor_to_dict(donor, timezone.localdate())
    data.update({
        'address': donor.address,
        'dateOfBirth': donor.date_of_birth.isoformat() if donor.date_of_birth else None,
        'locationVerified': donor.location_verified,
        'createdAt': donor.created_at.isoformat() if donor.created_at else None,
        'updatedAt': donor.updated_at.isoformat() if donor.updated_at else None,
    })
    return data


def _owned_donor(request, pk):
    """Return (donor, None) or (None, error response) for the requesting user."""
    if not request.user.is_authenticated:
        return None, json_error('Authentication required', status=401)
    donor = get_object_or_404(Donor, pk=pk, is_active=True)
    if not (request.user.is_superuser or donor.user_id == request.user.id):
        return None, json_error('Not allowed to manage this donor', status=403)
    return donor, None


@csrf_exempt
@require_http_methods(['POST'])
def register_donor_view(request):
    if not request.user.is_authenticated:
        return json_error('Authentication required', status=401)

    linked = not request.user.is_superuser
    if linked and Donor.objects.filter(user=request.user, is_active=True).exists():
        return json_error('Donor profile already exists')

    try:
        payload = read_json(request)
    except BadRequest as exc:
        return json_error(str(exc))

    form = DonorProfileForm(data=_form_data(payload))
    if not form.is_valid():
        if 'bloodgroup' in form.errors:
            return json_error('Invalid blood group', fields=form.errors.get_json_data())
        return json_error('Invalid donor', fields=form.errors.get_json_data())

    donor = form.save(commit=False)
    if linked:
        donor.user = request.user
    donor.save()
    logger.info("Donor %s registered (%s, %s)", donor.id, donor.bloodgroup, donor.city)
    return JsonResponse({'success': True, 'donor': _profile(donor)}, status=201)


@csrf_exempt
@require_http_methods(['GET', 'PUT', 'DELETE'])
def donor_detail_view(request, pk):
    donor, denied = _owned_donor(request, pk)
    if denied:
        return denied

    if request.method == 'GET':
        return JsonResponse({'donor': _profile(donor)})

    if request.method == 'DELETE':
        donor.deactivate()
        logger.info("Donor %s marked inactive by %s", donor.id, request.user)
        return JsonResponse({'success': True, 'message': 'Donor marked as inactive'})

    try:
        payload = read_json(request)
    except BadRequest as exc:
        return json_error(str(exc))

    # Partial update: unspecified fields keep their stored values.
    data = model_to_dict(donor, fields=DonorProfileForm.Meta.fields)
    data = {key: ('' if value is None else value) for key, value in data.items()}
    data.update(_form_data(payload))

    form = DonorProfileForm(data=data, instance=donor)
    if not form.is_valid():
        return json_error('Invalid donor', fields=form.errors.get_json_data())
    donor = form.save()
    return JsonResponse({'success': True, 'donor': _profile(donor)})


@csrf_exempt
@require_http_methods(['POST'])
def record_donation_view(request, pk):
    donor, denied = _owned_donor(request, pk)
    if denied:
        return denied

    try:
        form = DonationForm(data=read_json(request))
    except BadRequest as exc:
        return json_error(str(exc))
    if not form.is_valid():
        return json_error('Invalid donation', fields=form.errors.get_json_data())

    donor.record_donation(form.cleaned_data['donationDate'])
    profile = _profile(donor)
    logger.info("Donation recorded for donor %s on %s", donor.id, donor.last_donated_at)
    return JsonResponse({
        'success': True,
        'donor': profile,
        'isAvailable': profile['isAvailable'],
        'nextEligibleDate': profile['nextEligibleDate'],
    })
