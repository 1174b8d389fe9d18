import json
import logging

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods
import redis

from . import forms, models
from .services import repository, statistics, workflow
from .services.matching import BloodGroup, InvalidBloodGroup, InvalidLocation, MatchingError, compatible_receiver_groups

logger = logging.getLogger(__name__)

# JSON field -> EmergencyRequestForm field
REQUEST_FIELD_MAP = {
    'bloodGroup': 'bloodgroup',
    'unitsRequired': 'units_required',
    'urgency': 'urgency',
    'patientName': 'patient_name',
    'hospitalName': 'hospital_name',
    'contactName': 'contact_name',
    'contactPhone': 'contact_phone',
    'notes': 'notes',
    'requiredBy': 'required_by',
    'city': 'city',
    'area': 'area',
}


class BadRequest(Exception):
    pass


def read_json(request) -> dict:
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise BadRequest('Request body must be valid JSON.')
    if not isinstance(payload, dict):
        raise BadRequest('Request body must be a JSON object.')
    return payload


def json_error(message, status=400, **extra):
    return JsonResponse({'error': message, **extra}, status=status)


def _matching_error(exc: MatchingError):
    if isinstance(exc, InvalidBloodGroup):
        return json_error('Invalid blood group')
    if isinstance(exc, InvalidLocation):
        return json_error(str(exc), field=exc.field)
    return json_error(str(exc))


def _superuser_required(request):
    if not request.user.is_authenticated or not request.user.is_superuser:
        return json_error('Admin access required', status=403)
    return None


@csrf_exempt
@require_http_methods(['POST'])
def create_request_view(request):
    try:
        payload = read_json(request)
    except BadRequest as exc:
        return json_error(str(exc))

    data = {field: payload[key] for key, field in REQUEST_FIELD_MAP.items() if key in payload}
    data.setdefault('urgency', models.RequestUrgency.MEDIUM.value)
    data.setdefault('units_required', 1)
    try:
        data['bloodgroup'] = BloodGroup.parse(data.get('bloodgroup')).value
    except InvalidBloodGroup:
        return json_error('Invalid blood group')

    form = forms.EmergencyRequestForm(data=data)
    if not form.is_valid():
        return json_error('Invalid request', fields=form.errors.get_json_data())

    try:
        blood_request, preview = workflow.create_request(form.cleaned_data)
    except MatchingError as exc:
        return _matching_error(exc)

    return JsonResponse(
        {'success': True, 'request': blood_request.to_dict(), 'matchedDonors': preview.to_list()},
        status=201,
    )


@require_GET
def active_requests_view(request):
    queryset = workflow.request_queue().filter(
        status__in=[models.RequestStatus.PENDING, models.RequestStatus.APPROVED]
    )
    return JsonResponse({'requests': [item.to_dict() for item in queryset]})


@require_GET
def donor_search_view(request):
    form = forms.DonorSearchForm(data=request.GET)
    if not form.is_valid():
        return json_error('Invalid search', fields=form.errors.get_json_data())

    try:
        donors = repository.search_donors(
            blood_group=form.cleaned_data.get('bloodGroup') or None,
            city=form.cleaned_data.get('city') or None,
            area=form.cleaned_data.get('area') or None,
            available=form.cleaned_data.get('available'),
        )
    except InvalidBloodGroup:
        return json_error('Invalid blood group')
    return JsonResponse({'donors': donors})


@require_GET
def donor_match_view(request):
    form = forms.MatchSearchForm(data=request.GET)
    if not form.is_valid():
        return json_error('Invalid search', fields=form.errors.get_json_data())

    cleaned = form.cleaned_data
    try:
        result = workflow.search_matches(
            cleaned['bloodGroup'],
            cleaned.get('city') or '',
            cleaned.get('area') or '',
            urgency=cleaned['urgency'],
            limit=cleaned.get('limit'),
            locality=cleaned.get('locality'),
        )
    except MatchingError as exc:
        return _matching_error(exc)

    return JsonResponse({
        'bloodGroup': result.blood_group.value,
        'compatibleGroups': sorted(group.value for group in result.eligible_groups),
        'canDonateTo': sorted(group.value for group in compatible_receiver_groups(result.blood_group)),
        'matchedDonors': result.to_list(),
        'matchedCount': len(result),
    })


@require_GET
def admin_request_list_view(request):
    denied = _superuser_required(request)
    if denied:
        return denied

    status = request.GET.get('status') or 'all'
    if status != 'all' and status not in models.RequestStatus.values:
        return json_error('Unknown status filter')
    queryset = workflow.request_queue(None if status == 'all' else status)
    return JsonResponse({'requests': [item.to_dict() for item in queryset]})


@csrf_exempt
@require_http_methods(['POST', 'PUT'])
def admin_approve_request_view(request, pk):
    denied = _superuser_required(request)
    if denied:
        return denied

    blood_request = get_object_or_404(models.EmergencyRequest, pk=pk)
    try:
        result = workflow.approve_request(blood_request, approved_by=request.user)
    except workflow.InvalidTransition as exc:
        return json_error(str(exc), status=409)
    except MatchingError as exc:
        return _matching_error(exc)

    return JsonResponse({
        'success': True,
        'request': blood_request.to_dict(),
        'matchedDonors': result.to_list(),
        'matchedCount': len(result),
    })


@csrf_exempt
@require_http_methods(['POST', 'PUT'])
def admin_reject_request_view(request, pk):
    denied = _superuser_required(request)
    if denied:
        return denied

    try:
        form = forms.RejectRequestForm(data=read_json(request))
    except BadRequest as exc:
        return json_error(str(exc))
    if not form.is_valid():
        return json_error('Invalid request', fields=form.errors.get_json_data())

    blood_request = get_object_or_404(models.EmergencyRequest, pk=pk)
    try:
        workflow.reject_request(blood_request, form.cleaned_data.get('reason') or '')
    except workflow.InvalidTransition as exc:
        return json_error(str(exc), status=409)
    return JsonResponse({'success': True, 'request': blood_request.to_dict()})


@csrf_exempt
@require_http_methods(['POST', 'PUT'])
def admin_complete_request_view(request, pk):
    denied = _superuser_required(request)
    if denied:
        return denied

    blood_request = get_object_or_404(models.EmergencyRequest, pk=pk)
    try:
        workflow.complete_request(blood_request)
    except workflow.InvalidTransition as exc:
        return json_error(str(exc), status=409)
    return JsonResponse({'success': True, 'request': blood_request.to_dict()})


@require_GET
def statistics_view(request):
    return JsonResponse(statistics.donor_statistics())


def _broker_status() -> dict:
    eager = bool(getattr(settings, 'CELERY_TASK_ALWAYS_EAGER', False))
    broker_url = str(getattr(settings, 'CELERY_BROKER_URL', '') or '')
    status = {'eager': eager, 'ok': None, 'error': ''}

    if eager:
        status['ok'] = True
        return status

    if not (broker_url.startswith('redis://') or broker_url.startswith('rediss://')):
        return status

    cache_key = 'health:celery_broker:v1'
    cached = cache.get(cache_key)
    if isinstance(cached, dict):
        status['ok'] = cached.get('ok')
        status['error'] = cached.get('error') or ''
        return status

    try:
        client = redis.Redis.from_url(
            broker_url,
            socket_connect_timeout=0.25,
            socket_timeout=0.25,
            retry_on_timeout=False,
        )
        client.ping()
        status['ok'] = True
    except redis.RedisError as exc:
        status['ok'] = False
        status['error'] = str(exc)
        logger.warning('Celery broker health check failed: %s', exc)

    cache.set(cache_key, {'ok': status['ok'], 'error': status['error']}, timeout=30)
    return status


@require_GET
def health_view(request):
    database = {'ok': True, 'error': ''}
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError as exc:
        database = {'ok': False, 'error': str(exc)}
        logger.error('Database health check failed: %s', exc)

    broker = _broker_status()
    healthy = database['ok'] and broker['ok'] is not False
    return JsonResponse(
        {'status': 'healthy' if healthy else 'unhealthy', 'database': database, 'broker': broker},
        status=200 if healthy else 503,
    )
