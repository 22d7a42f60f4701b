import logging
from decimal import Decimal, InvalidOperation

from django.db.models import Count, Q, Sum
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import company_required, manager_required, same_company_required
from apps.accounts.models import User
from apps.core.errors import error_response, exception_response, money, parse_json_body
from .analysis import AnalysisError, analyze_lead
from .bulk_import import BulkImportError, import_leads
from .models import Lead, LeadObservation, LeadValue

logger = logging.getLogger(__name__)


def _visible_leads(user):
    """Managers see the whole company, sellers only their own leads"""
    leads = Lead.objects.filter(company=user.company)
    if not user.is_manager():
        leads = leads.filter(assigned_to=user)
    return leads


def _get_visible_lead(request, pk):
    return _visible_leads(request.user).select_related('assigned_to').filter(pk=pk).first()


@company_required
@require_http_methods(["GET"])
def kanban_view(request):
    try:
        leads = _visible_leads(request.user).select_related('assigned_to').prefetch_related('tags')

        search = request.GET.get('search', '').strip()
        if search:
            leads = leads.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=Lead.normalize_phone(search) or search) |
                Q(company_name__icontains=search)
            )

        assigned_to = request.GET.get('assigned_to')
        if assigned_to and request.user.is_manager():
            leads = leads.filter(assigned_to_id=assigned_to)

        columns = {status: {'status': status, 'label': label, 'leads': [], 'count': 0, 'total_value': Decimal('0')}
                   for status, label in Lead.STATUS_CHOICES}

        for lead in leads.order_by('-updated_at'):
            column = columns[lead.status]
            column['leads'].append(lead.to_dict())
            column['count'] += 1
            column['total_value'] += lead.estimated_value or Decimal('0')

        data = []
        for column in columns.values():
            column['total_value'] = money(column['total_value'])
            data.append(column)

        return JsonResponse({'status': 'success', 'data': data})

    except Exception as e:
        return exception_response(e, 'kanban_view')


@company_required
@same_company_required(Lead)
@require_http_methods(["GET"])
def lead_detail_view(request, pk):
    lead = _get_visible_lead(request, pk)
    if lead is None:
        return error_response('Lead not found', status=404)

    data = lead.to_dict()
    data['total_value'] = money(lead.total_value())
    data['values'] = [value.to_dict() for value in lead.lead_values.all()]
    data['observations'] = [obs.to_dict() for obs in lead.observations.select_related('user')[:50]]
    data['activities'] = [activity.to_dict() for activity in lead.activities.select_related('user')[:50]]

    return JsonResponse({'status': 'success', 'data': data})


@company_required
@same_company_required(Lead)
@require_http_methods(["POST"])
def lead_move_view(request, pk):
    lead = _get_visible_lead(request, pk)
    if lead is None:
        return error_response('Lead not found', status=404)

    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    try:
        changed = lead.change_status(payload.get('status'), user=request.user, loss_reason=payload.get('loss_reason'))
    except ValueError as e:
        return error_response(str(e))
    except Exception as e:
        return exception_response(e, 'lead_move_view')

    if changed:
        logger.info(f"Lead {lead.id} moved to {lead.status} by {request.user.email}")

    return JsonResponse({
        'status': 'success',
        'message': 'Lead moved' if changed else 'Lead already in this status',
        'data': lead.to_dict()
    })


@company_required
@same_company_required(Lead)
@require_http_methods(["POST"])
def lead_qualify_view(request, pk):
    lead = _get_visible_lead(request, pk)
    if lead is None:
        return error_response('Lead not found', status=404)

    try:
        changed = lead.mark_qualified(request.user)
    except Exception as e:
        return exception_response(e, 'lead_qualify_view')

    return JsonResponse({
        'status': 'success',
        'message': 'Lead qualified' if changed else 'Lead was already qualified',
        'data': lead.to_dict()
    })


@manager_required
@same_company_required(Lead)
@require_http_methods(["POST"])
def lead_assign_view(request, pk):
    lead = Lead.objects.get(pk=pk, company=request.user.company)

    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    user = None
    user_id = payload.get('user_id')
    if user_id:
        user = User.objects.filter(pk=user_id, company=request.user.company, is_active=True).first()
        if user is None:
            return error_response('User not found', status=404)

    if not lead.assign_to(user, assigned_by=request.user):
        return error_response('Closed leads cannot be reassigned')

    logger.info(f"Lead {lead.id} assigned to {user.email if user else 'nobody'} by {request.user.email}")
    return JsonResponse({'status': 'success', 'message': 'Lead assigned', 'data': lead.to_dict()})


@company_required
@same_company_required(Lead)
@require_http_methods(["GET", "POST"])
def lead_observations_view(request, pk):
    lead = _get_visible_lead(request, pk)
    if lead is None:
        return error_response('Lead not found', status=404)

    if request.method == 'GET':
        observations = lead.observations.select_related('user')
        return JsonResponse({'status': 'success', 'data': [obs.to_dict() for obs in observations]})

    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    content = (payload.get('content') or '').strip()
    if not content:
        return error_response('Content is required')

    note_type = payload.get('note_type') or LeadObservation.TYPE_NOTE
    if note_type not in dict(LeadObservation.TYPE_CHOICES):
        return error_response('Invalid note type')

    try:
        observation = lead.add_observation(content, request.user, note_type=note_type)
    except Exception as e:
        return exception_response(e, 'lead_observations_view')

    return JsonResponse({'status': 'success', 'data': observation.to_dict()}, status=201)


@company_required
@same_company_required(Lead)
@require_http_methods(["GET", "POST"])
def lead_values_view(request, pk):
    lead = _get_visible_lead(request, pk)
    if lead is None:
        return error_response('Lead not found', status=404)

    if request.method == 'GET':
        return JsonResponse({
            'status': 'success',
            'data': {
                'values': [value.to_dict() for value in lead.lead_values.all()],
                'total': money(lead.total_value()),
            }
        })

    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    name = (payload.get('name') or '').strip()
    if not name:
        return error_response('Name is required')

    try:
        amount = Decimal(str(payload.get('amount')))
    except (InvalidOperation, ValueError):
        return error_response('Invalid amount')
    if not amount.is_finite() or amount < 0:
        return error_response('Invalid amount')

    value_type = payload.get('value_type') or LeadValue.TYPE_ONE_TIME
    if value_type not in dict(LeadValue.TYPE_CHOICES):
        return error_response('Invalid value type')

    try:
        value = lead.add_value(name, amount, user=request.user, value_type=value_type, notes=payload.get('notes', ''))
    except Exception as e:
        return exception_response(e, 'lead_values_view')

    return JsonResponse({
        'status': 'success',
        'data': {'value': value.to_dict(), 'total': money(lead.total_value())}
    }, status=201)


@company_required
@require_http_methods(["GET"])
def pipeline_summary_view(request):
    """Counts per status for the header of the kanban board"""
    summary = _visible_leads(request.user).values('status').annotate(
        count=Count('id'),
        total=Sum('estimated_value')
    )
    data = {status: {'count': 0, 'total_value': money(0)} for status, _ in Lead.STATUS_CHOICES}
    for row in summary:
        data[row['status']] = {'count': row['count'], 'total_value': money(row['total'])}

    return JsonResponse({'status': 'success', 'data': data})


@company_required
@require_http_methods(["POST"])
def bulk_import_view(request):
    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    try:
        data = import_leads(request.user.company, request.user, payload)
    except BulkImportError as e:
        return error_response(str(e), status=e.status_code)
    except Exception as e:
        return exception_response(e, 'bulk_import_view')

    return JsonResponse({'status': 'success', 'data': data})


@company_required
@same_company_required(Lead)
@require_http_methods(["POST"])
def lead_analysis_view(request, pk):
    """AI review of the lead's notes; answers 503 when AI is not configured"""
    lead = _get_visible_lead(request, pk)
    if lead is None:
        return error_response('Lead not found', status=404)

    try:
        data = analyze_lead(lead)
    except AnalysisError as e:
        return error_response(str(e), status=e.status_code)

    return JsonResponse({'status': 'success', 'data': data})
