import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import company_required, manager_required, owner_required
from apps.leads.models import Lead, LeadValue
from .demo import DemoDataSeeder
from .errors import error_response, exception_response, money, parse_json_body
from .models import ApiToken

logger = logging.getLogger(__name__)


def _rate(part, whole):
    return round(part / whole * 100, 1) if whole > 0 else 0


@company_required
@require_http_methods(["GET"])
def dashboard_stats_view(request):
    """
    Pipeline numbers for the dashboard
    - Managers: whole company, one row per seller
    - Sellers: only their own leads
    """
    try:
        company = request.user.company
        today = timezone.localdate()

        try:
            days = int(request.GET.get('days', 30))
        except ValueError:
            return error_response('days must be an integer')
        if days < 1 or days > 365:
            return error_response('days must be between 1 and 365')

        leads_qs = Lead.objects.filter(company=company)
        if not request.user.is_manager():
            leads_qs = leads_qs.filter(assigned_to=request.user)

        # 1. Counts by status
        status_counts = leads_qs.values('status').annotate(count=Count('id'))
        status_map = {item['status']: item['count'] for item in status_counts}
        by_status = {status: status_map.get(status, 0) for status, _ in Lead.STATUS_CHOICES}

        total = sum(by_status.values())
        won = by_status[Lead.STATUS_WON]
        lost = by_status[Lead.STATUS_LOST]

        # 2. Values: registered values of won deals, estimates of open ones
        won_value = LeadValue.objects.filter(
            lead__in=leads_qs.filter(status=Lead.STATUS_WON)
        ).aggregate(total=Sum('amount'))['total'] or Decimal('0')
        pipeline_value = leads_qs.exclude(
            status__in=Lead.CLOSED_STATUSES
        ).aggregate(total=Sum('estimated_value'))['total'] or Decimal('0')

        # 3. Per seller
        sellers = request.user.company.users.filter(is_active=True)
        if not request.user.is_manager():
            sellers = sellers.filter(pk=request.user.pk)
        sellers = sellers.annotate(
            leads_total=Count('assigned_leads', filter=Q(assigned_leads__company=company)),
            leads_won=Count('assigned_leads', filter=Q(assigned_leads__company=company, assigned_leads__status=Lead.STATUS_WON)),
            leads_lost=Count('assigned_leads', filter=Q(assigned_leads__company=company, assigned_leads__status=Lead.STATUS_LOST)),
        ).order_by('first_name', 'email')

        per_seller = [{
            'user_id': seller.id,
            'name': seller.get_full_name(),
            'role': seller.role,
            'leads': seller.leads_total,
            'won': seller.leads_won,
            'lost': seller.leads_lost,
            'conversion_rate': _rate(seller.leads_won, seller.leads_total),
        } for seller in sellers]

        # 4. Daily trend (last N days)
        start_day = today - timedelta(days=days - 1)
        daily_counts = leads_qs.filter(created_at__date__gte=start_day)\
            .values('created_at__date')\
            .annotate(count=Count('id'))

        daily_map = {item['created_at__date']: item['count'] for item in daily_counts}

        leads_per_day = []
        for i in range(days - 1, -1, -1):
            day = today - timedelta(days=i)
            leads_per_day.append({
                'date': day.strftime('%Y-%m-%d'),
                'count': daily_map.get(day, 0),
            })

        data = {
            'scope': 'company' if request.user.is_manager() else 'me',
            'total_leads': total,
            'won_leads': won,
            'lost_leads': lost,
            'by_status': by_status,
            'won_value': money(won_value),
            'pipeline_value': money(pipeline_value),
            'conversion_rate': _rate(won, total),
            'new_today': daily_map.get(today, 0),
            'per_seller': per_seller,
            'leads_per_day': leads_per_day,
        }
        return JsonResponse({'status': 'success', 'data': data})

    except Exception as e:
        return exception_response(e, 'dashboard_stats_view')


def _token_data(api_token, reveal=False):
    return {
        'id': api_token.id,
        'name': api_token.name,
        'token': api_token.token if reveal else api_token.masked(),
        'is_active': api_token.is_active,
        'created_by': api_token.created_by.email if api_token.created_by else None,
        'last_used_at': api_token.last_used_at.isoformat() if api_token.last_used_at else None,
        'created_at': api_token.created_at.isoformat(),
    }


@company_required
@manager_required
@require_http_methods(["GET", "POST"])
def api_tokens_view(request):
    company = request.user.company

    if request.method == 'GET':
        tokens = ApiToken.objects.filter(company=company).select_related('created_by')
        return JsonResponse({'status': 'success', 'data': [_token_data(token) for token in tokens]})

    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    name = (payload.get('name') or '').strip()
    if not name:
        return error_response('Name is required')

    api_token = ApiToken.objects.create(company=company, name=name[:100], created_by=request.user)
    logger.info(f"API token {api_token.id} created for company {company.id} by {request.user.email}")

    # The full token is only shown once
    return JsonResponse({'status': 'success', 'message': 'Token created', 'data': _token_data(api_token, reveal=True)}, status=201)


@company_required
@manager_required
@require_http_methods(["POST"])
def api_token_revoke_view(request, pk):
    api_token = ApiToken.objects.filter(pk=pk, company=request.user.company).first()
    if api_token is None:
        return error_response('Token not found', status=404)

    api_token.revoke()
    logger.info(f"API token {api_token.id} revoked by {request.user.email}")
    return JsonResponse({'status': 'success', 'message': 'Token revoked', 'data': _token_data(api_token)})


@company_required
@owner_required
@require_http_methods(["POST"])
def demo_seed_view(request):
    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    try:
        scale = float(payload.get('scale', 1.0))
    except (TypeError, ValueError):
        return error_response('scale must be a number')
    if scale <= 0 or scale > 1:
        return error_response('scale must be greater than 0 and at most 1')

    try:
        counts = DemoDataSeeder(request.user.company, scale=scale).run()
    except ValueError as e:
        return error_response(str(e))
    except Exception as e:
        return exception_response(e, 'demo_seed_view')

    return JsonResponse({'status': 'success', 'message': 'Demo data created', 'data': counts}, status=201)
