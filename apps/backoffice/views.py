import logging
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Count
from django.db.models.functions import TruncMonth
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.accounts.models import User
from apps.billing.models import Subscription
from apps.billing.plans import monthly_revenue
from apps.core.errors import parse_json_body
from apps.core.models import Company
from apps.core.ratelimit import rate_limited
from .decorators import admin_token_required
from .services import BackofficeAuthError, request_otp, revoke_token, validate_token, verify_otp

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(["POST"])
@rate_limited('admin-otp-request', max_requests=settings.ADMIN_OTP_RATE_LIMIT, window_seconds=15 * 60)
def otp_request_view(request):
    payload = parse_json_body(request)
    if payload is None:
        return JsonResponse({'status': 'error', 'message': 'Invalid JSON payload'}, status=400)

    try:
        request_otp(payload.get('email'))
    except BackofficeAuthError as e:
        return JsonResponse({'status': 'error', 'message': str(e)}, status=e.status_code)
    except Exception as e:
        logger.error(f"Error requesting admin OTP: {str(e)}", exc_info=True)
        return JsonResponse({'status': 'error', 'message': 'Internal server error'}, status=500)

    return JsonResponse({'status': 'success', 'message': 'Code sent by email'})


@csrf_exempt
@require_http_methods(["POST"])
def otp_verify_view(request):
    payload = parse_json_body(request)
    if payload is None:
        return JsonResponse({'status': 'error', 'message': 'Invalid JSON payload'}, status=400)

    try:
        session = verify_otp(payload.get('email'), payload.get('code'))
    except BackofficeAuthError as e:
        return JsonResponse({'status': 'error', 'message': str(e)}, status=e.status_code)

    return JsonResponse({
        'status': 'success',
        'message': 'Access granted',
        'data': {'admin_token': session.token, 'expires_at': session.expires_at.isoformat()}
    })


@csrf_exempt
@require_http_methods(["POST"])
def token_validate_view(request):
    payload = parse_json_body(request) or {}
    token = payload.get('token') or request.headers.get('X-Admin-Token')
    try:
        return JsonResponse(validate_token(token))
    except Exception as e:
        logger.error(f"Error validating admin token: {str(e)}", exc_info=True)
        return JsonResponse({'valid': False, 'error': 'Could not validate session'}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
@admin_token_required
def logout_view(request):
    revoke_token(request.admin_session.token)
    logger.info(f"Back-office session closed for {request.admin_session.email}")
    return JsonResponse({'status': 'success', 'message': 'Logged out'})


def _signups_per_month(months=12):
    since = (timezone.now() - timedelta(days=months * 31)).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    rows = Company.objects.filter(created_at__gte=since).annotate(
        month=TruncMonth('created_at')
    ).values('month').annotate(count=Count('id')).order_by('month')

    result = OrderedDict()
    for row in rows:
        result[row['month'].strftime('%Y-%m')] = row['count']
    return [{'month': month, 'count': count} for month, count in result.items()]


@csrf_exempt
@require_http_methods(["GET"])
@admin_token_required
def overview_view(request):
    try:
        valid_subscriptions = Subscription.objects.filter(status__in=Subscription.VALID_STATUSES)

        mrr = Decimal('0')
        for price_id in Subscription.objects.filter(status=Subscription.STATUS_ACTIVE).values_list('stripe_price_id', flat=True):
            mrr += monthly_revenue(price_id)

        plan_distribution = {plan: 0 for plan, _ in Subscription.PLAN_CHOICES}
        for row in valid_subscriptions.values('plan_type').annotate(count=Count('id')):
            plan_distribution[row['plan_type']] = row['count']

        data = {
            'companies': Company.objects.count(),
            'active_companies': Company.objects.filter(is_active=True).count(),
            'users': User.objects.filter(is_active=True, company__isnull=False).count(),
            'active_subscriptions': valid_subscriptions.count(),
            'trialing_subscriptions': valid_subscriptions.filter(status=Subscription.STATUS_TRIALING).count(),
            'canceled_subscriptions': Subscription.objects.filter(status=Subscription.STATUS_CANCELED).count(),
            'mrr': str(mrr),
            'plan_distribution': plan_distribution,
            'signups_per_month': _signups_per_month(),
        }
    except Exception as e:
        logger.error(f"Error building back-office overview: {str(e)}", exc_info=True)
        return JsonResponse({'status': 'error', 'message': 'Internal server error'}, status=500)

    return JsonResponse({'status': 'success', 'data': data})


@csrf_exempt
@require_http_methods(["GET"])
@admin_token_required
def companies_view(request):
    companies = Company.objects.select_related('owner', 'subscription').annotate(
        users_count=Count('users', distinct=True),
        leads_count=Count('leads', distinct=True),
    ).order_by('-created_at')

    data = []
    for company in companies:
        subscription = getattr(company, 'subscription', None)
        data.append({
            'id': company.id,
            'name': company.name,
            'slug': company.slug,
            'owner_email': company.owner.email if company.owner else None,
            'is_active': company.is_active,
            'users': company.users_count,
            'leads': company.leads_count,
            'plan_type': subscription.plan_type if subscription else Subscription.PLAN_FREE,
            'subscription_status': subscription.status if subscription else Subscription.STATUS_INACTIVE,
            'created_at': company.created_at.isoformat(),
        })

    return JsonResponse({'status': 'success', 'data': data})
