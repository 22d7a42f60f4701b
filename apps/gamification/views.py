import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import company_required
from apps.core.errors import error_response, parse_json_body
from .models import GamificationEvent, GamificationSetting
from .scoring import (
    DEFAULT_POINTS, MAX_POINTS, build_leaderboard, calculate_badges,
    calculate_user_stats, get_points_table, window_events
)

logger = logging.getLogger(__name__)


def _days_param(request):
    try:
        days = int(request.GET.get('days', settings.GAMIFICATION_LEADERBOARD_DAYS))
    except ValueError:
        days = settings.GAMIFICATION_LEADERBOARD_DAYS
    return min(max(days, 1), 365)


@company_required
@require_http_methods(["GET"])
def leaderboard_view(request):
    days = _days_param(request)
    try:
        leaderboard = build_leaderboard(request.user.company, days=days)
    except Exception as e:
        logger.error(f"Error building leaderboard: {str(e)}", exc_info=True)
        return JsonResponse({'status': 'error', 'message': 'Internal server error'}, status=500)

    return JsonResponse({'status': 'success', 'data': {'days': days, 'leaderboard': leaderboard}})


@company_required
@require_http_methods(["GET"])
def my_stats_view(request):
    days = _days_param(request)
    events = list(window_events(request.user.company, days, user=request.user).select_related('lead'))
    stats = calculate_user_stats(events)

    position = None
    for row in build_leaderboard(request.user.company, days=days, limit=10_000):
        if row['user_id'] == request.user.id:
            position = row['position']
            break

    return JsonResponse({
        'status': 'success',
        'data': {
            'days': days,
            'position': position,
            'stats': stats,
            'badges': [badge.to_dict() for badge in calculate_badges(stats)],
            'recent_events': [event.to_dict() for event in events[:20]],
        }
    })


@company_required
@require_http_methods(["GET", "POST"])
def settings_view(request):
    company = request.user.company

    if request.method == 'GET':
        return JsonResponse({
            'status': 'success',
            'data': {'points': get_points_table(company), 'defaults': DEFAULT_POINTS}
        })

    if not request.user.is_manager():
        return error_response('Only managers can change the points table', status=403)

    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    points = payload.get('points')
    if not isinstance(points, dict) or not points:
        return error_response('points must be an object: {"event_type": points}')

    errors = {}
    for event_type, value in points.items():
        if event_type not in DEFAULT_POINTS:
            errors[event_type] = 'Unknown event type'
        elif isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_POINTS:
            errors[event_type] = f'Points must be an integer between 0 and {MAX_POINTS}'
    if errors:
        return error_response('Invalid points', errors=errors)

    for event_type, value in points.items():
        GamificationSetting.objects.update_or_create(
            company=company,
            event_type=event_type,
            defaults={'points': value, 'updated_by': request.user}
        )
    logger.info(f"Gamification points updated for {company.name} by {request.user.email}: {points}")

    return JsonResponse({'status': 'success', 'message': 'Points updated', 'data': {'points': get_points_table(company)}})
