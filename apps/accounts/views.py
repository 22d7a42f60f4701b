import logging

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from apps.core.errors import parse_json_body
from .decorators import api_login_required, company_required, owner_required
from .models import User, UserProfile
from .team import TeamError, add_team_member

logger = logging.getLogger(__name__)


def _subscription_data(company):
    subscription = company.get_subscription() if company else None
    if not subscription:
        return {'plan_type': 'free', 'status': 'inactive', 'user_limit': 1, 'subscription_end': None}
    return subscription.to_dict()


@api_login_required
@require_http_methods(["GET"])
def me_view(request):
    user = request.user
    profile, _ = UserProfile.objects.get_or_create(user=user)
    company = user.company

    return JsonResponse({
        'status': 'success',
        'data': {
            'user': user.to_dict(),
            'profile': profile.to_dict(),
            'company': {
                'id': company.id,
                'name': company.name,
                'slug': company.slug,
                'system_name': company.system_name,
                'theme': company.theme,
                'logo': company.logo.url if company.logo else None,
                'seat_limit': company.seat_limit(),
                'seats_available': company.seats_available(),
            } if company else None,
            'subscription': _subscription_data(company),
        }
    })


@api_login_required
@require_http_methods(["POST"])
def preferences_view(request):
    payload = parse_json_body(request)
    if payload is None:
        return JsonResponse({'status': 'error', 'message': 'Invalid JSON payload'}, status=400)

    profile, _ = UserProfile.objects.get_or_create(user=request.user)
    updated = []

    for field in ('email_notifications', 'onboarding_completed'):
        if field in payload:
            setattr(profile, field, bool(payload[field]))
            updated.append(field)

    theme = payload.get('theme')
    if theme is not None:
        if theme not in dict(UserProfile._meta.get_field('theme').choices):
            return JsonResponse({'status': 'error', 'message': 'Invalid theme'}, status=400)
        profile.theme = theme
        updated.append('theme')

    if updated:
        profile.save(update_fields=updated + ['updated_at'])

    return JsonResponse({'status': 'success', 'data': profile.to_dict()})


@company_required
@require_http_methods(["GET", "POST"])
def team_view(request):
    company = request.user.company

    if request.method == 'GET':
        members = User.objects.filter(company=company).order_by('first_name', 'email')
        return JsonResponse({
            'status': 'success',
            'data': {
                'members': [member.to_dict() for member in members],
                'seat_limit': company.seat_limit(),
                'seats_available': company.seats_available(),
            }
        })

    if not request.user.is_owner():
        return JsonResponse({'status': 'error', 'message': 'Only the account owner can add users'}, status=403)

    payload = parse_json_body(request)
    if payload is None:
        return JsonResponse({'status': 'error', 'message': 'Invalid JSON payload'}, status=400)

    try:
        user, _ = add_team_member(
            company=company,
            name=payload.get('name', ''),
            email=payload.get('email', ''),
            role=payload.get('role', ''),
            invited_by=request.user,
        )
    except TeamError as e:
        return JsonResponse({'status': 'error', 'message': str(e)}, status=e.status_code)
    except Exception as e:
        logger.error(f"Unexpected error adding team member: {str(e)}", exc_info=True)
        return JsonResponse({'status': 'error', 'message': 'Internal server error'}, status=500)

    return JsonResponse({
        'status': 'success',
        'message': 'User created. Credentials were sent by email.',
        'data': user.to_dict()
    }, status=201)


@owner_required
@require_http_methods(["POST"])
def team_member_deactivate_view(request, pk):
    try:
        member = User.objects.get(pk=pk, company=request.user.company)
    except User.DoesNotExist:
        return JsonResponse({'status': 'error', 'message': 'User not found'}, status=404)

    if member == request.user:
        return JsonResponse({'status': 'error', 'message': 'You cannot deactivate yourself'}, status=400)

    member.is_active = False
    member.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"User {member.email} deactivated by {request.user.email}")

    return JsonResponse({'status': 'success', 'data': member.to_dict()})
