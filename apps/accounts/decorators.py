# Decorators in this file:
# 1. api_login_required - User must be authenticated (401 otherwise)
# 2. company_required - User must belong to a company
# 3. role_required / manager_required / owner_required - Role checks
# 4. same_company_required - Accessed object must belong to the user's company
#
# Every decorator answers with the JSON error envelope used by the API:
#   {'status': 'error', 'message': '...'}
# ==============================================================================

from functools import wraps
from django.http import JsonResponse


def _error(message, status):
    return JsonResponse({'status': 'error', 'message': message}, status=status)


def api_login_required(view_func):
    """
    Decorator: Only authenticated users can access this view

    The JSON counterpart of @login_required (no redirect to a login page).
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error('Authentication required', 401)
        return view_func(request, *args, **kwargs)

    return wrapper


def company_required(view_func):
    """
    Checks:
    1. User is authenticated
    2. User has company assigned

    Multi-tenancy requires company context: every query in the API is
    filtered by request.user.company.
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error('Authentication required', 401)

        if request.user.company_id:
            return view_func(request, *args, **kwargs)

        return _error('You must belong to a company to access this resource', 403)

    return wrapper


def role_required(*allowed_roles):
    """
    Decorator: Only specific roles can access

    Usage:
        @role_required('owner', 'manager')
        def team_view(request):
            ...
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _error('Authentication required', 401)

            if request.user.role in allowed_roles or request.user.is_superuser:
                return view_func(request, *args, **kwargs)

            return _error('You do not have permission to perform this action', 403)

        return wrapper

    return decorator


def manager_required(view_func):
    """Owners and managers"""
    return role_required('owner', 'manager')(view_func)


def owner_required(view_func):
    return role_required('owner')(view_func)


def same_company_required(model_class, pk_param='pk'):
    """
    Decorator: Verify accessed object belongs to user's company

    Objects from another company answer 404 (not 403) so their existence
    is not revealed.

    Usage:
        @company_required
        @same_company_required(Lead, pk_param='pk')
        def lead_move_view(request, pk):
            ...
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _error('Authentication required', 401)

            pk = kwargs.get(pk_param)
            if not pk:
                return view_func(request, *args, **kwargs)

            exists = model_class.objects.filter(
                pk=pk,
                company=request.user.company  # Multi-tenancy filter
            ).exists()

            if not exists:
                return _error(f"{model_class.__name__} not found", 404)

            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator
