from functools import wraps

from django.http import JsonResponse

from .services import get_session


def admin_token_required(view_func):
    """
    Decorator: request carries a valid back-office session in X-Admin-Token

    The session is available as request.admin_session.
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        session = get_session(request.headers.get('X-Admin-Token'))
        if session is None:
            return JsonResponse({'status': 'error', 'message': 'Invalid or expired admin session'}, status=401)
        request.admin_session = session
        return view_func(request, *args, **kwargs)

    return wrapper
