"""
Database-backed rate limiting for public endpoints.

Each accepted request writes a RateLimitLog row; a request is refused once the
number of rows for (identifier, endpoint) inside the window reaches the limit.
Failures of the limiter itself never block traffic.
"""

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from functools import wraps

from django.db import DatabaseError
from django.http import JsonResponse
from django.utils import timezone

from .models import RateLimitLog

logger = logging.getLogger(__name__)

CLIENT_IP_HEADERS = (
    'HTTP_X_REAL_IP',
    'HTTP_CF_CONNECTING_IP',
    'HTTP_X_CLIENT_IP',
    'REMOTE_ADDR',
)


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int = 0


def get_client_ip(request):
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded_for:
        first = forwarded_for.split(',')[0].strip()
        if first:
            return first

    for header in CLIENT_IP_HEADERS:
        value = request.META.get(header)
        if value:
            return value.strip()

    return 'unknown'


def check_rate_limit(identifier, endpoint, max_requests, window_seconds):
    now = timezone.now()
    window_start = now - timedelta(seconds=window_seconds)

    try:
        hits = RateLimitLog.objects.filter(
            identifier=identifier,
            endpoint=endpoint,
            created_at__gte=window_start
        )
        count = hits.count()

        if count >= max_requests:
            oldest = hits.order_by('created_at').values_list('created_at', flat=True).first()
            reopens_at = oldest + timedelta(seconds=window_seconds)
            retry_after = max(1, math.ceil((reopens_at - now).total_seconds()))
            logger.warning(f"Rate limit exceeded for {identifier} on {endpoint}")
            return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

        RateLimitLog.objects.create(identifier=identifier, endpoint=endpoint, created_at=now)
        return RateLimitResult(allowed=True, remaining=max_requests - count - 1)

    except DatabaseError as e:
        logger.error(f"Rate limit check failed for {endpoint}: {str(e)}", exc_info=True)
        return RateLimitResult(allowed=True, remaining=max_requests)


def rate_limited(endpoint, max_requests, window_seconds=60):
    """
    Decorator: refuse the request with 429 once the client IP hits the limit

    Usage:
        @rate_limited('admin-otp', max_requests=5, window_seconds=15 * 60)
        def request_otp_view(request):
            ...
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            result = check_rate_limit(get_client_ip(request), endpoint, max_requests, window_seconds)
            if not result.allowed:
                response = JsonResponse({
                    'status': 'error',
                    'message': 'Too many requests. Please wait a moment and try again.',
                    'retry_after': result.retry_after
                }, status=429)
                response['Retry-After'] = str(result.retry_after)
                return response
            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator
