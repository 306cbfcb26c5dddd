"""
INSAN MOBILE Security Middleware
================================

Provides:
1. Rate limiting per client IP (Django cache / Redis)
2. Security headers on every response
3. Audit logging of account, approval and package writes
"""

import hashlib
import logging
import time

from django.conf import settings
from django.core.cache import cache
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger('insan.security')


def get_client_ip(request):
    """Real client IP, honouring X-Forwarded-For from the proxy."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '0.0.0.0')


class RateLimitMiddleware(MiddlewareMixin):
    """
    Fixed-window rate limiting.

    - Login: 10 requests/minute per IP
    - First MasterAdmin setup: 5 requests/5 minutes per IP
    - Other API endpoints: 120 requests/minute per IP
    """

    # (max_requests, window_seconds)
    RATE_LIMITS = {
        '/api/auth/token/refresh/': (20, 60),
        '/api/auth/token/': (10, 60),
        '/api/setup-admin/': (5, 300),
        '/api/greeting/': (10, 60),
    }

    DEFAULT_API_LIMIT = (120, 60)

    def _get_rate_limit(self, path):
        for prefix, limits in self.RATE_LIMITS.items():
            if path.startswith(prefix):
                return limits
        if path.startswith('/api/'):
            return self.DEFAULT_API_LIMIT
        return None

    def process_request(self, request):
        if not getattr(settings, 'RATE_LIMIT_ENABLED', True):
            return None
        if settings.DEBUG and not getattr(settings, 'RATE_LIMIT_IN_DEBUG', False):
            return None

        rate_limit = self._get_rate_limit(request.path)
        if rate_limit is None:
            return None

        max_requests, window = rate_limit
        client_ip = get_client_ip(request)
        path_hash = hashlib.md5(request.path.encode()).hexdigest()[:8]
        cache_key = f"rl:{client_ip}:{path_hash}"

        request_count = cache.get(cache_key, 0)
        if request_count >= max_requests:
            logger.warning(
                f"Rate limit exceeded: IP={client_ip} path={request.path} "
                f"count={request_count}/{max_requests} window={window}s"
            )
            return JsonResponse({
                'error': 'rate_limit_exceeded',
                'message': 'Terlalu banyak permintaan. Silakan coba lagi nanti.',
                'retry_after': window,
            }, status=429, headers={
                'Retry-After': str(window),
                'X-RateLimit-Limit': str(max_requests),
                'X-RateLimit-Remaining': '0',
            })

        try:
            new_count = cache.incr(cache_key)
        except ValueError:
            cache.set(cache_key, 1, window)
            new_count = 1

        request._rate_limit_remaining = max(0, max_requests - new_count)
        request._rate_limit_limit = max_requests
        return None

    def process_response(self, request, response):
        if hasattr(request, '_rate_limit_limit'):
            response['X-RateLimit-Limit'] = str(request._rate_limit_limit)
            response['X-RateLimit-Remaining'] = str(request._rate_limit_remaining)
        return response


class SecurityHeadersMiddleware(MiddlewareMixin):
    """Hardening headers: nosniff, frame denial, referrer and permissions policy, HSTS."""

    def process_response(self, request, response):
        response['X-Content-Type-Options'] = 'nosniff'

        # Django admin uses iframes for popups
        if not request.path.startswith('/admin/'):
            response['X-Frame-Options'] = 'DENY'

        response['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        # Camera is needed for barcode scans and delivery proof photos
        response['Permissions-Policy'] = 'camera=(self), geolocation=(), microphone=(), payment=()'

        if 'Server' in response:
            del response['Server']

        if not settings.DEBUG:
            response['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        return response


class RequestAuditMiddleware(MiddlewareMixin):
    """
    Audit log for sensitive API traffic.

    Logs login attempts, writes on users/approvals/tasks, failed
    API requests and slow requests.
    """

    SENSITIVE_PATHS = [
        '/api/auth/',
        '/api/setup-admin/',
        '/api/users/',
        '/api/approvals/',
        '/api/tasks/',
        '/admin/',
    ]

    SLOW_REQUEST_SECONDS = 2.0

    def process_request(self, request):
        request._audit_started = time.monotonic()

    def _should_log(self, request, response, duration):
        path = request.path
        if '/auth/' in path:
            return True
        if request.method in ('POST', 'PUT', 'PATCH', 'DELETE'):
            if any(path.startswith(p) for p in self.SENSITIVE_PATHS):
                return True
        if response.status_code >= 500:
            return True
        if response.status_code >= 400 and path.startswith('/api/'):
            return True
        return duration is not None and duration >= self.SLOW_REQUEST_SECONDS

    def process_response(self, request, response):
        started = getattr(request, '_audit_started', None)
        duration = time.monotonic() - started if started is not None else None

        if self._should_log(request, response, duration):
            user = getattr(request, 'user', None)
            user_info = user.employee_id if user and user.is_authenticated else 'anonymous'
            log_data = {
                'method': request.method,
                'path': request.path,
                'status': response.status_code,
                'user': user_info,
                'ip': get_client_ip(request),
                'duration_ms': round(duration * 1000) if duration is not None else None,
            }

            if response.status_code >= 500:
                logger.error(f"AUDIT [ERROR] {log_data}")
            elif response.status_code >= 400:
                logger.warning(f"AUDIT [WARN] {log_data}")
            else:
                logger.info(f"AUDIT [OK] {log_data}")

        return response
