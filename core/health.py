"""
INSAN MOBILE Monitoring & Health Check Endpoints
=================================================

1. /health/ - Liveness (process is up)
2. /health/ready/ - Readiness (database and cache reachable)
"""

import logging
import time

from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET

logger = logging.getLogger('insan.monitoring')

SERVICE_NAME = 'insan-mobile'


def _elapsed_ms(start):
    return round((time.monotonic() - start) * 1000, 2)


@csrf_exempt
@require_GET
def health_check(request):
    """Liveness probe for Docker HEALTHCHECK and load balancers."""
    return JsonResponse({
        'status': 'ok',
        'service': SERVICE_NAME,
        'timestamp': timezone.now().isoformat(),
    })


@csrf_exempt
@require_GET
def readiness_check(request):
    """
    Readiness probe.

    200 when the database and the cache answer, 503 otherwise.
    """
    checks = {}

    start = time.monotonic()
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        checks['database'] = {
            'status': 'healthy',
            'response_time_ms': _elapsed_ms(start),
            'vendor': connection.vendor,
        }
    except Exception as e:
        checks['database'] = {'status': 'unhealthy', 'error': str(e)}
        logger.error(f"Health check - Database unhealthy: {e}")

    start = time.monotonic()
    try:
        cache.set('_healthcheck_ping', 'pong', 10)
        if cache.get('_healthcheck_ping') != 'pong':
            raise RuntimeError("Cache read/write mismatch")
        checks['cache'] = {'status': 'healthy', 'response_time_ms': _elapsed_ms(start)}
    except Exception as e:
        checks['cache'] = {'status': 'unhealthy', 'error': str(e)}
        logger.error(f"Health check - Cache unhealthy: {e}")

    all_healthy = all(check['status'] == 'healthy' for check in checks.values())
    return JsonResponse({
        'status': 'healthy' if all_healthy else 'unhealthy',
        'service': SERVICE_NAME,
        'timestamp': timezone.now().isoformat(),
        'checks': checks,
    }, status=200 if all_healthy else 503)
