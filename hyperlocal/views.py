import logging

from django.apps import apps
from django.db import connection
from django.http import JsonResponse
from django.views.decorators.http import require_GET

logger = logging.getLogger(__name__)


@require_GET
def healthz(request):
    """Liveness probe: database reachability and payment gateway configuration."""
    db_ok = True
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except Exception as e:
        logger.error(f"Health check database error: {str(e)}")
        db_ok = False

    gateway = apps.get_app_config("payments").gateway
    return JsonResponse(
        {
            "status": "ok" if db_ok else "degraded",
            "database": db_ok,
            "payment_gateway": gateway.is_available(),
        },
        status=200 if db_ok else 503,
    )
