# hyperlocal/middleware.py
import logging
import time

from django.http import HttpRequest

logger = logging.getLogger(__name__)

# Order, delivery and payment state changes on every transition; profiles carry bank details
NO_STORE_PREFIXES = (
    '/api/profile/',
    '/api/payment/',
    '/api/restaurant/orders',
    '/api/farmer/orders',
    '/api/transporter/',
)


class SecurityHeadersMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)

        response['X-Content-Type-Options'] = 'nosniff'
        response['X-Frame-Options'] = 'DENY'
        response['Referrer-Policy'] = 'same-origin'
        if request.is_secure():
            response['Strict-Transport-Security'] = 'max-age=31536000'

        return response


class CacheControlMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request: HttpRequest):
        started = time.monotonic()
        response = self.get_response(request)

        if request.path.startswith(NO_STORE_PREFIXES):
            response['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
            response['Pragma'] = 'no-cache'
            response['Expires'] = '0'
            logger.debug(
                f"{request.method} {request.path} -> {response.status_code} "
                f"in {(time.monotonic() - started) * 1000:.0f}ms"
            )

        return response
