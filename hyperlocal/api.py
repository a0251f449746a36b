# hyperlocal/api.py - shared JSON helpers for the app views
import json
import logging
from functools import wraps

from django.core.paginator import EmptyPage, Paginator
from django.http import JsonResponse

from orders.exceptions import MarketplaceError, ValidationFailed

logger = logging.getLogger(__name__)


def parse_body(request, form_class):
    """
    Parse a JSON body and validate it against ``form_class``.
    Keys the form does not declare are rejected instead of being ignored.
    """
    try:
        data = json.loads(request.body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationFailed("Request body must be valid JSON")

    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")

    unknown = sorted(set(data) - set(form_class.base_fields))
    if unknown:
        raise ValidationFailed(
            "Validation failed",
            errors={key: ["Unknown field."] for key in unknown},
        )

    form = form_class(data)
    if not form.is_valid():
        raise ValidationFailed("Validation failed", errors=form_errors(form))
    return form.cleaned_data


def parse_query(request, form_class):
    """Validate query-string filters; unknown parameters are ignored."""
    form = form_class(request.GET)
    if not form.is_valid():
        raise ValidationFailed("Invalid query parameters", errors=form_errors(form))
    return form.cleaned_data


def form_errors(form):
    return {
        field: [error["message"] for error in errors]
        for field, errors in form.errors.get_json_data().items()
    }


def success(message=None, status=200, **data):
    payload = {"success": True}
    if message:
        payload["message"] = message
    payload["data"] = data
    return JsonResponse(payload, status=status)


def api_endpoint(fn):
    """Render marketplace errors as JSON and log anything unexpected."""

    @wraps(fn)
    def wrapper(request, *args, **kwargs):
        try:
            return fn(request, *args, **kwargs)
        except MarketplaceError as e:
            logger.warning(f"{fn.__name__} rejected: {e.message}")
            return JsonResponse(e.as_dict(), status=e.status_code)
        except Exception as e:
            logger.error(f"{fn.__name__} error: {str(e)}", exc_info=True)
            return JsonResponse({"success": False, "error": "Internal server error"}, status=500)

    return wrapper


def role_required(*roles):
    """Allow only authenticated users whose profile has one of ``roles``."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return JsonResponse({"success": False, "error": "Authentication required"}, status=401)
            profile = getattr(request.user, "profile", None)
            if roles and (profile is None or profile.user_type not in roles):
                return JsonResponse({"success": False, "error": "Access denied for this account type"}, status=403)
            return fn(request, *args, **kwargs)

        return wrapper

    return decorator


def staff_required(fn):
    @wraps(fn)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"success": False, "error": "Authentication required"}, status=401)
        if not request.user.is_staff:
            return JsonResponse({"success": False, "error": "Staff access required"}, status=403)
        return fn(request, *args, **kwargs)

    return wrapper


def paginate(items, page, limit):
    """Slice a queryset or list; pages past the end come back empty."""
    paginator = Paginator(items, limit)
    try:
        object_list = list(paginator.page(page).object_list)
    except EmptyPage:
        object_list = []

    total_pages = paginator.num_pages if paginator.count else 0
    return object_list, {
        "current_page": page,
        "total_pages": total_pages,
        "total": paginator.count,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
