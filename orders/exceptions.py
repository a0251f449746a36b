"""
Error kinds raised by the marketplace services.

Views turn these into ``{"success": False, "error": ...}`` responses using
``status_code``. "Not found" and "wrong state" share one class so that a
caller who does not own an order cannot learn whether it exists.
"""


class MarketplaceError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)

    def as_dict(self):
        payload = {"success": False, "error": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationFailed(MarketplaceError):
    status_code = 400
    default_message = "Validation failed"


class NotFoundOrWrongState(MarketplaceError):
    status_code = 404
    default_message = "Order not found or not in correct status"


class Unauthorized(MarketplaceError):
    status_code = 403
    default_message = "Not allowed to perform this operation"


class Conflict(MarketplaceError):
    """A concurrent request changed the record first; re-read and retry once."""

    status_code = 409
    default_message = "Order was modified by another request"


class DependencyUnavailable(MarketplaceError):
    status_code = 503
    default_message = "A required external service is not available"
