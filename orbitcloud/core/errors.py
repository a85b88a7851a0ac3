# Error taxonomy of the order service. Every error carries a message that can be
# shown to the buyer as-is, and the HTTP status the API layer answers with.


class OrbitError(Exception):
    """Base class for errors surfaced to the caller."""

    status_code = 400

    def __init__(self, message: str, data=None):
        super().__init__(message)
        self.message = message
        self.data = data


class InvalidInput(OrbitError):
    """Request failed validation"""


class Unauthorized(OrbitError):
    """Unknown user or bad credentials"""

    status_code = 401


class Forbidden(OrbitError):
    """Operation disabled in this deployment mode"""

    status_code = 403


class NotFound(OrbitError):
    """Unknown order, product or user"""

    status_code = 404


class Conflict(OrbitError):
    """User already has an active pending order; `data` holds that order"""

    status_code = 409


class RateLimited(OrbitError):
    """Cancel requested too soon after the order was created"""

    status_code = 429

    def __init__(self, message: str, wait_seconds: int):
        super().__init__(message, data={"wait_seconds": wait_seconds})
        self.wait_seconds = wait_seconds


class InvalidState(OrbitError):
    """Transition not allowed from the order's current status"""


class UpstreamError(OrbitError):
    """Payment gateway unreachable or answered with an unusable payload"""

    status_code = 502


class ProvisioningError(OrbitError):
    """Panel refused to create the server instance"""

    status_code = 502
