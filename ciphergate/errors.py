"""Gateway error hierarchy.

Request-scoped errors are turned into the API error envelope by the
handlers in routes/errors.py. Startup errors propagate to main(), which
logs them and exits non-zero.
"""


class GatewayError(Exception):
    """Base exception for all gateway failures."""

    code = "gateway_error"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        """Convert to the API error envelope."""
        return {
            "status": "KO",
            "response": self.message,
            "code": self.code,
        }


class InvalidRequest(GatewayError):
    """Missing or malformed request fields."""

    code = "invalid_request"
    http_status = 400


class ForbiddenPath(InvalidRequest):
    """Path resolves outside the storage root or into key storage."""

    code = "forbidden_path"
    http_status = 403


class InvalidContact(GatewayError):
    """Contact path does not follow the naming convention."""

    code = "invalid_contact"
    http_status = 400


class InvalidNumber(GatewayError):
    """Number is not in canonical international format."""

    code = "invalid_number"
    http_status = 400


class TransportFailure(GatewayError):
    """Send, receive or setup failure reported by the messaging transport."""

    code = "transport_failure"
    http_status = 502


class StorageFailure(GatewayError):
    """I/O error on history, attachment, registration or volume storage."""

    code = "storage_failure"
    http_status = 500


class AlreadyRegistered(GatewayError):
    """Registration requested but key material is already provisioned."""

    code = "already_registered"
    http_status = 409

    def __init__(self, number: str, storage_path):
        super().__init__(
            f"registration already present for number {number}, "
            f"delete {storage_path} contents to reset"
        )
        self.number = number
        self.storage_path = storage_path


class NotRegistered(GatewayError):
    """Steady-state start without a completed registration."""

    code = "not_registered"
    http_status = 503

    def __init__(self):
        super().__init__(
            "messaging transport enabled but not registered, "
            "please restart with the -r flag for registration"
        )
