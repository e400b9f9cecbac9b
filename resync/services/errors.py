"""
Service layer exceptions.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(
        self,
        message: str,
        service_id: str | None = None,
        status_code: int | None = None,
    ):
        self.service_id = service_id
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_client_error(self) -> bool:
        """True for 4xx responses."""
        return self.status_code is not None and 400 <= self.status_code < 500


class AuthenticationError(ServiceError):
    """No authenticated session, or the session was rejected."""

    def __init__(self, message: str = "Session expired, please sign in again"):
        super().__init__(message, status_code=401)


class ServerReportedError(ServiceError):
    """The server answered but flagged the request as failed (success: false)."""

    pass


class RequestTimeoutError(ServiceError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class GateClosedError(RuntimeError):
    """Raised when scheduling on a debounce gate that was closed."""

    pass
