"""Domain errors raised by the service layer.

Each error carries the HTTP status the API layer answers with; services never
build HTTP responses themselves.
"""


class PortalError(Exception):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(PortalError):
    status_code = 404


class PermissionDeniedError(PortalError):
    status_code = 403


class StateConflictError(PortalError):
    """The requested transition is not valid from the current state."""

    status_code = 409


class ContentValidationError(PortalError):
    status_code = 422

    def __init__(self, detail: str, errors: list[dict] | None = None) -> None:
        super().__init__(detail)
        self.errors = errors or []
