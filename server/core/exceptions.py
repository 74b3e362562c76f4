"""API exception hierarchy.

Routes raise these; the handler registered in ``main.py`` renders them as
``{"error": message}`` with the matching status code.
"""


class APIError(Exception):
    """Base exception for errors surfaced to HTTP clients."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(APIError):
    """Missing or malformed request input."""

    status_code = 400


class NotFoundError(APIError):
    """No live record for the requested key or scope."""

    status_code = 404


class ConflictError(APIError):
    """Record already exists."""

    status_code = 409


class InternalError(APIError):
    """Storage or unexpected failure. The message never carries details."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


class UpstreamError(APIError):
    """The simulation API answered with an error or could not be reached."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int = None):
        self.upstream_status = upstream_status
        super().__init__(message)
