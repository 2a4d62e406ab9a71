"""Domain error taxonomy.

API-facing operations raise these directly; `contentops.main` maps them to HTTP
status codes. Worker and webhook paths catch adapter failures and record them on
the output instead of raising.
"""

from __future__ import annotations


class ContentOpsError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ContentOpsError):
    status_code = 404


class InvalidStateError(ContentOpsError):
    status_code = 409


class UnauthorizedError(ContentOpsError):
    status_code = 401


class ValidationFailedError(ContentOpsError):
    status_code = 422


class UpstreamFailure(ContentOpsError):
    """A generation backend reported failure or returned an unusable response."""

    status_code = 502


class EnqueueFailedError(ContentOpsError):
    status_code = 503


class BadRequestError(ContentOpsError):
    status_code = 400


class ConfigurationError(ContentOpsError):
    """A required secret or endpoint is not configured."""

    status_code = 500
