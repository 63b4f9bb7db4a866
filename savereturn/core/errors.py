"""API error classes.

Every failure the publisher can branch on has its own class with a dotted,
machine-readable ``name``. The exception handler in ``savereturn.main``
renders all of them as ``{"code": <status>, "name": <name>}``.

WHY CUSTOM ERROR CLASSES:
- One response shape across all endpoints
- Services raise domain errors without knowing about HTTP responses
- Tests can assert on the class instead of parsing bodies
"""


class APIError(Exception):
    """Base class for API errors.

    Attributes:
        name: Machine-readable error name (e.g., "token.used").
        message: Human-readable description, used for logging only.
        status_code: HTTP status code to return.
    """

    def __init__(
        self,
        name: str,
        message: str,
        status_code: int = 500,
    ) -> None:
        self.name = name
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# =============================================================================
# Request validation (400)
# =============================================================================


class InvalidRequestError(APIError):
    """Request body could not be parsed or has the wrong types (400)."""

    def __init__(self, message: str = "Request validation failed") -> None:
        super().__init__(name="invalid.request", message=message, status_code=400)


class InvalidPayloadError(APIError):
    """Saved form payload failed presence validation (400)."""

    def __init__(self, message: str = "Form payload is empty") -> None:
        super().__init__(name="invalid.payload", message=message, status_code=400)


# =============================================================================
# Email token issue (401)
# =============================================================================


class EmailMissingError(APIError):
    """No encrypted email supplied when issuing a token (401)."""

    def __init__(self) -> None:
        super().__init__(
            name="email.missing",
            message="encrypted_email is required",
            status_code=401,
        )


class DetailsMissingError(APIError):
    """No encrypted details supplied when issuing a token (401)."""

    def __init__(self) -> None:
        super().__init__(
            name="details.missing",
            message="encrypted_details is required",
            status_code=401,
        )


# =============================================================================
# Email token confirm (401)
#
# The checks run in this order: invalid, used, superseded, expired.
# =============================================================================


class TokenInvalidError(APIError):
    """Token does not exist for this service (401)."""

    def __init__(self) -> None:
        super().__init__(
            name="token.invalid", message="Email token not found", status_code=401
        )


class TokenUsedError(APIError):
    """Token was already confirmed once (401)."""

    def __init__(self) -> None:
        super().__init__(
            name="token.used", message="Email token already used", status_code=401
        )


class TokenSupersededError(APIError):
    """A newer token was issued for the same identity (401)."""

    def __init__(self) -> None:
        super().__init__(
            name="token.superseded",
            message="Email token superseded by a newer token",
            status_code=401,
        )


class TokenExpiredError(APIError):
    """Token is still valid but past its expiry timestamp (401)."""

    def __init__(self) -> None:
        super().__init__(
            name="token.expired", message="Email token expired", status_code=401
        )


class UnauthorizedError(APIError):
    """Service token missing or rejected (401)."""

    def __init__(self, message: str = "Service token required") -> None:
        super().__init__(
            name="token.unauthorized", message=message, status_code=401
        )


# =============================================================================
# Lookup (404)
# =============================================================================


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(name="not.found", message=message, status_code=404)


# =============================================================================
# Persistence (500 / 503)
# =============================================================================


class PersistenceError(APIError):
    """Write failed after validation succeeded (500)."""

    def __init__(self, message: str = "Could not persist record") -> None:
        super().__init__(name="unavailable", message=message, status_code=500)


class ServiceUnavailableError(APIError):
    """Storage unavailable while issuing a token (503)."""

    def __init__(self, message: str = "Storage unavailable") -> None:
        super().__init__(name="unavailable", message=message, status_code=503)


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(name="internal.error", message=message, status_code=500)
