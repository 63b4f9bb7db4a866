"""Service token helpers.

Publishers authenticate every call with a short-lived HS256 JWT signed with
the shared service secret and sent in the ``x-access-token`` header. The
token carries no identity beyond possession of the secret; freshness comes
from the ``iat`` claim.
"""

from datetime import UTC, datetime

import jwt

from savereturn.core.errors import UnauthorizedError


def create_service_token(
    *,
    secret: str,
    issued_at: datetime | None = None,
    issuer: str | None = None,
) -> str:
    """Create a signed service token.

    Args:
        secret: HMAC signing secret.
        issued_at: Issued-at time. Defaults to now.
        issuer: Optional ``iss`` claim naming the calling publisher.

    Returns:
        Encoded JWT string.
    """
    issued = issued_at or datetime.now(UTC)
    payload: dict[str, object] = {"iat": int(issued.timestamp())}
    if issuer:
        payload["iss"] = issuer
    return jwt.encode(payload, secret, algorithm="HS256")


def verify_service_token(
    token: str,
    *,
    secret: str,
    leeway_seconds: int,
    now: datetime | None = None,
) -> dict:
    """Verify signature and freshness of a service token.

    Security: Never tells the caller WHY verification failed.

    Args:
        token: Encoded JWT from the request header.
        secret: HMAC signing secret.
        leeway_seconds: Maximum age (and clock skew) accepted for ``iat``.
        now: Reference time. Defaults to now.

    Returns:
        Decoded claims.

    Raises:
        UnauthorizedError: Bad signature, malformed token, missing or stale iat.
    """
    if not secret:
        raise UnauthorizedError("Service token secret not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"require": ["iat"]},
            leeway=leeway_seconds,
        )
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError("Invalid service token") from exc

    reference = (now or datetime.now(UTC)).timestamp()
    if abs(reference - payload["iat"]) > leeway_seconds:
        raise UnauthorizedError("Stale service token")

    return payload
