"""Access token verification helpers.

Token issuance (login, registration) lives in the identity service; this
module only verifies HS256 JWTs it issued and extracts the subject.

Shared by:
- api/deps.py: HTTP authentication dependency
- core/rate_limiting.py: per-user rate limit keys
- api/v1/realtime.py: WebSocket handshake (token in query string)
"""

import jwt
from starlette.requests import HTTPConnection

from app.core.config import settings

# Defense-in-depth: identity provider subjects are bounded in length.
_MAX_SUBJECT_LENGTH = 255

_BEARER_PREFIX = "bearer "


class InvalidTokenError(Exception):
    """Raised when a token is missing, malformed, expired or forged."""


def decode_access_token(token: str) -> str:
    """Verify a JWT and return its subject (the user id).

    Validates signature, exp, aud, iss and the presence of iat.

    Args:
        token: Encoded JWT.

    Returns:
        The ``sub`` claim.

    Raises:
        InvalidTokenError: For any verification failure. The reason is
            deliberately not exposed to callers.
    """
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("invalid token") from exc

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.strip() or len(sub) > _MAX_SUBJECT_LENGTH:
        raise InvalidTokenError("invalid subject")
    return sub


def extract_token(connection: HTTPConnection) -> str | None:
    """Find the access token on a request or WebSocket handshake.

    Lookup order: auth cookie, ``Authorization: Bearer`` header, then the
    ``access_token`` query parameter (browsers cannot set headers on
    WebSocket upgrades).

    Args:
        connection: Starlette Request or WebSocket.

    Returns:
        The raw token, or None if none was supplied.
    """
    token = connection.cookies.get(settings.auth_cookie_name)
    if token:
        return token

    header = connection.headers.get("authorization", "")
    if header.lower().startswith(_BEARER_PREFIX):
        bearer = header[len(_BEARER_PREFIX) :].strip()
        if bearer:
            return bearer

    return connection.query_params.get("access_token") or None
