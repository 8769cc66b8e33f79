"""
Client authentication for the Responses Gateway.

A single shared secret: the `Authorization` header must equal exactly
`Bearer <client key>`. When no client key is configured every request passes.
"""

from fastapi import Security
from fastapi.security import APIKeyHeader

from .dependencies import SettingsDependency
from .errors import AuthError

# Raw header scheme; the comparison is exact, including the "Bearer " prefix.
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


def is_authorized(authorization: str | None, client_key: str) -> bool:
    """
    Check an Authorization header value against the configured client key.

    Example:
        >>> is_authorized("Bearer secret", "secret")
        True
        >>> is_authorized("bearer secret", "secret")
        False
        >>> is_authorized(None, "")
        True
    """
    if not client_key:
        return True
    return authorization == f"Bearer {client_key}"


def check_client_key(authorization: str | None, client_key: str) -> None:
    """
    Raise unless the Authorization header value matches the client key.

    Raises:
        AuthError: 401 if the header is missing or does not match.
    """
    if is_authorized(authorization, client_key):
        return
    if authorization is None:
        raise AuthError("Missing authorization header")
    raise AuthError("Invalid client key")


async def verify_client_key(
    settings: SettingsDependency,
    authorization: str | None = Security(authorization_header),
) -> bool:
    """
    Verify the client's shared-secret bearer token.

    Returns:
        True if the request is authorized or auth is disabled.

    Raises:
        AuthError: 401 if the header is missing or does not match.

    Example:
        >>> @app.get("/protected")
        >>> async def protected_endpoint(_: bool = Depends(verify_client_key)):
        ...     return {"message": "Access granted"}
    """
    check_client_key(authorization, settings.client_key)
    return True
