"""
FastAPI dependencies for JWT authentication.
The token subject identifies the principal submitting or cancelling imports.
"""
import jwt
from fastapi import Header, HTTPException, status
from typing import Optional
from src.core import config

BEARER_PREFIX = 'Bearer '


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def verify_token(authorization: Optional[str] = Header(None)) -> str:
    """
    Verify the bearer token and return the caller's principal id.

    Args:
        authorization: Authorization header value (Bearer <token>)

    Returns:
        Principal id (the token subject)

    Raises:
        HTTPException: If token is missing, invalid, or expired
    """
    if not authorization:
        raise _unauthorized("Missing authorization header")

    if not authorization.startswith(BEARER_PREFIX):
        raise _unauthorized("Invalid authorization header format")

    token = authorization[len(BEARER_PREFIX):]

    try:
        payload = jwt.decode(token, config.settings.jwt_secret, algorithms=[config.settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")

    principal = payload.get('sub')
    if not principal:
        raise _unauthorized("Invalid token payload")

    return principal
