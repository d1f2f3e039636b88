"""
FastAPI dependency resolving the calling user from a JWT bearer token.
Tokens are issued by the external auth service; only the `sub` claim is used.
"""
import jwt
from fastapi import Header, HTTPException, status
from typing import Optional
from src.core import config


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """
    Verify the Authorization header and return the owning-user id.

    Args:
        authorization: Authorization header value (Bearer <token>)

    Returns:
        User id from the token's `sub` claim

    Raises:
        HTTPException: If token is missing, invalid, or expired
    """
    if not authorization:
        raise _unauthorized("Missing authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Invalid authorization header format")

    try:
        payload = jwt.decode(
            token,
            config.settings.jwt_secret,
            algorithms=[config.settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")

    user_id = payload.get('sub')
    if not user_id:
        raise _unauthorized("Invalid token payload")

    return str(user_id)
