"""
PURPOSE: JWT token creation, verification and the FastAPI current-user dependency.

Tokens are HS256-signed with JWT_SECRET via python-jose; the "sub" claim is
the template owner.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt

from template_engine.config.settings import settings
from template_engine.utils.logger import get_logger


logger = get_logger("api.auth")

ALGORITHM = "HS256"


# ════════════════════════════════════════════════════════════════
# JWT Token Management
# ════════════════════════════════════════════════════════════════


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    PURPOSE: Create a JWT access token.

    CALLED BY: Upstream identity service, tests

    Args:
        data: Token payload data (must include 'sub')
        expires_delta: Optional custom expiration delta. Defaults to 24 hours.

    Returns:
        str: Encoded JWT token

    Raises:
        ValueError: If 'sub' is not in data dictionary
    """
    if "sub" not in data:
        raise ValueError("Token data must include 'sub' (subject/username)")

    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({"exp": now + (expires_delta or timedelta(hours=24)), "iat": now})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    PURPOSE: Decode and verify a JWT token.

    CALLED BY: get_current_user

    Args:
        token: JWT token string to verify

    Returns:
        dict: Decoded token payload with claims

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning("token_verification_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials (missing subject)",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


# ════════════════════════════════════════════════════════════════
# FastAPI Dependencies
# ════════════════════════════════════════════════════════════════


async def get_current_user(authorization: Optional[str] = Header(None)) -> str:
    """
    PURPOSE: Extract and verify the current user from a Bearer token.

    CALLED BY: All protected route handlers via Depends(get_current_user)

    Args:
        authorization: Authorization header value in format "Bearer <token>"

    Returns:
        str: Authenticated user id (template owner)

    Raises:
        HTTPException: If the header is missing, malformed, or the token is invalid
    """
    if not authorization:
        logger.warning("missing_authorization_header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid authorization scheme")
    except ValueError:
        logger.warning("malformed_authorization_header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return str(verify_token(token)["sub"])


async def require_catalog_admin(current_user: str = Depends(get_current_user)) -> str:
    """
    PURPOSE: Allow only CATALOG_ADMINS subjects through.

    CALLED BY: Indicator catalog write routes

    Raises:
        HTTPException: 403 for authenticated users who are not catalog admins
    """
    if current_user not in settings.catalog_admins():
        logger.warning("catalog_write_forbidden", user=current_user)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Indicator catalog changes require an administrator",
        )
    return current_user
