"""FastAPI dependencies resolving the landing page visitor."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from saas_lifecycle.auth.jwt import JWTValidationError, JWTValidator, get_jwt_validator
from saas_lifecycle.auth.models import AuthenticatedUser
from saas_lifecycle.config import get_settings

logger = logging.getLogger(__name__)

# Anonymous visitors are allowed through; each dependency decides what that means
bearer_scheme = HTTPBearer(auto_error=False)

Credentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]
Validator = Annotated[JWTValidator, Depends(get_jwt_validator)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_user(
    credentials: Credentials,
    jwt_validator: Validator,
) -> AuthenticatedUser | None:
    """Resolve the visitor if a valid bearer token was sent.

    The landing page GET decides for itself whether an anonymous visitor
    must be challenged, so missing or invalid tokens yield None.
    """
    if not credentials:
        return None

    try:
        return await jwt_validator.validate_token(credentials.credentials)
    except JWTValidationError as e:
        logger.debug("Ignoring invalid bearer token on optional route: %s", e)
        return None


async def get_current_user(
    credentials: Credentials,
    jwt_validator: Validator,
) -> AuthenticatedUser:
    """Resolve the visitor, challenging requests without a valid token.

    Raises:
        HTTPException: 401 if the token is missing or invalid.
    """
    if not credentials:
        raise _unauthorized("Missing authentication credentials")

    try:
        return await jwt_validator.validate_token(credentials.credentials)
    except JWTValidationError as e:
        logger.warning("Rejected bearer token: %s", e)
        raise _unauthorized(str(e)) from None


async def require_admin(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> AuthenticatedUser:
    """Require the configured admin scope for test-mode routes.

    Raises:
        HTTPException: 403 if the scope was not granted.
    """
    admin_scope = get_settings().admin_scope
    if admin_scope not in user.scopes:
        logger.warning("User [%s] lacks admin scope [%s]", user.user_id, admin_scope)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing required scope: {admin_scope}",
        )
    return user


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
OptionalUser = Annotated[AuthenticatedUser | None, Depends(get_optional_user)]
AdminUser = Annotated[AuthenticatedUser, Depends(require_admin)]
