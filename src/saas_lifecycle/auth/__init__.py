"""Authentication for the landing page.

Bearer tokens issued by the configured OpenID Connect provider are
validated against its JWKS endpoint.
"""

from saas_lifecycle.auth.dependencies import (
    AdminUser,
    CurrentUser,
    OptionalUser,
    get_current_user,
    get_optional_user,
    require_admin,
)
from saas_lifecycle.auth.jwt import JWTValidationError, JWTValidator, get_jwt_validator
from saas_lifecycle.auth.models import AuthenticatedUser, JWTClaims

__all__ = [
    # Dependencies
    "AdminUser",
    "CurrentUser",
    "OptionalUser",
    "get_current_user",
    "get_optional_user",
    "require_admin",
    # JWT
    "JWTValidationError",
    "JWTValidator",
    "get_jwt_validator",
    # Models
    "AuthenticatedUser",
    "JWTClaims",
]
