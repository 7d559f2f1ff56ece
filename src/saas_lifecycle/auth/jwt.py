"""JWT token validation with JWKS support using PyJWT."""

import logging
from datetime import UTC, datetime
from typing import Any

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidTokenError,
    PyJWKClientError,
)

from saas_lifecycle.auth.models import AuthenticatedUser, JWTClaims
from saas_lifecycle.config import Settings, get_settings

logger = logging.getLogger(__name__)


class JWTValidationError(Exception):
    """Exception raised when JWT validation fails."""

    pass


class JWTValidator:
    """JWT token validator for the configured OpenID Connect provider.

    Uses PyJWKClient for automatic JWKS fetching and caching.
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize JWT validator.

        Args:
            settings: Application settings (uses default if not provided)
        """
        self._settings = settings or get_settings()
        self._jwks_client = PyJWKClient(
            self._settings.oidc_jwks_uri,
            cache_keys=True,
            lifespan=3600,  # Cache keys for 1 hour
        )

    @property
    def issuer(self) -> str:
        """Get the expected token issuer."""
        return self._settings.oidc_issuer

    @property
    def audience(self) -> str:
        """Get the expected token audience."""
        return self._settings.oidc_audience

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """Validate a JWT access token.

        Args:
            token: JWT access token string

        Returns:
            AuthenticatedUser with validated claims

        Raises:
            JWTValidationError: If token validation fails
        """
        # Check if validation should be skipped (development only)
        if self._settings.skip_jwt_validation:
            logger.warning("JWT validation skipped - development mode only")
            return self._create_dev_user(token)

        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)

            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_aud": bool(self.audience),
                    "verify_iss": True,
                    "verify_exp": True,
                    "verify_iat": True,
                    "require": ["exp", "iat", "iss", "sub"],
                },
            )
        except ExpiredSignatureError as e:
            logger.warning("Token has expired")
            raise JWTValidationError("Token has expired") from e
        except InvalidAudienceError as e:
            logger.warning("Invalid token audience: %s", e)
            raise JWTValidationError(f"Invalid token audience: {e}") from e
        except InvalidIssuerError as e:
            logger.warning("Invalid token issuer: %s", e)
            raise JWTValidationError(f"Invalid token issuer: {e}") from e
        except PyJWKClientError as e:
            logger.error("Failed to fetch signing key: %s", e)
            raise JWTValidationError(f"Failed to fetch signing key: {e}") from e
        except DecodeError as e:
            logger.error("Failed to decode token: %s", e)
            raise JWTValidationError(f"Failed to decode token: {e}") from e
        except InvalidTokenError as e:
            logger.error("Token validation failed: %s", e)
            raise JWTValidationError(f"Token validation failed: {e}") from e

        return self._claims_to_user(claims)

    def _claims_to_user(self, claims: dict[str, Any]) -> AuthenticatedUser:
        """Convert JWT claims to AuthenticatedUser.

        Scopes come from the space separated ``scope`` or ``scp`` claim;
        application roles are added to the same list.
        """
        jwt_claims = JWTClaims(**claims)

        client_id = jwt_claims.azp
        if not client_id:
            aud = jwt_claims.aud
            client_id = (aud[0] if aud else "") if isinstance(aud, list) else aud

        scopes: list[str] = []
        for granted in (jwt_claims.scope, jwt_claims.scp):
            if granted:
                scopes.extend(granted.split())
        scopes.extend(role for role in jwt_claims.roles if role not in scopes)

        return AuthenticatedUser(
            user_id=jwt_claims.oid or jwt_claims.sub,
            client_id=client_id,
            username=jwt_claims.preferred_username,
            email=jwt_claims.email or jwt_claims.preferred_username,
            name=jwt_claims.name,
            tenant_id=jwt_claims.tid,
            scopes=scopes,
            token_exp=datetime.fromtimestamp(jwt_claims.exp, tz=UTC),
        )

    def _create_dev_user(self, token: str) -> AuthenticatedUser:
        """Create a development user when validation is skipped.

        Args:
            token: The original token (used to extract claims without validation)

        Returns:
            AuthenticatedUser with development claims
        """
        try:
            # Decode without verification for dev mode
            claims = jwt.decode(token, options={"verify_signature": False})
            return self._claims_to_user(claims)
        except Exception:
            # If we can't decode the token at all, return a default dev user
            return AuthenticatedUser(
                user_id="dev-user",
                client_id="dev-client",
                username="developer",
                email="dev@example.com",
                name="Development User",
                tenant_id="dev-tenant",
                scopes=["openid", "profile", "email", self._settings.admin_scope],
                token_exp=datetime.now(UTC).replace(year=2099),
            )


# Global validator instance (lazily initialized)
_validator: JWTValidator | None = None


def get_jwt_validator() -> JWTValidator:
    """Get the global JWT validator instance.

    Returns:
        JWTValidator instance
    """
    global _validator
    if _validator is None:
        _validator = JWTValidator()
    return _validator
