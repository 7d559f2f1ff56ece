"""Pydantic models for authenticated users."""

from datetime import datetime

from pydantic import BaseModel, Field


class JWTClaims(BaseModel):
    """JWT token claims."""

    iss: str = Field(..., description="Issuer")
    sub: str = Field(..., description="Subject (user ID)")
    aud: str | list[str] = Field(..., description="Audience")
    exp: int = Field(..., description="Expiration time (Unix timestamp)")
    iat: int = Field(..., description="Issued at time (Unix timestamp)")
    azp: str | None = Field(default=None, description="Authorized party (client_id)")
    scope: str | None = Field(default=None, description="Token scope")
    scp: str | None = Field(default=None, description="Delegated scopes (Azure AD)")
    roles: list[str] = Field(default_factory=list, description="Application roles")
    preferred_username: str | None = Field(default=None, description="Preferred username")
    email: str | None = Field(default=None, description="Email address")
    name: str | None = Field(default=None, description="Full name")
    oid: str | None = Field(default=None, description="Directory object ID")
    tid: str | None = Field(default=None, description="Directory tenant ID")


class AuthenticatedUser(BaseModel):
    """Authenticated user information extracted from JWT."""

    user_id: str = Field(..., description="User ID (sub claim)")
    client_id: str = Field(..., description="Client ID (azp or aud claim)")
    username: str | None = Field(default=None, description="Username")
    email: str | None = Field(default=None, description="Email")
    name: str | None = Field(default=None, description="Full name")
    tenant_id: str | None = Field(default=None, description="Directory tenant ID")
    scopes: list[str] = Field(default_factory=list, description="Granted scopes and roles")
    token_exp: datetime = Field(..., description="Token expiration time")
