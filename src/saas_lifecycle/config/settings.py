"""Application settings and configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SUBSCRIPTION_ID_PLACEHOLDER = "{subscription-id}"


class OfferConfiguration(BaseModel):
    """Publisher offer configuration.

    Built once from settings and handed to the lifecycle orchestrator.
    """

    model_config = ConfigDict(frozen=True)

    is_setup_complete: bool = True
    offer_id: str | None = None
    offer_display_name: str | None = None
    offer_marketing_page_url: str | None = None
    subscription_configuration_url: str | None = None
    subscription_purchase_confirmation_url: str | None = None


class DeploymentConfiguration(BaseModel):
    """Deployment-level switches."""

    model_config = ConfigDict(frozen=True)

    is_test_mode_enabled: bool = False
    setup_url: str = "/setup"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Deployment
    test_mode_enabled: bool = Field(
        default=False,
        description="Enable the /test landing page and /webhook/test endpoints",
    )
    setup_url: str = Field(
        default="/setup",
        description="Where the landing page sends users before setup is complete",
    )
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Offer
    offer_setup_complete: bool = Field(
        default=True,
        description="Whether the publisher has finished configuring the offer",
    )
    offer_id: str | None = Field(default=None, description="Marketplace offer ID")
    offer_display_name: str | None = Field(
        default=None,
        description="Offer name shown on the landing page",
    )
    offer_marketing_page_url: str | None = Field(
        default=None,
        description="Where token-less landing page visitors are redirected",
    )
    subscription_configuration_url: str | None = Field(
        default=None,
        description="Redirect for already-known subscriptions ({subscription-id} is substituted)",
    )
    subscription_purchase_confirmation_url: str | None = Field(
        default=None,
        description="Redirect after purchase confirmation ({subscription-id} is substituted)",
    )

    # Marketplace SaaS fulfillment API
    marketplace_api_base_url: str = Field(
        default="https://marketplaceapi.microsoft.com/api",
        description="Marketplace SaaS fulfillment API base URL",
    )
    marketplace_api_version: str = Field(
        default="2018-08-31",
        description="Marketplace SaaS fulfillment API version",
    )
    marketplace_aad_authority: str = Field(
        default="https://login.microsoftonline.com",
        description="Azure AD authority used to obtain marketplace API tokens",
    )
    marketplace_aad_tenant_id: str = Field(
        default="",
        description="Azure AD tenant of the publisher application",
    )
    marketplace_aad_client_id: str = Field(
        default="",
        description="Azure AD application (client) ID",
    )
    marketplace_aad_client_secret: str = Field(
        default="",
        description="Azure AD application client secret",
    )
    marketplace_api_resource: str = Field(
        default="20e940b3-4c77-4b0b-9a53-9e16a1b010a7",
        description="Azure AD resource ID of the marketplace API",
    )
    marketplace_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for marketplace API calls",
    )

    # Event publishing
    event_publisher: Literal["event_grid", "pubsub", "memory"] = Field(
        default="memory",
        description="Subscription event transport",
    )
    event_grid_topic_endpoint: str = Field(
        default="",
        description="Event Grid custom topic endpoint",
    )
    event_grid_topic_key: str = Field(
        default="",
        description="Event Grid custom topic access key",
    )
    pubsub_project_id: str | None = Field(
        default=None,
        description="Google Cloud project hosting the Pub/Sub topic",
    )
    pubsub_topic_id: str = Field(
        default="saas-subscription-events",
        description="Pub/Sub topic ID",
    )
    event_subject_prefix: str = Field(
        default="subscriptions",
        description="Prefix of the event subject path",
    )
    event_memory_max_events: int = Field(
        default=1000,
        ge=1,
        description="Envelopes kept by the in-memory publisher",
    )

    # Test subscription cache
    subscription_cache: Literal["memory", "database"] = Field(
        default="memory",
        description="Backing store for test-mode subscriptions",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./saas_lifecycle.db",
        description="Database connection URL",
    )
    database_pool_size: int = Field(default=5, description="Connection pool size")
    database_pool_max_overflow: int = Field(
        default=10,
        description="Connections allowed above the pool size",
    )

    # Authentication
    oidc_issuer: str = Field(
        default="https://login.microsoftonline.com/common/v2.0",
        description="Expected token issuer",
    )
    oidc_audience: str = Field(default="", description="Expected token audience")
    oidc_jwks_uri: str = Field(
        default="https://login.microsoftonline.com/common/discovery/v2.0/keys",
        description="JWKS endpoint for token validation",
    )
    admin_scope: str = Field(
        default="saas:admin",
        description="Scope (or role) required for the test landing page",
    )
    skip_jwt_validation: bool = Field(
        default=False,
        description="Skip JWT validation (development only)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")

    # Development Settings
    debug: bool = Field(default=False, description="Enable debug mode")

    # OpenTelemetry Configuration
    otel_enabled: bool = Field(default=False, description="Enable OpenTelemetry tracing")
    otel_service_name: str = Field(
        default="saas_lifecycle",
        description="Service name for OpenTelemetry traces",
    )
    otel_exporter_otlp_endpoint: str = Field(
        default="http://localhost:4317",
        description="OTLP exporter endpoint (gRPC)",
    )
    otel_exporter_otlp_http_endpoint: str = Field(
        default="http://localhost:4318",
        description="OTLP exporter endpoint (HTTP)",
    )
    otel_exporter_type: Literal["otlp", "otlp-http", "console"] = Field(
        default="otlp",
        description="Telemetry exporter type",
    )
    otel_traces_sampler: Literal["always_on", "always_off", "traceidratio"] = Field(
        default="always_on",
        description="Root span sampling strategy; child spans follow their parent",
    )
    otel_traces_sampler_arg: float = Field(
        default=1.0,
        description="Sampler argument (e.g., ratio for traceidratio)",
    )

    def offer_configuration(self) -> OfferConfiguration:
        """Build the immutable offer configuration."""
        return OfferConfiguration(
            is_setup_complete=self.offer_setup_complete,
            offer_id=self.offer_id,
            offer_display_name=self.offer_display_name,
            offer_marketing_page_url=self.offer_marketing_page_url,
            subscription_configuration_url=self.subscription_configuration_url,
            subscription_purchase_confirmation_url=self.subscription_purchase_confirmation_url,
        )

    def deployment_configuration(self) -> DeploymentConfiguration:
        """Build the immutable deployment configuration."""
        return DeploymentConfiguration(
            is_test_mode_enabled=self.test_mode_enabled,
            setup_url=self.setup_url,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
