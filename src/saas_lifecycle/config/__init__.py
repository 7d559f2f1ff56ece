"""Configuration module for the SaaS lifecycle service."""

from saas_lifecycle.config.settings import (
    DeploymentConfiguration,
    OfferConfiguration,
    Settings,
    get_settings,
)

__all__ = ["DeploymentConfiguration", "OfferConfiguration", "Settings", "get_settings"]
