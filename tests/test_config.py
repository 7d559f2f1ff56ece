"""Tests for settings and derived configuration."""

import pydantic
import pytest

from saas_lifecycle.config import DeploymentConfiguration, OfferConfiguration, Settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Test defaults that affect request handling."""
        settings = Settings(_env_file=None, test_mode_enabled=False)

        assert settings.setup_url == "/setup"
        assert settings.marketplace_api_version == "2018-08-31"
        assert settings.event_subject_prefix == "subscriptions"
        assert settings.admin_scope == "saas:admin"

    def test_environment_overrides(self, monkeypatch):
        """Test settings are read from the environment."""
        monkeypatch.setenv("OFFER_ID", "contoso-analytics")
        monkeypatch.setenv("EVENT_PUBLISHER", "pubsub")
        monkeypatch.setenv("PUBSUB_PROJECT_ID", "contoso-project")

        settings = Settings()

        assert settings.offer_id == "contoso-analytics"
        assert settings.event_publisher == "pubsub"
        assert settings.pubsub_project_id == "contoso-project"

    def test_invalid_publisher(self):
        """Test unknown publishers are rejected."""
        with pytest.raises(pydantic.ValidationError):
            Settings(event_publisher="kafka")


class TestDerivedConfiguration:
    """Tests for offer and deployment configuration."""

    def test_offer_configuration(self):
        """Test offer configuration mirrors the settings."""
        settings = Settings(
            offer_setup_complete=False,
            offer_id="contoso-analytics",
            offer_display_name="Contoso Analytics",
            subscription_configuration_url="https://app.example/{subscription-id}",
        )

        offer = settings.offer_configuration()

        assert offer == OfferConfiguration(
            is_setup_complete=False,
            offer_id="contoso-analytics",
            offer_display_name="Contoso Analytics",
            subscription_configuration_url="https://app.example/{subscription-id}",
        )

    def test_deployment_configuration(self):
        """Test deployment configuration mirrors the settings."""
        settings = Settings(test_mode_enabled=True, setup_url="/admin/setup")

        assert settings.deployment_configuration() == DeploymentConfiguration(
            is_test_mode_enabled=True,
            setup_url="/admin/setup",
        )

    def test_configuration_is_immutable(self):
        """Test configuration values can't be changed after construction."""
        deployment = DeploymentConfiguration(is_test_mode_enabled=True)

        with pytest.raises(pydantic.ValidationError):
            deployment.is_test_mode_enabled = False
