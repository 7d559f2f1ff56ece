"""HTTP API for the subscription lifecycle service."""

from saas_lifecycle.api.app import create_app

__all__ = ["create_app"]
