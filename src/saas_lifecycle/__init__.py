"""SaaS marketplace subscription lifecycle service."""

__version__ = "0.1.0"
