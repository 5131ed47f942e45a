"""
Configuration management for the trust score engine.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for service configuration.
"""

from backend_trustscore.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
