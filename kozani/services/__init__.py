"""
Service Layer

Persistence services for configuration and the signed-in session.
"""

from kozani.services.config_service import ConfigService

__all__ = [
    "ConfigService",
]
