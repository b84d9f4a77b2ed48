"""
API configuration package.
Contains settings and configuration management.
"""

from api.config.settings import settings

__all__ = [
    "settings",
]
