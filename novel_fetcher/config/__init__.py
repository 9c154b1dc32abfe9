"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import DEFAULT_USER_AGENT, GlobalConfig, HttpClientConfig

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_USER_AGENT",
    "GlobalConfig",
    "HttpClientConfig",
]
