"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import ApiConfig, DownloaderConfig, RetryPolicy

__all__ = [
    "ApiConfig",
    "ConfigLocator",
    "ConfigRepository",
    "DownloaderConfig",
    "RetryPolicy",
]
