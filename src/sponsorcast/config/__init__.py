"""Runtime configuration."""

from .runtime import BackoffStrategy, RuntimeSettings, get_settings

__all__ = ["BackoffStrategy", "RuntimeSettings", "get_settings"]
