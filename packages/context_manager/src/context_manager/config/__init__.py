"""Configuration loading and tuning constants."""

from context_manager.config.settings import ContextManagerSettings, load_settings

__all__ = ["ContextManagerSettings", "load_settings"]
