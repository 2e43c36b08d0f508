"""Configuration management for Address Book Sync."""

from .config_manager import AppConfig, ConfigManager, LocalSettings, RemoteStoreSettings, RetryConfig

__all__ = ["AppConfig", "ConfigManager", "LocalSettings", "RemoteStoreSettings", "RetryConfig"]
