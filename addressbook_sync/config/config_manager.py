"""Configuration management utilities."""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import os

TRUE_VALUES = ("1", "true", "yes", "on")
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class RetryConfig:
    """Retry configuration settings for remote store calls."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self):
        """Validate retry configuration."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")


@dataclass
class RemoteStoreSettings:
    """DynamoDB table settings for the remote contact store."""
    table_name: str = "addressbook-contacts"
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    timeout_seconds: float = 10.0

    def __post_init__(self):
        """Validate remote store settings."""
        if not self.table_name.strip():
            raise ValueError("table_name cannot be empty")
        if not self.region.strip():
            raise ValueError("region cannot be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


@dataclass
class LocalSettings:
    """Local preferences file and contact source settings."""
    preferences_path: str = "~/.addressbook_sync/prefs.json"
    contact_source_path: str = "contacts.vcf"
    permission_granted: bool = False

    def __post_init__(self):
        """Validate local settings."""
        if not self.preferences_path.strip():
            raise ValueError("preferences_path cannot be empty")
        if not self.contact_source_path.strip():
            raise ValueError("contact_source_path cannot be empty")


@dataclass
class AppConfig:
    """Complete application configuration."""
    retry_config: RetryConfig = field(default_factory=RetryConfig)
    remote_store: RemoteStoreSettings = field(default_factory=RemoteStoreSettings)
    local: LocalSettings = field(default_factory=LocalSettings)
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration."""
        # Case-insensitive comparison
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")
        self.log_level = self.log_level.upper()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "retry_config": {
                "max_attempts": self.retry_config.max_attempts,
                "base_delay": self.retry_config.base_delay,
                "max_delay": self.retry_config.max_delay
            },
            "remote_store": {
                "table_name": self.remote_store.table_name,
                "region": self.remote_store.region,
                "endpoint_url": self.remote_store.endpoint_url,
                "timeout_seconds": self.remote_store.timeout_seconds
            },
            "local": {
                "preferences_path": self.local.preferences_path,
                "contact_source_path": self.local.contact_source_path,
                "permission_granted": self.local.permission_granted
            },
            "log_level": self.log_level
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Create configuration from dictionary."""
        retry_data = data.get("retry_config", {})
        retry_config = RetryConfig(
            max_attempts=retry_data.get("max_attempts", 3),
            base_delay=retry_data.get("base_delay", 1.0),
            max_delay=retry_data.get("max_delay", 30.0)
        )

        remote_data = data.get("remote_store", {})
        remote_store = RemoteStoreSettings(
            table_name=remote_data.get("table_name", "addressbook-contacts"),
            region=remote_data.get("region", "us-east-1"),
            endpoint_url=remote_data.get("endpoint_url"),
            timeout_seconds=remote_data.get("timeout_seconds", 10.0)
        )

        local_data = data.get("local", {})
        local = LocalSettings(
            preferences_path=local_data.get("preferences_path", "~/.addressbook_sync/prefs.json"),
            contact_source_path=local_data.get("contact_source_path", "contacts.vcf"),
            permission_granted=bool(local_data.get("permission_granted", False))
        )

        return cls(
            retry_config=retry_config,
            remote_store=remote_store,
            local=local,
            log_level=data.get("log_level", "INFO")
        )

    @classmethod
    def from_environment(cls, environ: Optional[Dict[str, str]] = None) -> "AppConfig":
        """Create configuration from environment variables.

        Unset variables fall back to the dataclass defaults.
        """
        env = os.environ if environ is None else environ
        data: Dict[str, Any] = {"remote_store": {}, "local": {}}

        if env.get("CONTACTS_TABLE_NAME"):
            data["remote_store"]["table_name"] = env["CONTACTS_TABLE_NAME"]
        if env.get("AWS_REGION"):
            data["remote_store"]["region"] = env["AWS_REGION"]
        if env.get("DYNAMODB_ENDPOINT_URL"):
            data["remote_store"]["endpoint_url"] = env["DYNAMODB_ENDPOINT_URL"]
        if env.get("REMOTE_TIMEOUT_SECONDS"):
            try:
                data["remote_store"]["timeout_seconds"] = float(env["REMOTE_TIMEOUT_SECONDS"])
            except ValueError:
                raise ValueError(f"Invalid REMOTE_TIMEOUT_SECONDS: {env['REMOTE_TIMEOUT_SECONDS']}")
        if env.get("PREFERENCES_PATH"):
            data["local"]["preferences_path"] = env["PREFERENCES_PATH"]
        if env.get("CONTACT_SOURCE_PATH"):
            data["local"]["contact_source_path"] = env["CONTACT_SOURCE_PATH"]
        if env.get("CONTACTS_PERMISSION_GRANTED"):
            data["local"]["permission_granted"] = env["CONTACTS_PERMISSION_GRANTED"].strip().lower() in TRUE_VALUES
        if env.get("LOG_LEVEL"):
            data["log_level"] = env["LOG_LEVEL"]

        return cls.from_dict(data)


class ConfigManager:
    """Manages application configuration with validation."""

    def __init__(self):
        """Initialize configuration manager."""
        self._config: Optional[AppConfig] = None

    def load_config(self, config_data: Dict[str, Any]) -> AppConfig:
        """Load and validate configuration from dictionary."""
        try:
            self._config = AppConfig.from_dict(config_data)
            return self._config
        except (ValueError, TypeError, AttributeError) as e:
            raise ValueError(f"Invalid configuration: {e}")

    def get_config(self) -> Optional[AppConfig]:
        """Get current configuration."""
        return self._config

    def validate_config(self, config_data: Dict[str, Any]) -> bool:
        """Validate configuration without loading it."""
        try:
            AppConfig.from_dict(config_data)
            return True
        except (ValueError, TypeError, AttributeError):
            return False

    def update_config(self, updates: Dict[str, Any]) -> AppConfig:
        """Update existing configuration with new values.

        Nested sections are merged key by key rather than replaced.
        """
        if self._config is None:
            raise ValueError("No configuration loaded")

        current_dict = self._config.to_dict()
        for key, value in updates.items():
            if isinstance(value, dict) and isinstance(current_dict.get(key), dict):
                current_dict[key].update(value)
            else:
                current_dict[key] = value

        return self.load_config(current_dict)
