"""
Configuration management with schema validation.
Single source of truth for Linkup settings.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigError

# Load environment variables
load_dotenv()

DEFAULT_SETTINGS_FILE = Path(os.getenv("LINKUP_SETTINGS", "config/settings.yaml"))


class AppSettings(BaseModel):
    name: str = "Linkup"
    version: str = "1.0.0"
    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))
    cors_origins: str = "*"


class AuthSettings(BaseModel):
    secret_key: str = Field(default_factory=lambda: os.getenv("LINKUP_SECRET_KEY", "change-me"))
    verify_email_key: str = Field(
        default_factory=lambda: os.getenv("LINKUP_VERIFY_EMAIL_KEY", "change-me-too")
    )
    algorithm: str = "HS256"
    token_expiry_days: int = 30
    verify_email_expiry_seconds: int = 600
    bcrypt_rounds: int = 12
    reset_code_bytes: int = 3


class QuerySettings(BaseModel):
    page_size: int = Field(default=2, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = "logs/linkup.log"
    max_bytes: int = 10485760
    backup_count: int = 5


class EmailSettings(BaseModel):
    enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    use_tls: bool = True
    sender_address: str = "no-reply@linkup.local"
    sender_name: str = "Linkup"
    timeout_seconds: int = 30


class StorageSettings(BaseModel):
    data_dir: str = Field(default_factory=lambda: os.getenv("LINKUP_DATA_DIR", "data"))


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


class ConfigManager:
    """Loads settings.yaml once and keeps the validated result."""

    def __init__(self, settings_path: Path = DEFAULT_SETTINGS_FILE):
        self.settings_path = Path(settings_path)
        self._settings: Optional[Settings] = None

    def _substitute_env_vars(self, value: Any) -> Any:
        """Recursively substitute ${VAR} and ${VAR:default} references"""
        if isinstance(value, str):
            if value.startswith("${") and value.endswith("}"):
                var_expr = value[2:-1]
                if ":" in var_expr:
                    var_name, default = var_expr.split(":", 1)
                    return os.getenv(var_name.strip(), default.strip())
                return os.getenv(var_expr, value)
        elif isinstance(value, dict):
            return {k: self._substitute_env_vars(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self._substitute_env_vars(item) for item in value]
        return value

    def load_settings(self) -> Settings:
        """Load and validate the settings file; defaults when it does not exist"""
        if not self.settings_path.exists():
            self._settings = Settings()
            return self._settings

        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read settings from {self.settings_path}: {e}")

        processed_data = self._substitute_env_vars(raw_data)
        try:
            self._settings = Settings(**processed_data)
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid settings in {self.settings_path}: {e}")
        return self._settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            return self.load_settings()
        return self._settings


config_manager = ConfigManager()
