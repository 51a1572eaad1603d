"""Configuration management: environment variables, optional YAML overlay, validation."""
import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chunkstore.core.exceptions import ConfigurationException

ENV_PREFIX = "CHUNKSTORE_"
CONFIG_FILE_ENV = "CHUNKSTORE_CONFIG"

MIB = 1024 * 1024


class Environment(Enum):
    """Deployment environment."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Log level names accepted in configuration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(Enum):
    """Object store implementation used by the application."""
    MINIO = "minio"
    MEMORY = "memory"


@dataclass
class MinioConfig:
    """MinIO connection settings."""
    endpoint: str
    access_key: str
    secret_key: str
    bucket_name: str = "uploads"
    secure: bool = False
    max_retries: int = 3
    retry_delay: float = 0.5


@dataclass
class UploadConfig:
    """Chunked upload tuning."""
    multipart_threshold: int = 100 * MIB
    max_part_workers: int = 8
    max_delete_workers: int = 16
    max_chunk_size: int = 512 * MIB
    default_content_type: str = "application/octet-stream"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    enable_file: bool = False
    log_dir: str = "logs"
    max_file_size: int = 10 * MIB
    backup_count: int = 10


class Settings(BaseSettings):
    """Application settings, read from CHUNKSTORE_* environment variables and .env files."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = Field(default="Chunked Upload API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: Environment = Field(default=Environment.DEVELOPMENT)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)

    # Object store
    storage_backend: StorageBackend = Field(default=StorageBackend.MINIO)
    minio_endpoint: str = Field(default="localhost:9000")
    minio_access_key: str = Field(default="minioadmin")
    minio_secret_key: str = Field(default="minioadmin")
    minio_bucket_name: str = Field(default="uploads", min_length=3, max_length=63)
    minio_secure: bool = Field(default=False)
    store_max_retries: int = Field(default=3, ge=0, le=10)
    store_retry_delay: float = Field(default=0.5, ge=0.0, le=10.0)

    # Chunked uploads
    multipart_threshold: int = Field(default=100 * MIB, ge=1)
    max_part_workers: int = Field(default=8, ge=1, le=100)
    max_delete_workers: int = Field(default=16, ge=1, le=200)
    max_chunk_size: int = Field(default=512 * MIB, ge=1)
    default_content_type: str = Field(default="application/octet-stream")

    # Logging
    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    )
    log_enable_file: bool = Field(default=False)
    log_dir: str = Field(default="logs")
    log_max_file_size: int = Field(default=10 * MIB, ge=MIB, le=1024 * MIB)
    log_backup_count: int = Field(default=10, ge=1, le=50)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v):
        if isinstance(v, str):
            return StorageBackend(v.lower())
        return v

    @model_validator(mode="after")
    def validate_dependencies(self):
        """Cross-field rules."""
        if self.environment == Environment.PRODUCTION:
            if self.storage_backend == StorageBackend.MEMORY:
                raise ValueError("Production environment requires a persistent storage backend")
            if self.debug:
                raise ValueError("Debug mode must be disabled in production")
        return self

    def get_minio_config(self) -> MinioConfig:
        return MinioConfig(
            endpoint=self.minio_endpoint,
            access_key=self.minio_access_key,
            secret_key=self.minio_secret_key,
            bucket_name=self.minio_bucket_name,
            secure=self.minio_secure,
            max_retries=self.store_max_retries,
            retry_delay=self.store_retry_delay
        )

    def get_upload_config(self) -> UploadConfig:
        return UploadConfig(
            multipart_threshold=self.multipart_threshold,
            max_part_workers=self.max_part_workers,
            max_delete_workers=self.max_delete_workers,
            max_chunk_size=self.max_chunk_size,
            default_content_type=self.default_content_type
        )

    def get_logging_config(self) -> LoggingConfig:
        return LoggingConfig(
            level=self.log_level,
            format=self.log_format,
            enable_file=self.log_enable_file,
            log_dir=self.log_dir,
            max_file_size=self.log_max_file_size,
            backup_count=self.log_backup_count
        )


class ConfigManager:
    """Configuration manager (singleton)."""

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None
    _config_cache: Dict[str, Any] = {}

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_file: Optional[str] = None):
        if hasattr(self, '_initialized'):
            return

        self._initialized = True
        self.config_file = config_file or os.environ.get(CONFIG_FILE_ENV)

        self._load_settings()

    def _load_settings(self):
        """Load settings, applying the YAML overlay first when one is configured."""
        try:
            if self.config_file and Path(self.config_file).exists():
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config_data = yaml.safe_load(f) or {}

                # YAML keys map onto the same environment variables Settings reads
                for key, value in config_data.items():
                    env_key = f"{ENV_PREFIX}{key.upper()}"
                    if isinstance(value, (dict, list)):
                        os.environ[env_key] = json.dumps(value)
                    else:
                        os.environ[env_key] = str(value)

            self._settings = Settings()

            self._config_cache = {
                "minio": self._settings.get_minio_config(),
                "upload": self._settings.get_upload_config(),
                "logging": self._settings.get_logging_config()
            }

        except ConfigurationException:
            raise
        except Exception as e:
            raise ConfigurationException(f"Failed to load settings: {str(e)}")

    @property
    def settings(self) -> Settings:
        if not self._settings:
            raise ConfigurationException("Settings not initialized")
        return self._settings

    def get_typed_config(self, config_type: str) -> Any:
        if config_type not in self._config_cache:
            raise ConfigurationException(f"Unknown config type: {config_type}", config_key=config_type)
        return self._config_cache[config_type]

    def export_config(self, format: Literal['yaml', 'json', 'env'] = 'yaml') -> str:
        """Export the effective configuration. Secrets are masked."""
        config_dict = self.settings.model_dump(mode="json")
        for secret in ("minio_access_key", "minio_secret_key"):
            if config_dict.get(secret):
                config_dict[secret] = "***"

        if format == 'json':
            return json.dumps(config_dict, indent=2, ensure_ascii=False)
        elif format == 'env':
            lines = []
            for key, value in config_dict.items():
                env_key = f"{ENV_PREFIX}{key.upper()}"
                if isinstance(value, (dict, list)):
                    lines.append(f"{env_key}='{json.dumps(value)}'")
                else:
                    lines.append(f"{env_key}={value}")
            return "\n".join(lines)
        else:
            return yaml.safe_dump(config_dict, default_flow_style=False, allow_unicode=True)


# Global configuration manager instance
config_manager = ConfigManager()
