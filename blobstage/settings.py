from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from blobstage.exceptions import ConfigurationError, CredentialError
from blobstage.storage.credentials import (
    StorageCredentials,
    credentials_from_account,
    parse_connection_string,
)

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

_CONTAINER_NAME = re.compile(r"^[a-z0-9](?!.*--)[a-z0-9-]{1,61}[a-z0-9]$")

MIB = 1024 * 1024


class StagingSettings(BaseModel):
    directory: Path = Path("/tmp/blobstage")
    create: bool = True


class StorageSettings(BaseModel):
    backend: Literal["azure", "local"] = "azure"
    container_name: str = "oxalisinbound"
    block_size: int = Field(8 * MIB, ge=MIB, le=4000 * MIB)
    max_workers: int = Field(4, ge=1, le=64)
    connection_string_env: str = "AZURE_STORAGE_CONNECTION_STRING"
    account_name_env: str = "AZURE_STORAGE_ACCOUNT_NAME"
    account_key_env: str = "AZURE_STORAGE_ACCOUNT_KEY"
    local_root: Path = Path("data/blobs")

    @field_validator("container_name")
    @classmethod
    def _check_container_name(cls, value: str) -> str:
        if not _CONTAINER_NAME.match(value):
            raise ValueError(
                "container_name must be 3-63 lowercase letters, digits or single hyphens, "
                "starting and ending with a letter or digit"
            )
        return value

    def credentials(self) -> StorageCredentials:
        """Resolve storage credentials from the environment.

        A connection string takes precedence over a separate account name and key.

        Raises:
            CredentialError: If no credentials are configured or they are malformed.
        """
        connection_string = os.getenv(self.connection_string_env)
        if connection_string:
            return parse_connection_string(connection_string)

        account_name = os.getenv(self.account_name_env)
        account_key = os.getenv(self.account_key_env)
        if account_name and account_key:
            return credentials_from_account(account_name, account_key)

        raise CredentialError(
            "Storage credentials are not configured",
            {
                "connection_string_env": self.connection_string_env,
                "account_name_env": self.account_name_env,
                "account_key_env": self.account_key_env,
            },
        )


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    file: Path | None = None


class Settings(BaseModel):
    staging: StagingSettings = Field(default_factory=StagingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                BLOBSTAGE_CONFIG environment variable or defaults to config/default.yaml.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            FileNotFoundError: If configuration file does not exist.
            ConfigurationError: If configuration is invalid.
        """
        config_path = path or Path(os.getenv("BLOBSTAGE_CONFIG", "config/default.yaml"))
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as fp:
            try:
                payload = yaml.safe_load(fp) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc
        try:
            return cls(**payload)
        except (TypeError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "StagingSettings",
    "StorageSettings",
    "LoggingSettings",
    "get_settings",
]
