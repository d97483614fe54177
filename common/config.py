"""Configuration settings for the filesystem and its content store."""

import json
import os
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from common.constants import (
    DEFAULT_DATABASE_PATH,
    DEFAULT_LOCAL_STORE_PATH,
    DEFAULT_MAPPING_FILE,
    TELEGRAM_API_BASE_URL,
    TELEGRAM_MAX_RETRIES,
    TELEGRAM_RETRY_BACKOFF_MULTIPLIER,
    TELEGRAM_TIMEOUT_SECONDS,
)
from common.exceptions import PersistenceError


DATABASE_PATH = os.environ.get("TGFS_DATABASE_PATH", DEFAULT_DATABASE_PATH)

MAPPING_FILE = os.environ.get("TGFS_MAPPING_FILE", DEFAULT_MAPPING_FILE)

LOCAL_STORE_PATH = os.environ.get("TGFS_LOCAL_STORE_PATH", DEFAULT_LOCAL_STORE_PATH)

TELEGRAM_API_URL = os.environ.get("TGFS_TELEGRAM_API_URL", TELEGRAM_API_BASE_URL)


class FilesystemConfig(BaseModel):
    """
    Settings for one mount.

    Accepts both the camelCase keys of the JSON config file
    (``telegramToken``, ``telegramChatID`` ...) and snake_case field names.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    telegram_token: str = Field(default="", alias="telegramToken")
    telegram_chat_id: int = Field(default=0, alias="telegramChatID")
    api_base_url: str = Field(default=TELEGRAM_API_URL, alias="apiBaseUrl")
    timeout: float = Field(default=TELEGRAM_TIMEOUT_SECONDS, gt=0)
    max_retries: int = Field(default=TELEGRAM_MAX_RETRIES, ge=0, alias="maxRetries")
    retry_backoff_multiplier: int = Field(
        default=TELEGRAM_RETRY_BACKOFF_MULTIPLIER, ge=1, alias="retryBackoffMultiplier"
    )

    catalog_backend: Literal["memory", "sqlite"] = Field(default="memory", alias="catalogBackend")
    mapping_backend: Literal["sqlite", "log"] = Field(default="log", alias="mappingBackend")
    store_backend: Literal["telegram", "local"] = Field(default="telegram", alias="storeBackend")

    database_path: str = Field(default=DATABASE_PATH, alias="databasePath")
    mapping_file: str = Field(default=MAPPING_FILE, alias="mappingFile")
    local_store_path: str = Field(default=LOCAL_STORE_PATH, alias="localStorePath")

    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"), alias="logLevel")

    def get_retry_config(self) -> dict:
        """
        Get retry configuration for the content store transport.

        Returns:
            Dictionary with max_retries and retry_backoff_multiplier
        """
        return {
            "max_retries": self.max_retries,
            "retry_backoff_multiplier": self.retry_backoff_multiplier,
        }


def load_config(config_path: Optional[Union[str, Path]] = None) -> FilesystemConfig:
    """
    Load configuration from a JSON file.

    Environment variables ``TGFS_TELEGRAM_TOKEN`` and ``TGFS_TELEGRAM_CHAT_ID``
    override the file so the token does not have to live on disk.

    Args:
        config_path: Path to config JSON file. Defaults to TGFS_CONFIG env var or config.json

    Returns:
        Validated FilesystemConfig

    Raises:
        PersistenceError: If the file cannot be read or is not valid JSON
        pydantic.ValidationError: If a value has the wrong type or range
    """
    path = Path(config_path or os.environ.get("TGFS_CONFIG", "config.json"))

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PersistenceError(f"Cannot load config from {path}: {e}") from e

    token = os.environ.get("TGFS_TELEGRAM_TOKEN")
    if token:
        data["telegramToken"] = token

    chat_id = os.environ.get("TGFS_TELEGRAM_CHAT_ID")
    if chat_id:
        data["telegramChatID"] = chat_id

    return FilesystemConfig.model_validate(data)
