"""Construction of a FileSystem from configuration."""

from typing import Optional

from catalog.base import Catalog
from catalog.memory_catalog import MemoryCatalog
from catalog.sqlite_catalog import SQLiteCatalog
from common.config import FilesystemConfig
from common.logging_config import get_logger, setup_logging
from contentstore.client import ContentStoreClient
from contentstore.local_store import LocalContentStore
from contentstore.mapping_registry import (
    LogMappingRegistry,
    MappingRegistry,
    SQLiteMappingRegistry,
)
from contentstore.telegram_store import TelegramContentStore
from tgfs.nodes import EntryInvalidator, FileSystem

logger = get_logger(__name__)


def build_catalog(config: FilesystemConfig) -> Catalog:
    if config.catalog_backend == "sqlite":
        return SQLiteCatalog(config.database_path)
    return MemoryCatalog()


def build_registry(config: FilesystemConfig) -> MappingRegistry:
    if config.mapping_backend == "sqlite":
        return SQLiteMappingRegistry(config.database_path)
    return LogMappingRegistry(config.mapping_file)


def build_store(config: FilesystemConfig, registry: MappingRegistry) -> ContentStoreClient:
    if config.store_backend == "local":
        return LocalContentStore(config.local_store_path)

    if not config.telegram_token or not config.telegram_chat_id:
        raise ValueError("telegram_token and telegram_chat_id are required for the telegram store")

    return TelegramContentStore(
        token=config.telegram_token,
        chat_id=config.telegram_chat_id,
        registry=registry,
        api_base_url=config.api_base_url,
        timeout=config.timeout,
        **config.get_retry_config(),
    )


def build_filesystem(
    config: FilesystemConfig,
    invalidator: Optional[EntryInvalidator] = None,
) -> FileSystem:
    """
    Assemble a FileSystem with the realizations named in the config.

    Args:
        config: Validated filesystem configuration
        invalidator: Runtime hook for dropping cached directory entries

    Returns:
        Ready FileSystem
    """
    setup_logging("tgfs", config.log_level)

    catalog = build_catalog(config)
    registry = build_registry(config)
    store = build_store(config, registry)

    logger.info(
        f"Filesystem ready [catalog={config.catalog_backend}, "
        f"mapping={config.mapping_backend}, store={config.store_backend}]"
    )
    return FileSystem(catalog, store, registry, invalidator=invalidator)
