"""Content store clients and the content-to-message mapping registry."""

from contentstore.client import ContentStoreClient
from contentstore.local_store import LocalContentStore
from contentstore.mapping_registry import (
    LogMappingRegistry,
    MappingRegistry,
    SQLiteMappingRegistry,
)
from contentstore.telegram_store import TelegramContentStore

__all__ = [
    "ContentStoreClient",
    "LocalContentStore",
    "TelegramContentStore",
    "MappingRegistry",
    "SQLiteMappingRegistry",
    "LogMappingRegistry",
]
