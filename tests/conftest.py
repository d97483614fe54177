"""Shared pytest fixtures for all tests."""

import itertools
import threading
from typing import Dict, Tuple
from unittest.mock import Mock

import pytest

from catalog.memory_catalog import MemoryCatalog
from catalog.sqlite_catalog import SQLiteCatalog
from common.exceptions import NotFoundError
from contentstore.client import ContentStoreClient
from contentstore.mapping_registry import LogMappingRegistry
from tgfs.nodes import FileSystem


class InMemoryChatStore(ContentStoreClient):
    """
    Chat-like content store for tests.

    Mirrors the bot store's addressing: objects live in messages, and
    deletion needs the message id from the mapping registry.
    """

    def __init__(self, registry):
        self.registry = registry
        self.messages: Dict[int, Tuple[str, str, bytes, str]] = {}
        self.uploads = []
        self._ids = itertools.count(100)
        self._lock = threading.Lock()

    def upload(self, name, data, tag):
        with self._lock:
            message_id = next(self._ids)
            content_id = f"file-{message_id}"
            self.messages[message_id] = (content_id, name, bytes(data), f"#{tag}")
            self.uploads.append((name, bytes(data), tag))
        return content_id, message_id

    def download(self, content_id):
        with self._lock:
            for stored_id, _, data, _ in self.messages.values():
                if stored_id == content_id:
                    return data
        raise NotFoundError(f"No message carries {content_id}")

    def delete(self, content_id):
        self.discard(content_id, self.registry.find(content_id))

    def discard(self, content_id, message_id):
        with self._lock:
            if message_id not in self.messages:
                raise NotFoundError(f"Message {message_id} not found")
            del self.messages[message_id]

    def live_content_ids(self):
        with self._lock:
            return {content_id for content_id, _, _, _ in self.messages.values()}


@pytest.fixture(params=["memory", "sqlite"])
def catalog(request, tmp_path):
    """
    Both catalog realizations, so behavior tests run against each.
    """
    if request.param == "sqlite":
        return SQLiteCatalog(str(tmp_path / "catalog.db"))
    return MemoryCatalog()


@pytest.fixture
def registry(tmp_path):
    return LogMappingRegistry(tmp_path / "mapping.log")


@pytest.fixture
def chat_store(registry):
    return InMemoryChatStore(registry)


@pytest.fixture
def invalidator():
    return Mock()


@pytest.fixture
def fs(catalog, chat_store, registry, invalidator):
    return FileSystem(catalog, chat_store, registry, invalidator=invalidator)


@pytest.fixture
def root(fs):
    return fs.root()
