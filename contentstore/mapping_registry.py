"""
Durable content_id -> message_id registry.

The chat store addresses uploads by message, so deleting an object needs the
message identifier recorded when it was uploaded. Two realizations are
provided: an SQLite table and a single-writer JSON-lines log.
"""

import json
import os
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from catalog.database import get_db_connection, init_database
from catalog.repositories.mapping_repository import MappingRepository
from common.exceptions import NotFoundError, PersistenceError
from common.logging_config import get_logger
from common.types import MappingEntry

logger = get_logger(__name__)


class MappingRegistry(ABC):
    @abstractmethod
    def save(self, content_id: str, message_id: int) -> None:
        """Upsert a mapping; last write wins."""

    @abstractmethod
    def remove(self, content_id: str) -> None:
        """Delete a mapping; absence is not an error."""

    @abstractmethod
    def find(self, content_id: str) -> int:
        """
        Raises:
            NotFoundError: If no mapping exists for ``content_id``
        """


class SQLiteMappingRegistry(MappingRegistry):
    """Mapping registry stored in the ``message_mapping`` table."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        self.mapping_repo = MappingRepository()
        init_database(db_path)

    def save(self, content_id: str, message_id: int) -> None:
        with get_db_connection(self.db_path) as conn:
            try:
                self.mapping_repo.upsert(conn, content_id, message_id)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Failed to save mapping [content_id={content_id}]: {e}", exc_info=True)
                raise PersistenceError(f"Mapping save failed: {e}") from e

        logger.debug(f"Saved mapping [content_id={content_id}, message_id={message_id}]")

    def remove(self, content_id: str) -> None:
        with get_db_connection(self.db_path) as conn:
            try:
                removed = self.mapping_repo.delete(conn, content_id)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Failed to remove mapping [content_id={content_id}]: {e}", exc_info=True)
                raise PersistenceError(f"Mapping remove failed: {e}") from e

        if removed:
            logger.debug(f"Removed mapping [content_id={content_id}]")

    def find(self, content_id: str) -> int:
        try:
            with get_db_connection(self.db_path) as conn:
                message_id = self.mapping_repo.find(conn, content_id)
        except sqlite3.Error as e:
            raise PersistenceError(f"Mapping lookup failed: {e}") from e

        if message_id is None:
            raise NotFoundError(f"No message mapped to content {content_id}")
        return message_id


def encode_entry(entry: MappingEntry) -> str:
    """
    Encode a mapping as one log line.

    Args:
        entry: Mapping to encode

    Returns:
        JSON object followed by a newline
    """
    return json.dumps(
        {"content_id": entry.content_id, "message_id": entry.message_id},
        separators=(",", ":"),
    ) + "\n"


def decode_line(line: str) -> Optional[MappingEntry]:
    """
    Decode one log line.

    JSON lines are the native format. Plain ``<content_id>:<message_id>``
    lines from older logs are split on the last colon, since the message id
    is always numeric.

    Args:
        line: Raw line, with or without trailing newline

    Returns:
        MappingEntry, or None for blank lines

    Raises:
        ValueError: If the line is neither format
    """
    line = line.strip()
    if not line:
        return None

    if line.startswith("{"):
        data = json.loads(line)
        return MappingEntry(content_id=str(data["content_id"]), message_id=int(data["message_id"]))

    content_id, sep, message_id = line.rpartition(":")
    if not sep or not content_id:
        raise ValueError(f"Malformed mapping line: {line!r}")
    return MappingEntry(content_id=content_id, message_id=int(message_id))


class LogMappingRegistry(MappingRegistry):
    """
    Mapping registry persisted as an append-only JSON-lines log.

    A single lock serializes appends and rewrites, so a removal can never
    drop a concurrently appended entry. Removal rewrites the log from the
    in-memory index through a temporary file and an atomic rename.
    An unterminated last line left by an interrupted append is dropped on
    load and the log is compacted.
    """

    def __init__(self, log_path: Union[str, Path]):
        self._log_path = Path(log_path)
        self._lock = threading.Lock()
        self._entries: Dict[str, int] = {}
        self._load_from_disk()

        logger.info(f"Mapping log loaded [path={self._log_path}, entries={len(self._entries)}]")

    def save(self, content_id: str, message_id: int) -> None:
        line = encode_entry(MappingEntry(content_id=content_id, message_id=message_id))

        with self._lock:
            try:
                self._log_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._log_path, "a", encoding="utf-8") as f:
                    f.write(line)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                logger.error(f"Failed to append mapping [content_id={content_id}]: {e}", exc_info=True)
                raise PersistenceError(f"Mapping save failed: {e}") from e

            self._entries[content_id] = message_id

        logger.debug(f"Saved mapping [content_id={content_id}, message_id={message_id}]")

    def remove(self, content_id: str) -> None:
        with self._lock:
            if content_id not in self._entries:
                return

            remaining = {k: v for k, v in self._entries.items() if k != content_id}
            self._rewrite(remaining)
            self._entries = remaining

        logger.debug(f"Removed mapping [content_id={content_id}]")

    def find(self, content_id: str) -> int:
        with self._lock:
            message_id = self._entries.get(content_id)

        if message_id is None:
            raise NotFoundError(f"No message mapped to content {content_id}")
        return message_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _load_from_disk(self) -> None:
        if not self._log_path.exists():
            return

        try:
            with open(self._log_path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise PersistenceError(f"Cannot read mapping log {self._log_path}: {e}") from e

        lines = content.split("\n")
        tail = lines.pop()

        for lineno, line in enumerate(lines, start=1):
            try:
                entry = decode_line(line)
            except (ValueError, KeyError) as e:
                raise PersistenceError(
                    f"Corrupt mapping log {self._log_path} at line {lineno}: {e}"
                ) from e
            if entry is not None:
                self._entries[entry.content_id] = entry.message_id

        if not tail:
            return

        # Unterminated last line: an append interrupted mid-write.
        try:
            entry = decode_line(tail)
        except (ValueError, KeyError) as e:
            logger.warning(f"Dropping torn last line of mapping log {self._log_path}: {e}")
        else:
            if entry is not None:
                self._entries[entry.content_id] = entry.message_id

        self._rewrite(self._entries)

    def _rewrite(self, entries: Dict[str, int]) -> None:
        tmp_path = None
        try:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self._log_path.parent), prefix=self._log_path.name, suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for content_id, message_id in entries.items():
                    f.write(encode_entry(MappingEntry(content_id=content_id, message_id=message_id)))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._log_path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.error(f"Failed to rewrite mapping log {self._log_path}: {e}", exc_info=True)
            raise PersistenceError(f"Mapping log rewrite failed: {e}") from e
