"""Relational catalog backed by SQLite: inodes plus (parent, name) edges."""

import sqlite3
from typing import Dict, List, Optional

from catalog.base import Catalog
from catalog.database import get_db_connection, init_database
from catalog.repositories.content_repository import ContentRepository
from catalog.repositories.inode_repository import InodeRepository
from common.exceptions import AlreadyExistsError, NotFoundError, PersistenceError
from common.logging_config import get_logger
from common.types import FileRecord
from common.utils import now_ns

logger = get_logger(__name__)


class SQLiteCatalog(Catalog):
    """
    Catalog persisted in SQLite.

    Inode numbers are stable across remounts. Concurrency control is left to
    SQLite: each mutation runs in its own transaction on its own connection.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        self.inode_repo = InodeRepository()
        self.content_repo = ContentRepository()
        init_database(db_path)

    def lookup(self, parent: int, name: str) -> FileRecord:
        try:
            with get_db_connection(self.db_path) as conn:
                record = self.content_repo.lookup(conn, parent, name)
        except sqlite3.Error as e:
            raise PersistenceError(f"Catalog lookup failed: {e}") from e

        if record is None:
            raise NotFoundError(f"No entry named {name!r} under inode {parent}")
        return record

    def get(self, inode: int) -> FileRecord:
        try:
            with get_db_connection(self.db_path) as conn:
                record = self.content_repo.get_by_inode(conn, inode)
        except sqlite3.Error as e:
            raise PersistenceError(f"Catalog read failed: {e}") from e

        if record is None:
            raise NotFoundError(f"Unknown inode {inode}")
        return record

    def list_dir(self, parent: int) -> List[FileRecord]:
        try:
            with get_db_connection(self.db_path) as conn:
                return self.content_repo.list_children(conn, parent)
        except sqlite3.Error as e:
            raise PersistenceError(f"Catalog listing failed: {e}") from e

    def create(self, parent: int, name: str, tag: str, mode: int, uid: int, gid: int) -> FileRecord:
        timestamp = now_ns()

        with get_db_connection(self.db_path) as conn:
            try:
                inode = self.inode_repo.create_inode(conn, uid, gid, mode, tag, timestamp)
                self.content_repo.add_entry(conn, parent, name, inode)
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise AlreadyExistsError(f"Entry {name!r} already exists under inode {parent}") from e
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Failed to create entry [name={name}]: {e}", exc_info=True)
                raise PersistenceError(f"Catalog create failed: {e}") from e

        logger.debug(f"Created record [inode={inode}, name={name}, tag={tag}]")
        return FileRecord(
            inode=inode,
            parent=parent,
            name=name,
            tag=tag,
            uid=uid,
            gid=gid,
            mode=mode,
            atime=timestamp,
            mtime=timestamp,
            ctime=timestamp,
        )

    def replace_content(self, inode: int, content_id: str, size: int, mtime_ns: int) -> str:
        with get_db_connection(self.db_path) as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                previous = self.inode_repo.get_content_id(conn, inode)
                if previous is None:
                    conn.rollback()
                    raise NotFoundError(f"Unknown inode {inode}")

                self.inode_repo.update_content(conn, inode, content_id, size, mtime_ns)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Failed to update content [inode={inode}]: {e}", exc_info=True)
                raise PersistenceError(f"Catalog update failed: {e}") from e

        return previous

    def touch(self, inode: int, atime_ns: int) -> None:
        with get_db_connection(self.db_path) as conn:
            try:
                touched = self.inode_repo.touch_atime(conn, inode, atime_ns)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Failed to update access time [inode={inode}]: {e}", exc_info=True)
                raise PersistenceError(f"Catalog update failed: {e}") from e

        if not touched:
            raise NotFoundError(f"Unknown inode {inode}")

    def remove(self, inode: int) -> FileRecord:
        with get_db_connection(self.db_path) as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                record = self.content_repo.get_by_inode(conn, inode)
                if record is None:
                    conn.rollback()
                    raise NotFoundError(f"Unknown inode {inode}")

                self.inode_repo.delete_inode(conn, inode)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Failed to remove record [inode={inode}]: {e}", exc_info=True)
                raise PersistenceError(f"Catalog remove failed: {e}") from e

        logger.debug(f"Removed record [inode={inode}, name={record.name}]")
        return record

    def find_by_tag(self, tag: str) -> List[FileRecord]:
        try:
            with get_db_connection(self.db_path) as conn:
                return self.content_repo.find_by_tag(conn, tag)
        except sqlite3.Error as e:
            raise PersistenceError(f"Catalog tag query failed: {e}") from e

    def tag_counts(self) -> Dict[str, int]:
        try:
            with get_db_connection(self.db_path) as conn:
                return self.content_repo.count_by_tag(conn)
        except sqlite3.Error as e:
            raise PersistenceError(f"Catalog tag query failed: {e}") from e
