"""Inode repository for database operations."""

import sqlite3
from typing import Optional

from common.logging_config import get_logger

logger = get_logger(__name__)


class InodeRepository:
    @staticmethod
    def create_inode(
        conn: sqlite3.Connection,
        uid: int,
        gid: int,
        mode: int,
        tag: str,
        now_ns: int,
    ) -> int:
        cursor = conn.cursor()
        cursor.execute(
            """
            INSERT INTO inodes (uid, gid, mode, mtime_ns, atime_ns, ctime_ns, size, rdev, content_id, tag)
            VALUES (?, ?, ?, ?, ?, ?, 0, 0, '', ?)
            """,
            (uid, gid, mode, now_ns, now_ns, now_ns, tag)
        )
        inode = cursor.lastrowid
        logger.debug(f"Allocated inode {inode}")
        return inode

    @staticmethod
    def get_content_id(conn: sqlite3.Connection, inode: int) -> Optional[str]:
        cursor = conn.cursor()
        cursor.execute("SELECT content_id FROM inodes WHERE id = ?", (inode,))
        row = cursor.fetchone()
        if row is None:
            return None
        return row["content_id"]

    @staticmethod
    def update_content(
        conn: sqlite3.Connection,
        inode: int,
        content_id: str,
        size: int,
        mtime_ns: int,
    ) -> None:
        """
        Point an inode at a new content identifier.
        """
        cursor = conn.cursor()
        cursor.execute(
            """
            UPDATE inodes
            SET content_id = ?, size = ?, mtime_ns = ?, ctime_ns = ?
            WHERE id = ?
            """,
            (content_id, size, mtime_ns, mtime_ns, inode)
        )

    @staticmethod
    def touch_atime(conn: sqlite3.Connection, inode: int, atime_ns: int) -> bool:
        """
        Returns:
            True if the inode exists and was updated, False otherwise
        """
        cursor = conn.cursor()
        cursor.execute("UPDATE inodes SET atime_ns = ? WHERE id = ?", (atime_ns, inode))
        return cursor.rowcount > 0

    @staticmethod
    def delete_inode(conn: sqlite3.Connection, inode: int) -> None:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM inodes WHERE id = ?", (inode,))
