"""Directory entry repository: (parent_inode, name) -> inode edges."""

import sqlite3
from typing import Dict, List, Optional

from common.types import FileRecord

_RECORD_SELECT = """
    SELECT i.id, c.parent_inode, c.name, i.tag, i.uid, i.gid, i.mode, i.size,
           i.atime_ns, i.mtime_ns, i.ctime_ns, i.rdev, i.content_id
    FROM contents c
    JOIN inodes i ON c.inode = i.id
"""


def _row_to_record(row: sqlite3.Row) -> FileRecord:
    return FileRecord(
        inode=row["id"],
        parent=row["parent_inode"],
        name=row["name"],
        tag=row["tag"],
        uid=row["uid"],
        gid=row["gid"],
        mode=row["mode"],
        size=row["size"],
        atime=row["atime_ns"],
        mtime=row["mtime_ns"],
        ctime=row["ctime_ns"],
        rdev=row["rdev"],
        content_id=row["content_id"],
    )


class ContentRepository:
    @staticmethod
    def add_entry(conn: sqlite3.Connection, parent_inode: int, name: str, inode: int) -> None:
        """
        Link an inode under a parent.

        Raises:
            sqlite3.IntegrityError: If (parent_inode, name) already exists
        """
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO contents (name, inode, parent_inode) VALUES (?, ?, ?)",
            (name, inode, parent_inode)
        )

    @staticmethod
    def lookup(conn: sqlite3.Connection, parent_inode: int, name: str) -> Optional[FileRecord]:
        cursor = conn.cursor()
        cursor.execute(
            _RECORD_SELECT + " WHERE c.parent_inode = ? AND c.name = ?",
            (parent_inode, name)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    @staticmethod
    def get_by_inode(conn: sqlite3.Connection, inode: int) -> Optional[FileRecord]:
        cursor = conn.cursor()
        cursor.execute(_RECORD_SELECT + " WHERE i.id = ?", (inode,))
        row = cursor.fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    @staticmethod
    def list_children(conn: sqlite3.Connection, parent_inode: int) -> List[FileRecord]:
        cursor = conn.cursor()
        cursor.execute(_RECORD_SELECT + " WHERE c.parent_inode = ?", (parent_inode,))
        return [_row_to_record(row) for row in cursor.fetchall()]

    @staticmethod
    def find_by_tag(conn: sqlite3.Connection, tag: str) -> List[FileRecord]:
        cursor = conn.cursor()
        cursor.execute(_RECORD_SELECT + " WHERE i.tag = ?", (tag,))
        return [_row_to_record(row) for row in cursor.fetchall()]

    @staticmethod
    def count_by_tag(conn: sqlite3.Connection) -> Dict[str, int]:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT i.tag, COUNT(*) AS count
            FROM contents c
            JOIN inodes i ON c.inode = i.id
            GROUP BY i.tag
            """
        )
        return {row["tag"]: row["count"] for row in cursor.fetchall()}
