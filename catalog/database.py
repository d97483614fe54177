"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from common.config import DATABASE_PATH
from common.constants import ROOT_INODE


def init_database(db_path: Optional[str] = None) -> None:
    """
    Initialize database and create tables if they don't exist.
    """
    path = Path(db_path or DATABASE_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(str(path)) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS inodes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                uid INTEGER NOT NULL,
                gid INTEGER NOT NULL,
                mode INTEGER NOT NULL,
                mtime_ns INTEGER NOT NULL,
                atime_ns INTEGER NOT NULL,
                ctime_ns INTEGER NOT NULL,
                size INTEGER NOT NULL DEFAULT 0,
                rdev INTEGER NOT NULL DEFAULT 0,
                content_id TEXT NOT NULL DEFAULT '',
                tag TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS contents (
                name TEXT NOT NULL,
                inode INTEGER NOT NULL,
                parent_inode INTEGER NOT NULL,
                PRIMARY KEY(parent_inode, name),
                FOREIGN KEY(inode) REFERENCES inodes(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS message_mapping (
                content_id TEXT PRIMARY KEY,
                message_id INTEGER NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_contents_parent ON contents(parent_inode)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_contents_inode ON contents(inode)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_inodes_tag ON inodes(tag)
        """)

        # Keep the root directory's inode number out of the allocation range.
        cursor.execute(
            "INSERT OR IGNORE INTO sqlite_sequence (name, seq) "
            "SELECT 'inodes', ? WHERE NOT EXISTS "
            "(SELECT 1 FROM sqlite_sequence WHERE name = 'inodes')",
            (ROOT_INODE,)
        )

        conn.commit()


@contextmanager
def get_db_connection(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(db_path or DATABASE_PATH, timeout=30.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()

