"""Message mapping repository: content_id -> message_id."""

import sqlite3
from typing import Optional


class MappingRepository:
    @staticmethod
    def upsert(conn: sqlite3.Connection, content_id: str, message_id: int) -> None:
        cursor = conn.cursor()
        cursor.execute(
            """
            INSERT INTO message_mapping (content_id, message_id)
            VALUES (?, ?)
            ON CONFLICT(content_id) DO UPDATE SET message_id = excluded.message_id
            """,
            (content_id, message_id)
        )

    @staticmethod
    def find(conn: sqlite3.Connection, content_id: str) -> Optional[int]:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT message_id FROM message_mapping WHERE content_id = ?",
            (content_id,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return row["message_id"]

    @staticmethod
    def delete(conn: sqlite3.Connection, content_id: str) -> bool:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM message_mapping WHERE content_id = ?", (content_id,))
        return cursor.rowcount > 0
