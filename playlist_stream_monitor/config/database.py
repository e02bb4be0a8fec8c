"""Local SQLite content store for Playlist Stream Monitor."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..errors import PersistenceError, RevisionConflictError
from .storage import ContentStore, StoredContent


class SQLiteContentStore(ContentStore):
    """SQLite-backed content store with integer revisions."""

    def __init__(self, db_path: Path):
        """Initialize database handler.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_database()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections.

        Yields:
            sqlite3.Connection: Database connection
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_database(self) -> None:
        """Initialize database schema."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS contents (
                    path TEXT PRIMARY KEY,
                    content BLOB NOT NULL,
                    revision INTEGER NOT NULL DEFAULT 1,
                    message TEXT,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_contents_updated ON contents(updated_at)")

    def get(self, path: str) -> Optional[StoredContent]:
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT content, revision FROM contents WHERE path = ?",
                    (path,)
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

        if row is None:
            return None
        return StoredContent(content=bytes(row['content']), revision=str(row['revision']))

    def put(
        self,
        path: str,
        content: bytes,
        expected_revision: Optional[str] = None,
        message: Optional[str] = None
    ) -> Optional[str]:
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT revision FROM contents WHERE path = ?", (path,))
                row = cursor.fetchone()

                if row is None:
                    if expected_revision is not None:
                        raise RevisionConflictError(f"{path} no longer exists")
                    new_revision = 1
                    cursor.execute("""
                        INSERT INTO contents (path, content, revision, message, updated_at)
                        VALUES (?, ?, ?, ?, ?)
                    """, (path, content, new_revision, message, datetime.now().isoformat()))
                else:
                    if expected_revision is not None and str(row['revision']) != str(expected_revision):
                        raise RevisionConflictError(
                            f"{path} is at revision {row['revision']}, expected {expected_revision}"
                        )
                    new_revision = row['revision'] + 1
                    cursor.execute("""
                        UPDATE contents
                        SET content = ?, revision = ?, message = ?, updated_at = ?
                        WHERE path = ?
                    """, (content, new_revision, message, datetime.now().isoformat(), path))
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e

        return str(new_revision)

