"""Database module: durable SQLite storage shared by the stores."""
import os
import sqlite3
from typing import List, Dict
from contextlib import contextmanager
import logging

logger = logging.getLogger(__name__)


class NotamDatabase:
    """
    Owns the SQLite file and hands out connections.

    Each store (snapshots, change log, notified set, settings) creates its own
    table through ensure_table(). Every get_connection() block is one
    transaction: committed on success, rolled back on error.
    """

    def __init__(self, db_path: str):
        """Initialize database connection."""
        self.db_path = db_path
        self._init_database()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self):
        """Create the parent directory and switch the file to WAL journaling."""
        directory = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(directory, exist_ok=True)

        with self.get_connection() as conn:
            conn.execute('PRAGMA journal_mode=WAL')

        logger.info(f"Database initialized at {self.db_path}")

    def ensure_table(self, ddl: str, *indexes: str):
        """Run CREATE TABLE / CREATE INDEX statements in one transaction."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(ddl)
            for index in indexes:
                cursor.execute(index)

    def execute_custom_query(self, query: str) -> List[Dict]:
        """Execute a custom SQL query."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query)
            return [dict(row) for row in cursor.fetchall()]
