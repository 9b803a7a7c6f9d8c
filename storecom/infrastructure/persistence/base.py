"""
SQLite repository plumbing shared by every table mixin.
"""

import json
import sqlite3
import logging
from contextlib import contextmanager
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class SQLiteRepository:
    """
    Connection handling and JSON column codec.

    Table-specific mixins (brands, stores, reviews, ...) build on this and are
    combined into the Database class.
    """

    db_path: str

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _dumps(value: Any) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(value, default=str)

    @staticmethod
    def _loads(text: Optional[str], default: Any = None) -> Any:
        if text is None or text == "":
            return default
        try:
            return json.loads(text)
        except (TypeError, ValueError):
            logger.warning(f"Corrupt JSON column value: {text[:60]!r}")
            return default

    @staticmethod
    def _where(clauses: list[str]) -> str:
        return f"WHERE {' AND '.join(clauses)}" if clauses else ""

    def _encode(self, values: dict, json_columns: Iterable[str]) -> dict:
        json_columns = set(json_columns)
        encoded = {}
        for key, value in values.items():
            if key in json_columns:
                encoded[key] = self._dumps(value)
            elif isinstance(value, bool):
                encoded[key] = int(value)
            else:
                encoded[key] = value
        return encoded

    def _insert(self, conn: sqlite3.Connection, table: str, values: dict) -> int:
        columns = ", ".join(values.keys())
        placeholders = ", ".join("?" for _ in values)
        cursor = conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            list(values.values()),
        )
        return cursor.lastrowid

    def _update(self, table: str, row_id: int, updates: dict,
                allowed: Iterable[str], json_columns: Iterable[str]) -> bool:
        """Update whitelisted columns of one row. Returns True if a row changed."""
        allowed = set(allowed)
        unknown = set(updates) - allowed
        if unknown:
            raise ValueError(f"Unknown {table} fields: {', '.join(sorted(unknown))}")
        if not updates:
            return False

        encoded = self._encode(updates, json_columns)
        set_clause = ", ".join(f"{k} = ?" for k in encoded.keys())
        values = list(encoded.values()) + [row_id]

        with self._get_connection() as conn:
            cursor = conn.execute(f"UPDATE {table} SET {set_clause} WHERE id = ?", values)
            return cursor.rowcount > 0
