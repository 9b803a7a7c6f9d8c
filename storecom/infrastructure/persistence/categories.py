"""
GMB category table - the Business Profile category catalog per region/language.
"""

import sqlite3
from typing import List, Optional

from .base import SQLiteRepository
from .models import GmbCategory
from .timestamps import now_iso


class CategoryRepository(SQLiteRepository):

    def upsert_category(self, gmb_category_id: str, display_name: str,
                        region_code: str, language_code: str) -> bool:
        """Insert or refresh a category. Returns True if it was new."""
        now = now_iso()
        with self._get_connection() as conn:
            existing = conn.execute(
                """SELECT id FROM gmb_categories
                   WHERE gmb_category_id = ? AND region_code = ? AND language_code = ?""",
                (gmb_category_id, region_code, language_code)
            ).fetchone()
            if existing:
                conn.execute(
                    """UPDATE gmb_categories
                       SET display_name = ?, status = 'active', last_synced_at = ?, updated_at = ?
                       WHERE id = ?""",
                    (display_name, now, now, existing["id"])
                )
                return False
            self._insert(conn, "gmb_categories", {
                "gmb_category_id": gmb_category_id,
                "display_name": display_name,
                "region_code": region_code,
                "language_code": language_code,
                "status": "active",
                "last_synced_at": now,
                "created_at": now,
                "updated_at": now,
            })
            return True

    def list_categories(self, region_code: str, language_code: str,
                        search: str = "") -> List[GmbCategory]:
        clauses = ["region_code = ?", "language_code = ?", "status = 'active'"]
        params = [region_code, language_code]
        if search:
            clauses.append("display_name LIKE ?")
            params.append(f"%{search}%")
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM gmb_categories {self._where(clauses)} ORDER BY display_name",
                params
            ).fetchall()
            return [self._row_to_category(row) for row in rows]

    def last_category_sync(self, region_code: str, language_code: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                """SELECT MAX(last_synced_at) FROM gmb_categories
                   WHERE region_code = ? AND language_code = ? AND status = 'active'""",
                (region_code, language_code)
            ).fetchone()
            return row[0]

    def _row_to_category(self, row: sqlite3.Row) -> GmbCategory:
        return GmbCategory(
            id=row["id"],
            gmb_category_id=row["gmb_category_id"],
            display_name=row["display_name"],
            region_code=row["region_code"],
            language_code=row["language_code"],
            status=row["status"],
            last_synced_at=row["last_synced_at"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
