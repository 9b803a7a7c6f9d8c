"""
Store table.
"""

import sqlite3
import logging
from typing import List, Optional, Tuple

from .base import SQLiteRepository
from .models import Store
from .timestamps import now_iso

logger = logging.getLogger(__name__)

STORE_JSON_COLUMNS = (
    "address", "additional_categories", "tags", "hours_of_operation", "amenities",
    "microsite", "social_media", "seo", "gmb_data",
)
STORE_COLUMNS = (
    "brand_id", "name", "store_code", "slug", "email", "phone", "primary_category",
    "gmb_location_id", "gmb_account_id", "place_id", "verified", "last_sync_at",
    "status", "updated_at",
) + STORE_JSON_COLUMNS


class StoreRepository(SQLiteRepository):

    # ── Store CRUD ─────────────────────────────────────────────────

    def create_store(self, data: dict) -> Optional[int]:
        """
        Insert a store document.

        Returns:
            New store id, or None if store_code, slug or gmb_location_id collides.
        """
        now = now_iso()
        values = {
            "brand_id": data["brand_id"],
            "name": data["name"],
            "store_code": data["store_code"],
            "slug": data["slug"].strip().lower(),
            "email": data.get("email", "") or "",
            "phone": data.get("phone", "") or "",
            "address": data.get("address") or {},
            "primary_category": data.get("primary_category", "") or "",
            "additional_categories": data.get("additional_categories") or [],
            "tags": data.get("tags") or [],
            "hours_of_operation": data.get("hours_of_operation") or {},
            "amenities": data.get("amenities") or {},
            "microsite": data.get("microsite") or {},
            "social_media": data.get("social_media") or {},
            "seo": data.get("seo") or {},
            "gmb_location_id": data.get("gmb_location_id"),
            "gmb_account_id": data.get("gmb_account_id"),
            "place_id": data.get("place_id"),
            "verified": bool(data.get("verified", False)),
            "last_sync_at": data.get("last_sync_at"),
            "gmb_data": data.get("gmb_data") or {},
            "status": data.get("status", "draft"),
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self._get_connection() as conn:
                return self._insert(conn, "stores", self._encode(values, STORE_JSON_COLUMNS))
        except sqlite3.IntegrityError as e:
            logger.warning(f"Store {values['name']} ({values['store_code']}) not created: {e}")
            return None

    def get_store(self, store_id: int) -> Optional[Store]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM stores WHERE id = ?", (store_id,)).fetchone()
            return self._row_to_store(row) if row else None

    def get_store_by_slug(self, slug: str) -> Optional[Store]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM stores WHERE slug = ?", (slug.strip().lower(),)
            ).fetchone()
            return self._row_to_store(row) if row else None

    def get_store_by_location_id(self, location_id: str) -> Optional[Store]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM stores WHERE gmb_location_id = ?", (location_id,)
            ).fetchone()
            return self._row_to_store(row) if row else None

    def find_store_for_location(self, location_id: str, name: str) -> Optional[Store]:
        """Match a GMB location to a store, preferring the location id over the name."""
        return self.get_store_by_location_id(location_id) or self._get_store_by_name(name)

    def _get_store_by_name(self, name: str) -> Optional[Store]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM stores WHERE name = ? ORDER BY id LIMIT 1", (name,)
            ).fetchone()
            return self._row_to_store(row) if row else None

    def store_slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT id FROM stores WHERE slug = ? AND id != ?",
                (slug.strip().lower(), exclude_id or 0)
            ).fetchone()
            return row is not None

    def store_code_exists(self, store_code: str, exclude_id: Optional[int] = None) -> bool:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT id FROM stores WHERE store_code = ? AND id != ?",
                (store_code, exclude_id or 0)
            ).fetchone()
            return row is not None

    def list_stores(self, search: str = "", status: str = "",
                    brand_id: Optional[int] = None,
                    page: int = 1, limit: int = 10) -> Tuple[List[Store], int]:
        """List stores newest first, with search over name, code and city."""
        clauses, params = [], []
        if search:
            like = f"%{search}%"
            clauses.append(
                "(name LIKE ? OR store_code LIKE ? OR json_extract(address, '$.city') LIKE ?)"
            )
            params += [like, like, like]
        if status:
            clauses.append("status = ?")
            params.append(status)
        if brand_id is not None:
            clauses.append("brand_id = ?")
            params.append(brand_id)

        where = self._where(clauses)
        with self._get_connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM stores {where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM stores {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit]
            ).fetchall()
            return [self._row_to_store(row) for row in rows], total

    def list_microsite_stores(self, brand_id: int, search: str = "", city: str = "",
                              state: str = "", page: int = 1,
                              limit: int = 12) -> Tuple[List[Store], int]:
        """Active stores of a brand for the public store locator, sorted by name."""
        clauses = ["brand_id = ?", "status = 'active'"]
        params: list = [brand_id]
        if search:
            like = f"%{search}%"
            clauses.append("(name LIKE ? OR json_extract(address, '$.line1') LIKE ?)")
            params += [like, like]
        if city:
            clauses.append("json_extract(address, '$.city') LIKE ?")
            params.append(f"%{city}%")
        if state:
            clauses.append("json_extract(address, '$.state') LIKE ?")
            params.append(f"%{state}%")

        where = self._where(clauses)
        with self._get_connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM stores {where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM stores {where} ORDER BY name COLLATE NOCASE LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit]
            ).fetchall()
            return [self._row_to_store(row) for row in rows], total

    def list_brand_stores(self, brand_id: int) -> List[Store]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM stores WHERE brand_id = ? ORDER BY name", (brand_id,)
            ).fetchall()
            return [self._row_to_store(row) for row in rows]

    def update_store(self, store_id: int, **updates) -> bool:
        """Update store fields. Nested documents are replaced, not merged."""
        if "slug" in updates:
            updates["slug"] = updates["slug"].strip().lower()
        updates["updated_at"] = now_iso()
        return self._update("stores", store_id, updates, STORE_COLUMNS, STORE_JSON_COLUMNS)

    def delete_store(self, store_id: int) -> bool:
        """Delete a store together with its reviews, posts and insights."""
        with self._get_connection() as conn:
            for table in ("reviews", "posts", "performance", "search_keywords"):
                conn.execute(f"DELETE FROM {table} WHERE store_id = ?", (store_id,))
            cursor = conn.execute("DELETE FROM stores WHERE id = ?", (store_id,))
            return cursor.rowcount > 0

    def count_stores_with_location(self) -> int:
        with self._get_connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM stores WHERE gmb_location_id IS NOT NULL AND gmb_location_id != ''"
            ).fetchone()[0]

    def _row_to_store(self, row: sqlite3.Row) -> Store:
        """Convert database row to Store object."""
        return Store(
            id=row["id"],
            brand_id=row["brand_id"],
            name=row["name"],
            store_code=row["store_code"],
            slug=row["slug"],
            email=row["email"] or "",
            phone=row["phone"] or "",
            address=self._loads(row["address"], {}),
            primary_category=row["primary_category"] or "",
            additional_categories=self._loads(row["additional_categories"], []),
            tags=self._loads(row["tags"], []),
            hours_of_operation=self._loads(row["hours_of_operation"], {}),
            amenities=self._loads(row["amenities"], {}),
            microsite=self._loads(row["microsite"], {}),
            social_media=self._loads(row["social_media"], {}),
            seo=self._loads(row["seo"], {}),
            gmb_location_id=row["gmb_location_id"],
            gmb_account_id=row["gmb_account_id"],
            place_id=row["place_id"],
            verified=bool(row["verified"]),
            last_sync_at=row["last_sync_at"],
            gmb_data=self._loads(row["gmb_data"], {}),
            status=row["status"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
