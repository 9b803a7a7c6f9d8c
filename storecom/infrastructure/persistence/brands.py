"""
Brand table.
"""

import sqlite3
import logging
from typing import List, Optional, Tuple

from .base import SQLiteRepository
from .models import Brand, default_branding, default_brand_settings
from .timestamps import now_iso

logger = logging.getLogger(__name__)

BRAND_JSON_COLUMNS = (
    "logo", "additional_categories", "address", "branding", "content", "users", "settings",
)
BRAND_COLUMNS = (
    "name", "slug", "email", "description", "website", "phone", "industry",
    "primary_category", "status", "updated_at",
) + BRAND_JSON_COLUMNS


class BrandRepository(SQLiteRepository):

    # ── Brand CRUD ─────────────────────────────────────────────────

    def create_brand(self, data: dict) -> Optional[int]:
        """
        Insert a brand document.

        Args:
            data: Brand fields (see models.Brand); nested documents as dicts.

        Returns:
            New brand id, or None if the slug is already taken.
        """
        now = now_iso()
        values = {
            "name": data["name"],
            "slug": data["slug"].strip().lower(),
            "email": data.get("email", ""),
            "description": data.get("description", ""),
            "logo": data.get("logo") or {},
            "website": data.get("website", "") or "",
            "phone": data.get("phone", "") or "",
            "industry": data.get("industry", "") or "",
            "primary_category": data.get("primary_category", "") or "",
            "additional_categories": data.get("additional_categories") or [],
            "address": data.get("address") or {},
            "branding": data.get("branding") or default_branding(),
            "content": data.get("content") or {},
            "users": data.get("users") or {},
            "settings": data.get("settings") or default_brand_settings(),
            "status": data.get("status", "active"),
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self._get_connection() as conn:
                return self._insert(conn, "brands", self._encode(values, BRAND_JSON_COLUMNS))
        except sqlite3.IntegrityError:
            logger.warning(f"Brand with slug {values['slug']} already exists")
            return None

    def get_brand(self, brand_id: int) -> Optional[Brand]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM brands WHERE id = ?", (brand_id,)).fetchone()
            return self._row_to_brand(row) if row else None

    def get_brand_by_slug(self, slug: str) -> Optional[Brand]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM brands WHERE slug = ?", (slug.strip().lower(),)
            ).fetchone()
            return self._row_to_brand(row) if row else None

    def get_brand_by_user_email(self, email: str) -> Optional[Brand]:
        """Find the brand whose owner or manager login uses this email."""
        email = email.strip().lower()
        with self._get_connection() as conn:
            row = conn.execute(
                """SELECT * FROM brands
                   WHERE lower(json_extract(users, '$.owner.email')) = ?
                      OR lower(json_extract(users, '$.manager.email')) = ?
                   ORDER BY id LIMIT 1""",
                (email, email)
            ).fetchone()
            return self._row_to_brand(row) if row else None

    def find_brand_for_location(self, name: str, location_id: str) -> Optional[Brand]:
        """Match a GMB location to a brand by name or by linked location id."""
        with self._get_connection() as conn:
            row = conn.execute(
                """SELECT * FROM brands
                   WHERE json_extract(settings, '$.gmb_integration.gmb_location_id') = ?
                      OR name = ?
                   ORDER BY CASE WHEN json_extract(settings, '$.gmb_integration.gmb_location_id') = ?
                                 THEN 0 ELSE 1 END, id
                   LIMIT 1""",
                (location_id, name, location_id)
            ).fetchone()
            return self._row_to_brand(row) if row else None

    def brand_slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT id FROM brands WHERE slug = ? AND id != ?",
                (slug.strip().lower(), exclude_id or 0)
            ).fetchone()
            return row is not None

    def owner_email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        with self._get_connection() as conn:
            row = conn.execute(
                """SELECT id FROM brands
                   WHERE lower(json_extract(users, '$.owner.email')) = ? AND id != ?""",
                (email.strip().lower(), exclude_id or 0)
            ).fetchone()
            return row is not None

    def list_brands(self, search: str = "", status: str = "",
                    brand_id: Optional[int] = None,
                    page: int = 1, limit: int = 10) -> Tuple[List[Brand], int]:
        """
        List brands newest first.

        Returns:
            Tuple of (brands on this page, total matching count)
        """
        clauses, params = [], []
        if search:
            like = f"%{search}%"
            clauses.append("(name LIKE ? OR email LIKE ? OR slug LIKE ?)")
            params += [like, like, like]
        if status:
            clauses.append("status = ?")
            params.append(status)
        if brand_id is not None:
            clauses.append("id = ?")
            params.append(brand_id)

        where = self._where(clauses)
        with self._get_connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM brands {where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM brands {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit]
            ).fetchall()
            return [self._row_to_brand(row) for row in rows], total

    def list_all_brands(self) -> List[Brand]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM brands ORDER BY id").fetchall()
            return [self._row_to_brand(row) for row in rows]

    def update_brand(self, brand_id: int, **updates) -> bool:
        """Update brand fields. Nested documents are replaced, not merged."""
        if "slug" in updates:
            updates["slug"] = updates["slug"].strip().lower()
        updates["updated_at"] = now_iso()
        return self._update("brands", brand_id, updates, BRAND_COLUMNS, BRAND_JSON_COLUMNS)

    def delete_brand(self, brand_id: int) -> bool:
        """Delete a brand together with its stores, reviews and posts."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM reviews WHERE brand_id = ?", (brand_id,))
            conn.execute("DELETE FROM posts WHERE brand_id = ?", (brand_id,))
            conn.execute("DELETE FROM performance WHERE brand_id = ?", (brand_id,))
            conn.execute("DELETE FROM search_keywords WHERE brand_id = ?", (brand_id,))
            conn.execute("DELETE FROM stores WHERE brand_id = ?", (brand_id,))
            cursor = conn.execute("DELETE FROM brands WHERE id = ?", (brand_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted brand {brand_id} and its stores/reviews/posts")
        return deleted

    def count_gmb_connected_brands(self) -> int:
        with self._get_connection() as conn:
            return conn.execute(
                """SELECT COUNT(*) FROM brands
                   WHERE json_extract(settings, '$.gmb_integration.connected') = 1"""
            ).fetchone()[0]

    def _row_to_brand(self, row: sqlite3.Row) -> Brand:
        """Convert database row to Brand object."""
        return Brand(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            email=row["email"] or "",
            description=row["description"] or "",
            logo=self._loads(row["logo"], {}),
            website=row["website"] or "",
            phone=row["phone"] or "",
            industry=row["industry"] or "",
            primary_category=row["primary_category"] or "",
            additional_categories=self._loads(row["additional_categories"], []),
            address=self._loads(row["address"], {}),
            branding=self._loads(row["branding"], default_branding()),
            content=self._loads(row["content"], {}),
            users=self._loads(row["users"], {}),
            settings=self._loads(row["settings"], default_brand_settings()),
            status=row["status"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
