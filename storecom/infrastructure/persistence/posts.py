"""
Post table - GMB local posts.
"""

import sqlite3
import logging
from typing import List, Optional, Tuple

from .base import SQLiteRepository
from .models import Post
from .timestamps import now_iso

logger = logging.getLogger(__name__)

POST_JSON_COLUMNS = ("call_to_action", "media", "event")
POST_COLUMNS = (
    "gmb_post_id", "store_id", "brand_id", "account_id", "summary", "gmb_create_time",
    "gmb_update_time", "language_code", "state", "topic_type", "search_url", "status",
    "source", "updated_at",
) + POST_JSON_COLUMNS


class PostRepository(SQLiteRepository):

    # ── Post CRUD ──────────────────────────────────────────────────

    def create_post(self, data: dict) -> Optional[int]:
        """Insert a post. Returns None if gmb_post_id already exists."""
        now = now_iso()
        values = {
            "gmb_post_id": data["gmb_post_id"],
            "store_id": data["store_id"],
            "brand_id": data["brand_id"],
            "account_id": data.get("account_id", "") or "",
            "summary": data.get("summary", "") or "",
            "call_to_action": data.get("call_to_action"),
            "media": data.get("media") or [],
            "gmb_create_time": data.get("gmb_create_time"),
            "gmb_update_time": data.get("gmb_update_time"),
            "language_code": data.get("language_code") or "en",
            "state": data.get("state") or "LIVE",
            "topic_type": data.get("topic_type") or "STANDARD",
            "event": data.get("event"),
            "search_url": data.get("search_url", "") or "",
            "status": data.get("status", "active"),
            "source": data.get("source", "gmb"),
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self._get_connection() as conn:
                return self._insert(conn, "posts", self._encode(values, POST_JSON_COLUMNS))
        except sqlite3.IntegrityError:
            logger.warning(f"Post {values['gmb_post_id']} already exists")
            return None

    def upsert_post(self, data: dict) -> Tuple[int, bool]:
        """Insert or update a post keyed by gmb_post_id. Returns (id, created)."""
        existing = self.get_post_by_gmb_id(data["gmb_post_id"])
        if existing is None:
            post_id = self.create_post(data)
            if post_id is not None:
                return post_id, True
            existing = self.get_post_by_gmb_id(data["gmb_post_id"])

        updates = {k: v for k, v in data.items() if k in POST_COLUMNS and k != "gmb_post_id"}
        self.update_post(existing.id, **updates)
        return existing.id, False

    def get_post(self, post_id: int) -> Optional[Post]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (post_id,)).fetchone()
            return self._row_to_post(row) if row else None

    def get_post_by_gmb_id(self, gmb_post_id: str) -> Optional[Post]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM posts WHERE gmb_post_id = ?", (gmb_post_id,)
            ).fetchone()
            return self._row_to_post(row) if row else None

    def list_posts(self, limit: int = 50, skip: int = 0, store_id: Optional[int] = None,
                   brand_id: Optional[int] = None, account_id: str = "",
                   topic_type: str = "", state: str = "",
                   status: str = "active") -> Tuple[List[Post], int]:
        """List posts newest first (by GMB create time)."""
        clauses, params = [], []
        for column, value in (("store_id", store_id), ("brand_id", brand_id)):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        for column, value in (("account_id", account_id), ("topic_type", topic_type),
                              ("state", state), ("status", status)):
            if value:
                clauses.append(f"{column} = ?")
                params.append(value)

        where = self._where(clauses)
        with self._get_connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM posts {where}", params).fetchone()[0]
            rows = conn.execute(
                f"""SELECT * FROM posts {where}
                    ORDER BY gmb_create_time DESC, id DESC LIMIT ? OFFSET ?""",
                params + [limit, skip]
            ).fetchall()
            return [self._row_to_post(row) for row in rows], total

    def update_post(self, post_id: int, **updates) -> bool:
        updates["updated_at"] = now_iso()
        return self._update("posts", post_id, updates, POST_COLUMNS, POST_JSON_COLUMNS)

    def delete_post_by_gmb_id(self, gmb_post_id: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM posts WHERE gmb_post_id = ?", (gmb_post_id,))
            return cursor.rowcount > 0

    def count_gmb_posts(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM posts WHERE source = 'gmb'").fetchone()[0]

    def _row_to_post(self, row: sqlite3.Row) -> Post:
        return Post(
            id=row["id"],
            gmb_post_id=row["gmb_post_id"],
            store_id=row["store_id"],
            brand_id=row["brand_id"],
            account_id=row["account_id"] or "",
            summary=row["summary"] or "",
            call_to_action=self._loads(row["call_to_action"]),
            media=self._loads(row["media"], []),
            gmb_create_time=row["gmb_create_time"],
            gmb_update_time=row["gmb_update_time"],
            language_code=row["language_code"] or "en",
            state=row["state"],
            topic_type=row["topic_type"],
            event=self._loads(row["event"]),
            search_url=row["search_url"] or "",
            status=row["status"],
            source=row["source"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
