"""
Review table.
"""

import sqlite3
import logging
from typing import List, Optional, Tuple

from .base import SQLiteRepository
from .models import Review
from .timestamps import now_iso

logger = logging.getLogger(__name__)

REVIEW_JSON_COLUMNS = ("reviewer", "response", "sentiment_analysis")
REVIEW_COLUMNS = (
    "gmb_review_id", "store_id", "brand_id", "account_id", "star_rating", "comment",
    "gmb_create_time", "gmb_update_time", "has_response", "status", "source", "updated_at",
) + REVIEW_JSON_COLUMNS

# Sentiment rollups are keyed by brand or store
_ENTITY_COLUMNS = {"brand": "brand_id", "store": "store_id"}


class ReviewRepository(SQLiteRepository):

    # ── Review CRUD ────────────────────────────────────────────────

    def create_review(self, data: dict) -> Optional[int]:
        """Insert a review. Returns None if gmb_review_id already exists."""
        try:
            with self._get_connection() as conn:
                return self._insert(conn, "reviews", self._review_values(data))
        except sqlite3.IntegrityError:
            logger.warning(f"Review {data.get('gmb_review_id')} already exists")
            return None

    def upsert_review(self, data: dict) -> Tuple[int, bool]:
        """
        Insert or update a review keyed by gmb_review_id.

        Locally stored sentiment is kept unless the comment changed.

        Returns:
            Tuple of (review id, created flag)
        """
        existing = self.get_review_by_gmb_id(data["gmb_review_id"])
        if existing is None:
            review_id = self.create_review(data)
            if review_id is not None:
                return review_id, True
            existing = self.get_review_by_gmb_id(data["gmb_review_id"])

        updates = {k: v for k, v in data.items() if k in REVIEW_COLUMNS and k != "gmb_review_id"}
        if updates.get("comment", existing.comment) != existing.comment:
            updates["sentiment_analysis"] = None
        self.update_review(existing.id, **updates)
        return existing.id, False

    def get_review(self, review_id: int) -> Optional[Review]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM reviews WHERE id = ?", (review_id,)).fetchone()
            return self._row_to_review(row) if row else None

    def get_review_by_gmb_id(self, gmb_review_id: str) -> Optional[Review]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM reviews WHERE gmb_review_id = ?", (gmb_review_id,)
            ).fetchone()
            return self._row_to_review(row) if row else None

    def get_reviews_by_ids(self, review_ids: List[int]) -> List[Review]:
        if not review_ids:
            return []
        placeholders = ", ".join("?" for _ in review_ids)
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM reviews WHERE id IN ({placeholders}) ORDER BY id",
                list(review_ids)
            ).fetchall()
            return [self._row_to_review(row) for row in rows]

    def _filter_clauses(self, store_id=None, brand_id=None, status="",
                        has_response=None, rating=None, search=""):
        clauses, params = [], []
        if store_id is not None:
            clauses.append("store_id = ?")
            params.append(store_id)
        if brand_id is not None:
            clauses.append("brand_id = ?")
            params.append(brand_id)
        if status:
            clauses.append("status = ?")
            params.append(status)
        if has_response is not None:
            clauses.append("has_response = ?")
            params.append(int(has_response))
        if rating is not None:
            clauses.append("star_rating = ?")
            params.append(rating)
        if search:
            like = f"%{search}%"
            clauses.append("(comment LIKE ? OR json_extract(reviewer, '$.display_name') LIKE ?)")
            params += [like, like]
        return clauses, params

    def list_reviews(self, page: int = 1, limit: int = 20, **filters) -> Tuple[List[Review], int]:
        """
        List reviews newest first (by GMB create time).

        Filters: store_id, brand_id, status, has_response, rating, search.
        """
        clauses, params = self._filter_clauses(**filters)
        where = self._where(clauses)
        with self._get_connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM reviews {where}", params).fetchone()[0]
            rows = conn.execute(
                f"""SELECT * FROM reviews {where}
                    ORDER BY gmb_create_time DESC, id DESC LIMIT ? OFFSET ?""",
                params + [limit, (page - 1) * limit]
            ).fetchall()
            return [self._row_to_review(row) for row in rows], total

    def review_ratings(self, **filters) -> List[Tuple[int, Optional[str]]]:
        """(star_rating, gmb_create_time) pairs for rating statistics."""
        clauses, params = self._filter_clauses(**filters)
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT star_rating, gmb_create_time FROM reviews {self._where(clauses)}",
                params
            ).fetchall()
            return [(row["star_rating"], row["gmb_create_time"]) for row in rows]

    def update_review(self, review_id: int, **updates) -> bool:
        updates["updated_at"] = now_iso()
        return self._update("reviews", review_id, updates, REVIEW_COLUMNS, REVIEW_JSON_COLUMNS)

    def set_review_response(self, review_id: int, comment: str, responded_by: str) -> bool:
        """Record an owner reply on a review."""
        return self.update_review(
            review_id,
            has_response=True,
            response={"comment": comment, "response_time": now_iso(), "responded_by": responded_by},
        )

    def set_review_sentiment(self, review_id: int, analysis: dict) -> bool:
        return self.update_review(review_id, sentiment_analysis=analysis)

    def delete_review(self, review_id: int) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM reviews WHERE id = ?", (review_id,))
            return cursor.rowcount > 0

    def count_gmb_reviews(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM reviews WHERE source = 'gmb'").fetchone()[0]

    # ── Sentiment windows ──────────────────────────────────────────

    def window_reviews(self, entity_type: str, entity_id: int, start: str,
                       end: Optional[str] = None, with_comment: bool = False,
                       unanalyzed_only: bool = False) -> List[Review]:
        """
        Active reviews of a brand/store created within [start, end].

        Args:
            entity_type: "brand" or "store"
            with_comment: Only reviews with a non-empty comment
            unanalyzed_only: Only reviews without stored sentiment
        """
        clauses, params = self._window_clauses(entity_type, entity_id, start, end)
        if with_comment:
            clauses.append("comment IS NOT NULL AND trim(comment) != ''")
        if unanalyzed_only:
            clauses.append("sentiment_analysis IS NULL")
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM reviews {self._where(clauses)} ORDER BY gmb_create_time DESC",
                params
            ).fetchall()
            return [self._row_to_review(row) for row in rows]

    def latest_review_time(self, entity_type: str, entity_id: int, start: str,
                           end: Optional[str] = None) -> Optional[str]:
        """Newest gmb_create_time among commented active reviews in the window."""
        clauses, params = self._window_clauses(entity_type, entity_id, start, end)
        clauses.append("comment IS NOT NULL AND trim(comment) != ''")
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT MAX(gmb_create_time) FROM reviews {self._where(clauses)}", params
            ).fetchone()
            return row[0] if row else None

    def _window_clauses(self, entity_type, entity_id, start, end):
        column = _ENTITY_COLUMNS[entity_type]
        clauses = [f"{column} = ?", "status = 'active'", "gmb_create_time >= ?"]
        params = [entity_id, start]
        if end:
            clauses.append("gmb_create_time <= ?")
            params.append(end)
        return clauses, params

    def _review_values(self, data: dict) -> dict:
        now = now_iso()
        values = {
            "gmb_review_id": data["gmb_review_id"],
            "store_id": data["store_id"],
            "brand_id": data["brand_id"],
            "account_id": data.get("account_id", "") or "",
            "reviewer": data.get("reviewer") or {"display_name": "Anonymous"},
            "star_rating": int(data.get("star_rating", 0) or 0),
            "comment": data.get("comment", "") or "",
            "gmb_create_time": data.get("gmb_create_time"),
            "gmb_update_time": data.get("gmb_update_time"),
            "has_response": bool(data.get("has_response", False)),
            "response": data.get("response"),
            "status": data.get("status", "active"),
            "source": data.get("source", "gmb"),
            "sentiment_analysis": data.get("sentiment_analysis"),
            "created_at": now,
            "updated_at": now,
        }
        return self._encode(values, REVIEW_JSON_COLUMNS)

    def _row_to_review(self, row: sqlite3.Row) -> Review:
        """Convert database row to Review object."""
        return Review(
            id=row["id"],
            gmb_review_id=row["gmb_review_id"],
            store_id=row["store_id"],
            brand_id=row["brand_id"],
            account_id=row["account_id"] or "",
            reviewer=self._loads(row["reviewer"], {}),
            star_rating=row["star_rating"],
            comment=row["comment"] or "",
            gmb_create_time=row["gmb_create_time"],
            gmb_update_time=row["gmb_update_time"],
            has_response=bool(row["has_response"]),
            response=self._loads(row["response"]),
            status=row["status"],
            source=row["source"],
            sentiment_analysis=self._loads(row["sentiment_analysis"]),
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
