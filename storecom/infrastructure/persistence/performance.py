"""
Performance and search keyword tables - Business Profile insights per store.
"""

import sqlite3
from datetime import date
from typing import List, Optional

from .base import SQLiteRepository
from .models import PerformanceRecord, SearchKeyword
from .timestamps import now_iso


class PerformanceRepository(SQLiteRepository):

    # ── Daily metrics ──────────────────────────────────────────────

    def save_performance(self, store_id: int, brand_id: int, account_id: str,
                         start_date: str, end_date: str, metrics: dict,
                         daily: list) -> PerformanceRecord:
        """Insert or replace the record for a store and date range."""
        now = now_iso()
        days = (date.fromisoformat(end_date) - date.fromisoformat(start_date)).days + 1
        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO performance
                       (store_id, brand_id, account_id, start_date, end_date, days,
                        metrics, daily, status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'active', ?, ?)
                   ON CONFLICT(store_id, start_date, end_date) DO UPDATE SET
                       brand_id = excluded.brand_id,
                       account_id = excluded.account_id,
                       days = excluded.days,
                       metrics = excluded.metrics,
                       daily = excluded.daily,
                       updated_at = excluded.updated_at""",
                (store_id, brand_id, account_id, start_date, end_date, days,
                 self._dumps(metrics), self._dumps(daily), now, now)
            )
            row = conn.execute(
                """SELECT * FROM performance
                   WHERE store_id = ? AND start_date = ? AND end_date = ?""",
                (store_id, start_date, end_date)
            ).fetchone()
            return self._row_to_performance(row)

    def latest_performance(self, store_id: int, days: Optional[int] = None) -> Optional[PerformanceRecord]:
        """Most recent record of a store, optionally only ranges of `days` days."""
        clauses, params = ["store_id = ?", "status = 'active'"], [store_id]
        if days is not None:
            clauses.append("days = ?")
            params.append(days)
        with self._get_connection() as conn:
            row = conn.execute(
                f"""SELECT * FROM performance {self._where(clauses)}
                    ORDER BY end_date DESC, updated_at DESC LIMIT 1""",
                params
            ).fetchone()
            return self._row_to_performance(row) if row else None

    def _row_to_performance(self, row: sqlite3.Row) -> PerformanceRecord:
        return PerformanceRecord(
            id=row["id"],
            store_id=row["store_id"],
            brand_id=row["brand_id"],
            account_id=row["account_id"] or "",
            start_date=row["start_date"],
            end_date=row["end_date"],
            days=row["days"],
            metrics=self._loads(row["metrics"], {}),
            daily=self._loads(row["daily"], []),
            status=row["status"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )

    # ── Search keywords ────────────────────────────────────────────

    def upsert_search_keywords(self, store_id: int, brand_id: int, keywords: List[dict]) -> int:
        """Store monthly keyword impressions. Returns the number of rows written."""
        now = now_iso()
        with self._get_connection() as conn:
            for kw in keywords:
                conn.execute(
                    """INSERT INTO search_keywords
                           (store_id, brand_id, keyword, year, month, impressions,
                            below_threshold, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT(store_id, keyword, year, month) DO UPDATE SET
                           impressions = excluded.impressions,
                           below_threshold = excluded.below_threshold,
                           updated_at = excluded.updated_at""",
                    (store_id, brand_id, kw["keyword"], kw["year"], kw["month"],
                     kw.get("impressions", 0), int(bool(kw.get("below_threshold"))), now, now)
                )
        return len(keywords)

    def top_search_keywords(self, store_id: Optional[int] = None, brand_id: Optional[int] = None,
                            limit: int = 20) -> List[dict]:
        """Keywords ranked by impressions summed over every stored month."""
        clauses, params = [], []
        if store_id is not None:
            clauses.append("store_id = ?")
            params.append(store_id)
        if brand_id is not None:
            clauses.append("brand_id = ?")
            params.append(brand_id)
        with self._get_connection() as conn:
            rows = conn.execute(
                f"""SELECT keyword, SUM(impressions) AS impressions,
                           COUNT(DISTINCT store_id) AS stores,
                           MAX(below_threshold) AS below_threshold
                    FROM search_keywords {self._where(clauses)}
                    GROUP BY keyword
                    ORDER BY impressions DESC, keyword
                    LIMIT ?""",
                params + [limit]
            ).fetchall()
            return [
                {
                    "keyword": row["keyword"],
                    "impressions": row["impressions"],
                    "stores": row["stores"],
                    "below_threshold": bool(row["below_threshold"]),
                }
                for row in rows
            ]

    def list_search_keywords(self, store_id: int) -> List[SearchKeyword]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """SELECT * FROM search_keywords WHERE store_id = ?
                   ORDER BY year DESC, month DESC, impressions DESC""",
                (store_id,)
            ).fetchall()
            return [
                SearchKeyword(
                    id=row["id"],
                    store_id=row["store_id"],
                    brand_id=row["brand_id"],
                    keyword=row["keyword"],
                    year=row["year"],
                    month=row["month"],
                    impressions=row["impressions"],
                    below_threshold=bool(row["below_threshold"]),
                    created_at=row["created_at"] or "",
                    updated_at=row["updated_at"] or "",
                )
                for row in rows
            ]
