"""
Sentiment analytics table - one stored rollup per brand/store.
"""

import sqlite3
from typing import Optional

from .base import SQLiteRepository
from .models import SentimentAnalytics
from .timestamps import now_iso


class SentimentAnalyticsRepository(SQLiteRepository):

    def get_sentiment_analytics(self, entity_id: int,
                                entity_type: str) -> Optional[SentimentAnalytics]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM sentiment_analytics WHERE entity_id = ? AND entity_type = ?",
                (entity_id, entity_type)
            ).fetchone()
            return self._row_to_analytics(row) if row else None

    def save_sentiment_analytics(self, entity_id: int, entity_type: str,
                                 analytics: dict) -> SentimentAnalytics:
        """Insert or replace the rollup for an entity."""
        now = now_iso()
        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO sentiment_analytics
                       (entity_id, entity_type, overall_sentiment, confidence, score,
                        overall_trend, periods, top_positive_themes, top_negative_themes,
                        recommendations, total_reviews, last_analyzed, last_review_date,
                        created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(entity_id, entity_type) DO UPDATE SET
                       overall_sentiment = excluded.overall_sentiment,
                       confidence = excluded.confidence,
                       score = excluded.score,
                       overall_trend = excluded.overall_trend,
                       periods = excluded.periods,
                       top_positive_themes = excluded.top_positive_themes,
                       top_negative_themes = excluded.top_negative_themes,
                       recommendations = excluded.recommendations,
                       total_reviews = excluded.total_reviews,
                       last_analyzed = excluded.last_analyzed,
                       last_review_date = excluded.last_review_date,
                       updated_at = excluded.updated_at""",
                (
                    entity_id, entity_type,
                    analytics["overall_sentiment"],
                    analytics["confidence"],
                    analytics["score"],
                    analytics["overall_trend"],
                    self._dumps(analytics["periods"]),
                    self._dumps(analytics["top_positive_themes"]),
                    self._dumps(analytics["top_negative_themes"]),
                    self._dumps(analytics["recommendations"]),
                    analytics["total_reviews"],
                    analytics.get("last_analyzed") or now,
                    analytics.get("last_review_date"),
                    now, now,
                )
            )
        return self.get_sentiment_analytics(entity_id, entity_type)

    def _row_to_analytics(self, row: sqlite3.Row) -> SentimentAnalytics:
        return SentimentAnalytics(
            id=row["id"],
            entity_id=row["entity_id"],
            entity_type=row["entity_type"],
            overall_sentiment=row["overall_sentiment"],
            confidence=row["confidence"],
            score=row["score"],
            overall_trend=row["overall_trend"],
            periods=self._loads(row["periods"], {}),
            top_positive_themes=self._loads(row["top_positive_themes"], []),
            top_negative_themes=self._loads(row["top_negative_themes"], []),
            recommendations=self._loads(row["recommendations"], []),
            total_reviews=row["total_reviews"],
            last_analyzed=row["last_analyzed"],
            last_review_date=row["last_review_date"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
