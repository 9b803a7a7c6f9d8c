"""
Sentiment Workflow - Incremental Analysis and Stored Rollups
=============================================================

Flow for one brand or store:
    1. needs_analysis()   - anything new since the stored rollup?
    2. analyze_and_save() - analyze only reviews without stored sentiment,
                            then rebuild the 7d/30d/60d/90d rollup
    3. get_analytics()    - read the stored rollup

Per-review results are stored on the review (sentiment_analysis), so a
review is sent to the analyzer once.
"""

import logging
from datetime import timedelta
from typing import Optional

from ..domain import sentiment_rollup as rollup
from ..infrastructure.llm import SentimentService
from ..infrastructure.persistence import Database, SentimentAnalytics, now_iso, to_iso, utcnow

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 90


class SentimentWorkflow:

    def __init__(self, db: Database, sentiment_service: Optional[SentimentService] = None):
        self.db = db
        self.sentiment = sentiment_service or SentimentService()

    @staticmethod
    def _since(days: int) -> str:
        return to_iso(utcnow() - timedelta(days=days))

    def needs_analysis(self, entity_id: int, entity_type: str = "store",
                       days: int = DEFAULT_WINDOW_DAYS) -> bool:
        start = self._since(days)
        existing = self.db.get_sentiment_analytics(entity_id, entity_type)
        latest = self.db.latest_review_time(entity_type, entity_id, start)

        if existing and existing.last_review_date and latest:
            if existing.last_review_date >= latest:
                return False

        pending = self.db.window_reviews(
            entity_type, entity_id, start, with_comment=True, unanalyzed_only=True
        )
        return len(pending) > 0

    def analyze_and_save(self, entity_id: int, entity_type: str = "store",
                         days: int = DEFAULT_WINDOW_DAYS) -> SentimentAnalytics:
        """
        Analyze new reviews in the window and store a fresh rollup.

        Returns:
            The saved SentimentAnalytics record
        """
        pending = self.db.window_reviews(
            entity_type, entity_id, self._since(days), with_comment=True, unanalyzed_only=True
        )
        if pending:
            logger.info(f"Analyzing {len(pending)} new reviews for {entity_type} {entity_id}")
            results = self.sentiment.analyze_batch([review.comment for review in pending])
            analyzed_at = now_iso()
            for review, result in zip(pending, results):
                self.db.set_review_sentiment(review.id, {**result.to_dict(), "analyzed_at": analyzed_at})

        analytics = self.build_analytics(entity_id, entity_type)
        saved = self.db.save_sentiment_analytics(entity_id, entity_type, analytics)
        logger.info(
            f"Saved sentiment for {entity_type} {entity_id}: "
            f"{saved.overall_sentiment} ({saved.total_reviews} reviews, trend {saved.overall_trend})"
        )
        return saved

    def build_analytics(self, entity_id: int, entity_type: str) -> dict:
        """Rollup document from the sentiment already stored on each review."""
        periods = {}
        for name, period_days in rollup.PERIODS.items():
            reviews = self.db.window_reviews(entity_type, entity_id, self._since(period_days))
            analyzed = [
                (review.comment, review.sentiment_analysis)
                for review in reviews
                if review.comment.strip() and review.sentiment_analysis
            ]
            periods[name] = rollup.summarize_period(name, len(reviews), analyzed)
        score = periods["90d"]["average_score"]
        total = periods["90d"]["total_reviews"]

        return {
            "overall_sentiment": rollup.overall_sentiment(score),
            "confidence": abs(score),
            "score": score,
            "overall_trend": rollup.overall_trend(periods) if total else "new",
            "periods": periods,
            "top_positive_themes": periods["30d"]["top_positive_themes"],
            "top_negative_themes": periods["30d"]["top_negative_themes"],
            "recommendations": rollup.generate_recommendations(periods) if total else [],
            "total_reviews": total,
            "last_analyzed": now_iso(),
            "last_review_date": self._newest_review_time(entity_id, entity_type),
        }

    def _newest_review_time(self, entity_id: int, entity_type: str) -> Optional[str]:
        return self.db.latest_review_time(
            entity_type, entity_id, self._since(rollup.PERIODS["90d"])
        )

    def get_analytics(self, entity_id: int, entity_type: str = "store") -> Optional[SentimentAnalytics]:
        return self.db.get_sentiment_analytics(entity_id, entity_type)

    def get_analysis_status(self, entity_id: int, entity_type: str = "store",
                            days: int = DEFAULT_WINDOW_DAYS) -> dict:
        start = self._since(days)
        commented = self.db.window_reviews(entity_type, entity_id, start, with_comment=True)
        total = len(commented)
        analyzed = sum(1 for review in commented if review.sentiment_analysis)
        existing = self.db.get_sentiment_analytics(entity_id, entity_type)

        return {
            "total_reviews": total,
            "analyzed_reviews": analyzed,
            "remaining_reviews": total - analyzed,
            "analysis_progress": round(analyzed / total * 100) if total else 0,
            "last_analyzed": existing.last_analyzed if existing else None,
            "needs_analysis": self.needs_analysis(entity_id, entity_type, days),
        }
