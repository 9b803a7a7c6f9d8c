"""
Performance Service - Business Profile Insights per Store and Brand
====================================================================

Pulls daily metrics and monthly search keywords for linked stores into the
performance / search_keywords tables, and serves rollups from there:
    - store performance: totals, conversion rate and a daily trend
    - store-wise report: one row per store of a brand plus brand totals
    - top search keywords for a store or brand

Also syncs the GMB category catalog used by the store editor.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from ..domain.performance import aggregate_performance, daily_trend, summarize_daily_metrics
from ..infrastructure.gmb import GmbApiClient, GmbApiError, TokenExpiredError
from ..infrastructure.persistence import Database, PerformanceRecord, Store, now_iso

logger = logging.getLogger(__name__)

# Google publishes metrics with a delay of a few days
METRICS_LAG_DAYS = 3


def date_range(days: int, today: Optional[date] = None) -> Tuple[date, date]:
    """Inclusive (start, end) covering `days` days, ending METRICS_LAG_DAYS ago."""
    end = (today or date.today()) - timedelta(days=METRICS_LAG_DAYS)
    return end - timedelta(days=days - 1), end


def recent_months(months: int, today: Optional[date] = None) -> List[Tuple[int, int]]:
    """(year, month) of the last `months` complete months, newest first."""
    today = today or date.today()
    year, month = today.year, today.month
    result = []
    for _ in range(months):
        month -= 1
        if month == 0:
            year, month = year - 1, 12
        result.append((year, month))
    return result


def performance_report(record: PerformanceRecord) -> dict:
    return {
        "store_id": record.store_id,
        "brand_id": record.brand_id,
        "start_date": record.start_date,
        "end_date": record.end_date,
        "days": record.days,
        "metrics": record.metrics,
        "trend": daily_trend(record.daily),
        "updated_at": record.updated_at,
    }


class PerformanceService:
    """
    Usage:
        service = PerformanceService(db)
        service.sync_store(store, client, days=30)
        report = service.store_wise(brand_id, days=30)
    """

    def __init__(self, db: Database):
        self.db = db

    # ── Sync ───────────────────────────────────────────────────────

    def sync_store(self, store: Store, client: GmbApiClient, days: int = 30,
                   today: Optional[date] = None) -> PerformanceRecord:
        """Fetch `days` days of metrics for a linked store and store the rollup."""
        start, end = date_range(days, today)
        daily = client.get_daily_metrics(store.gmb_location_id, start, end)
        record = self.db.save_performance(
            store.id, store.brand_id, store.gmb_account_id or "",
            start.isoformat(), end.isoformat(), summarize_daily_metrics(daily), daily,
        )
        logger.info(f"Saved {len(daily)} days of performance for store {store.id}")
        return record

    def sync_keywords(self, store: Store, client: GmbApiClient, months: int = 3,
                      today: Optional[date] = None) -> int:
        saved = 0
        for year, month in recent_months(months, today):
            keywords = client.get_search_keywords(store.gmb_location_id, year, month)
            saved += self.db.upsert_search_keywords(store.id, store.brand_id, keywords)
        logger.info(f"Saved {saved} search keyword rows for store {store.id}")
        return saved

    def sync_brand(self, brand_id: int, client: GmbApiClient, days: int = 30,
                   months: int = 3) -> dict:
        """Sync every linked store of a brand. A failing store does not stop the rest."""
        results = {"stores": 0, "keywords": 0, "skipped": 0, "errors": []}
        for store in self.db.list_brand_stores(brand_id):
            if not store.gmb_location_id:
                results["skipped"] += 1
                continue
            try:
                self.sync_store(store, client, days)
                results["keywords"] += self.sync_keywords(store, client, months)
                results["stores"] += 1
            except TokenExpiredError:
                raise
            except GmbApiError as e:
                logger.warning(f"Performance sync failed for store {store.id}: {e}")
                results["errors"].append({"store_id": store.id, "error": str(e)})
        return results

    # ── Reports ────────────────────────────────────────────────────

    def store_performance(self, store_id: int, days: Optional[int] = None) -> Optional[dict]:
        record = self.db.latest_performance(store_id, days)
        return performance_report(record) if record else None

    def store_wise(self, brand_id: int, days: Optional[int] = None) -> dict:
        """Latest stored metrics per store of a brand plus brand totals."""
        stores = []
        for store in self.db.list_brand_stores(brand_id):
            record = self.db.latest_performance(store.id, days)
            if record is None:
                continue
            stores.append({
                "store_id": store.id,
                "store_name": store.name,
                "start_date": record.start_date,
                "end_date": record.end_date,
                **record.metrics,
            })
        stores.sort(key=lambda s: s.get("views", 0), reverse=True)
        return {"stores": stores, "aggregated": aggregate_performance(stores)}

    def top_keywords(self, store_id: Optional[int] = None, brand_id: Optional[int] = None,
                     limit: int = 20) -> List[dict]:
        return self.db.top_search_keywords(store_id=store_id, brand_id=brand_id, limit=limit)

    # ── Categories ─────────────────────────────────────────────────

    def sync_categories(self, client: GmbApiClient, region_code: str = "IN",
                        language_code: str = "en") -> dict:
        categories = client.get_categories(region_code, language_code)
        created = updated = skipped = 0
        for category in categories:
            if not category["id"] or not category["display_name"]:
                skipped += 1
                continue
            if self.db.upsert_category(category["id"], category["display_name"],
                                       region_code, language_code):
                created += 1
            else:
                updated += 1

        return {
            "fetched": len(categories),
            "created": created,
            "updated": updated,
            "skipped": skipped,
            "total_in_database": len(self.db.list_categories(region_code, language_code)),
            "region_code": region_code,
            "language_code": language_code,
            "synced_at": now_iso(),
        }
