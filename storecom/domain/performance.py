"""
Performance rollups over Business Profile daily metrics.

A day row is {"date": "YYYY-MM-DD", "metrics": {"WEBSITE_CLICKS": 3, ...}}.
Views are impressions across search and maps on both platforms; actions are
website clicks, calls and direction requests.
"""

from collections import Counter
from typing import Iterable, List

SEARCH_METRICS = ("BUSINESS_IMPRESSIONS_DESKTOP_SEARCH", "BUSINESS_IMPRESSIONS_MOBILE_SEARCH")
MAPS_METRICS = ("BUSINESS_IMPRESSIONS_DESKTOP_MAPS", "BUSINESS_IMPRESSIONS_MOBILE_MAPS")
ACTION_METRICS = {
    "WEBSITE_CLICKS": "website_clicks",
    "CALL_CLICKS": "call_clicks",
    "BUSINESS_DIRECTION_REQUESTS": "direction_requests",
}

SUMMED_FIELDS = (
    "views", "search_impressions", "maps_impressions", "desktop_impressions",
    "mobile_impressions", "website_clicks", "call_clicks", "direction_requests", "actions",
)


def conversion_rate(actions: int, views: int) -> float:
    """Actions per 100 views, two decimals."""
    return round(actions / views * 100, 2) if views else 0.0


def summarize_daily_metrics(daily: Iterable[dict]) -> dict:
    totals = Counter()
    for day in daily:
        totals.update(day.get("metrics") or {})

    summary = {
        "search_impressions": sum(totals[m] for m in SEARCH_METRICS),
        "maps_impressions": sum(totals[m] for m in MAPS_METRICS),
        "desktop_impressions": sum(totals[m] for m in totals if m.startswith("BUSINESS_IMPRESSIONS_DESKTOP")),
        "mobile_impressions": sum(totals[m] for m in totals if m.startswith("BUSINESS_IMPRESSIONS_MOBILE")),
    }
    summary["views"] = summary["search_impressions"] + summary["maps_impressions"]
    for metric, name in ACTION_METRICS.items():
        summary[name] = totals[metric]
    summary["actions"] = sum(summary[name] for name in ACTION_METRICS.values())
    summary["conversion_rate"] = conversion_rate(summary["actions"], summary["views"])
    return summary


def daily_trend(daily: Iterable[dict]) -> List[dict]:
    """Views and actions per day, for charts."""
    trend = []
    for day in daily:
        summary = summarize_daily_metrics([day])
        trend.append({"date": day["date"], "views": summary["views"], "actions": summary["actions"]})
    return trend


def aggregate_performance(summaries: List[dict]) -> dict:
    """Totals across stores; the conversion rate is recomputed from the totals."""
    aggregated = {name: sum(s.get(name, 0) for s in summaries) for name in SUMMED_FIELDS}
    aggregated["conversion_rate"] = conversion_rate(aggregated["actions"], aggregated["views"])
    aggregated["total_stores"] = len(summaries)
    return aggregated
