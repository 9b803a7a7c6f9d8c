from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from storecom.domain import (
    can_access_brand,
    get_role_permissions,
    has_permission,
    pagination,
    rating_stats,
    slugify,
    store_code_from_name,
    unique_slug,
)
from storecom.domain.performance import aggregate_performance, daily_trend, summarize_daily_metrics
from storecom.domain.verification import history_entry, prune_history, status_message, verification_stats


# ── Permissions ────────────────────────────────────────────────────

@pytest.mark.parametrize("role,permission,expected", [
    ("super_admin", "delete_brand", True),
    ("owner", "edit_brand", True),
    ("owner", "create_brand", False),
    ("owner", "reply_to_review", True),
    ("manager", "reply_to_review", False),
    ("manager", "edit_store", False),
    ("guest", "edit_store", False),
    ("super_admin", "no_such_permission", False),
])
def test_has_permission(role, permission, expected):
    assert has_permission(role, permission) is expected


def test_brand_access_is_scoped_to_own_brand():
    assert can_access_brand("super_admin", None, 7)
    assert can_access_brand("owner", 7, 7)
    assert not can_access_brand("owner", 7, 8)
    assert not can_access_brand("manager", None, 7)
    assert not can_access_brand("guest", 7, 7)


def test_unknown_role_gets_manager_permissions():
    permissions = get_role_permissions("guest")
    assert permissions == get_role_permissions("manager")
    assert not any(permissions.values())


# ── Slugs ──────────────────────────────────────────────────────────

def test_slugify():
    assert slugify("Café Blue, MG Road!") == "caf-blue-mg-road"
    assert slugify("  Hello__World  ") == "hello-world"
    assert slugify("") == ""


def test_unique_slug_appends_counter():
    taken = {"acme", "acme-1"}
    assert unique_slug("acme", taken.__contains__) == "acme-2"
    assert unique_slug("fresh", taken.__contains__) == "fresh"
    assert unique_slug("", taken.__contains__) == "store"


def test_store_code_from_name():
    assert store_code_from_name("Acme  MG Road") == "Acme-MG-Road"


# ── Pagination & rating stats ──────────────────────────────────────

def test_pagination_metadata():
    assert pagination(2, 10, 25) == {
        "page": 2, "limit": 10, "total": 25, "total_pages": 3,
        "has_next_page": True, "has_prev_page": True,
    }
    assert pagination(1, 10, 0)["total_pages"] == 0


def test_rating_stats_counts_calendar_months():
    now = datetime(2024, 3, 15, tzinfo=timezone.utc)
    stats = rating_stats([
        (5, "2024-03-02T10:00:00+00:00"),
        (4, "2024-02-28T10:00:00+00:00"),
        (1, "2023-12-01T10:00:00+00:00"),
        (4, None),
    ], now=now)

    assert stats["total"] == 4
    assert stats["average_rating"] == 3.5
    assert stats["this_month"] == 1
    assert stats["last_month"] == 1
    assert stats["rating_distribution"] == {1: 1, 2: 0, 3: 0, 4: 2, 5: 1}


def test_rating_stats_january_looks_back_to_december():
    now = datetime(2024, 1, 10, tzinfo=timezone.utc)
    stats = rating_stats([(2, "2023-12-20T00:00:00+00:00")], now=now)
    assert stats["last_month"] == 1


def test_rating_stats_empty():
    assert rating_stats([])["average_rating"] == 0


# ── Verification ───────────────────────────────────────────────────

def _store(verified=False, history=None):
    return SimpleNamespace(verified=verified, gmb_data={"verification_history": history or []})


def test_prune_history_keeps_pending_and_recent():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    old = "2024-01-01T00:00:00.000000+00:00"
    recent = "2024-05-20T00:00:00.000000+00:00"
    history = [
        history_entry("PHONE_CALL", "COMPLETED", "api", old),
        history_entry("PHONE_CALL", "PENDING", "api", old, verification_id="locations/2/verifications/1"),
        history_entry("API_CHECK", "FAILED", "api", recent),
    ]
    kept = prune_history(history, now)
    assert [(e["status"], e["started_at"]) for e in kept] == [("PENDING", old), ("FAILED", recent)]
    assert kept[0]["completed_at"] is None
    assert kept[1]["completed_at"] == recent


def test_status_message_describes_change():
    assert status_message(False, True) == "Store is now verified in GMB!"
    assert status_message(True, False) == "Store verification status changed to unverified"
    assert status_message(True, True) == "Store remains verified in GMB"


def test_verification_stats():
    stats = verification_stats([
        _store(verified=True),
        _store(history=[{"status": "PENDING"}]),
        _store(history=[{"status": "FAILED"}, {"status": "FAILED"}]),
        SimpleNamespace(verified=False, gmb_data={"verified": True}),
    ])
    assert stats == {
        "total_stores": 4,
        "verified_stores": 2,
        "pending_verifications": 1,
        "failed_verifications": 1,
        "verification_rate": 50.0,
    }
    assert verification_stats([])["verification_rate"] == 0


# ── Performance ────────────────────────────────────────────────────

DAILY = [
    {"date": "2024-05-01", "metrics": {
        "BUSINESS_IMPRESSIONS_DESKTOP_SEARCH": 10, "BUSINESS_IMPRESSIONS_MOBILE_MAPS": 30,
        "WEBSITE_CLICKS": 2, "CALL_CLICKS": 1,
    }},
    {"date": "2024-05-02", "metrics": {
        "BUSINESS_IMPRESSIONS_MOBILE_SEARCH": 20, "BUSINESS_IMPRESSIONS_DESKTOP_MAPS": 40,
        "BUSINESS_DIRECTION_REQUESTS": 5,
    }},
]


def test_summarize_daily_metrics():
    summary = summarize_daily_metrics(DAILY)
    assert summary["search_impressions"] == 30
    assert summary["maps_impressions"] == 70
    assert summary["desktop_impressions"] == 50
    assert summary["mobile_impressions"] == 50
    assert summary["views"] == 100
    assert (summary["website_clicks"], summary["call_clicks"], summary["direction_requests"]) == (2, 1, 5)
    assert summary["actions"] == 8
    assert summary["conversion_rate"] == 8.0
    assert summarize_daily_metrics([])["conversion_rate"] == 0.0


def test_daily_trend():
    assert daily_trend(DAILY) == [
        {"date": "2024-05-01", "views": 40, "actions": 3},
        {"date": "2024-05-02", "views": 60, "actions": 5},
    ]


def test_aggregate_performance_recomputes_conversion():
    one = summarize_daily_metrics(DAILY[:1])
    two = summarize_daily_metrics(DAILY[1:])
    aggregated = aggregate_performance([one, two])
    assert aggregated["total_stores"] == 2
    assert aggregated["views"] == 100
    assert aggregated["actions"] == 8
    assert aggregated["conversion_rate"] == 8.0
