"""
Store verification history kept in a store's gmb_data document.

    gmb_data = {
        "verified": bool,
        "last_verification_check": iso,
        "verification_history": [entry, ...],
        "voice_of_merchant_state": {"compliance_state": ..., "last_checked": iso},
    }
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

HISTORY_RETENTION_DAYS = 90

TERMINAL_STATUSES = {"COMPLETED", "FAILED", "CANCELLED", "EXPIRED"}


def history_entry(method: str, status: str, source: str, started_at: str,
                  verification_id: Optional[str] = None,
                  previous_status: Optional[bool] = None,
                  details: Optional[dict] = None) -> dict:
    entry = {
        "method": method,
        "status": status,
        "source": source,
        "started_at": started_at,
        "completed_at": started_at if status in TERMINAL_STATUSES else None,
        "details": details or {},
    }
    if verification_id:
        entry["verification_id"] = verification_id
    if previous_status is not None:
        entry["previous_status"] = previous_status
    return entry


def prune_history(history: List[dict], now: datetime,
                  keep_days: int = HISTORY_RETENTION_DAYS) -> List[dict]:
    """Drop finished attempts older than keep_days. Pending ones are always kept."""
    cutoff = (now - timedelta(days=keep_days)).isoformat(timespec="microseconds")
    return [
        entry for entry in history
        if entry.get("status") not in TERMINAL_STATUSES or (entry.get("started_at") or "") >= cutoff
    ]


def status_message(previous: bool, current: bool) -> str:
    if previous != current:
        return "Store is now verified in GMB!" if current else "Store verification status changed to unverified"
    return "Store remains verified in GMB" if current else "Store remains unverified in GMB"


def is_verified(store) -> bool:
    return bool(store.verified or (store.gmb_data or {}).get("verified"))


def verification_stats(stores: Iterable) -> dict:
    total = verified = pending = failed = 0
    for store in stores:
        total += 1
        verified += is_verified(store)
        statuses = {e.get("status") for e in (store.gmb_data or {}).get("verification_history") or []}
        pending += "PENDING" in statuses
        failed += "FAILED" in statuses

    return {
        "total_stores": total,
        "verified_stores": verified,
        "pending_verifications": pending,
        "failed_verifications": failed,
        "verification_rate": round(verified / total * 100, 2) if total else 0,
    }
