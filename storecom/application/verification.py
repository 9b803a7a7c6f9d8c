"""
Verification Service - GMB Verification State of Stores
========================================================

Tracks how each store's Business Profile location was verified:
    - live checks of the location's verified flag (single or bulk)
    - verification attempts started/completed through the Verifications API
    - Voice of Merchant compliance

Everything is recorded in the store's gmb_data document (see
domain/verification.py for its shape).
"""

import logging
from typing import List, Optional

from ..domain.verification import (
    history_entry,
    is_verified,
    prune_history,
    status_message,
    verification_stats,
)
from ..infrastructure.gmb import GmbApiClient, GmbApiError, TokenExpiredError
from ..infrastructure.persistence import (
    ComplianceState,
    Database,
    Store,
    VerificationMethod,
    VerificationStatus,
    now_iso,
    utcnow,
)

logger = logging.getLogger(__name__)


def compliance_state(state: dict) -> str:
    """Voice of Merchant API response -> COMPLIANT / NON_COMPLIANT / UNKNOWN."""
    if state.get("hasVoiceOfMerchant"):
        return ComplianceState.COMPLIANT.value
    if "hasVoiceOfMerchant" in state or state.get("complyWithGuidelines"):
        return ComplianceState.NON_COMPLIANT.value
    return ComplianceState.UNKNOWN.value


class VerificationService:
    """
    Usage:
        service = VerificationService(db)
        result = service.verify_store(store, client)
        stats = service.get_stats(brand_id)
    """

    def __init__(self, db: Database):
        self.db = db

    def _save(self, store: Store, history: Optional[List[dict]] = None, **gmb_updates) -> Store:
        gmb_data = {**(store.gmb_data or {}), **gmb_updates}
        if history is not None:
            gmb_data["verification_history"] = prune_history(history, utcnow())
        fields = {"gmb_data": gmb_data}
        if "verified" in gmb_updates:
            fields["verified"] = gmb_updates["verified"]
        self.db.update_store(store.id, **fields)
        return self.db.get_store(store.id)

    @staticmethod
    def history(store: Store) -> List[dict]:
        return list((store.gmb_data or {}).get("verification_history") or [])

    # ── Live checks ────────────────────────────────────────────────

    def update_verification_status(self, store: Store, verified: bool,
                                   source: str = "sync_check") -> Store:
        """Record an API check of the verified flag and store the new value."""
        now = now_iso()
        entry = history_entry(
            VerificationMethod.API_CHECK.value,
            VerificationStatus.COMPLETED.value if verified else VerificationStatus.FAILED.value,
            source, now, previous_status=is_verified(store),
        )
        return self._save(store, self.history(store) + [entry],
                          verified=verified, last_verification_check=now)

    def verify_store(self, store: Store, client: GmbApiClient,
                     source: str = "manual_verification") -> dict:
        """Re-read the store's location from GMB and record its verified flag."""
        location = client.get_location(store.gmb_location_id)
        previous = is_verified(store)
        updated = self.update_verification_status(store, bool(location.get("verified")), source)

        logger.info(f"Store {store.id} verification checked: {previous} -> {updated.verified}")
        return {
            "store_id": store.id,
            "store_name": store.name,
            "verified": updated.verified,
            "previous_verified": previous,
            "message": status_message(previous, updated.verified),
        }

    def verify_stores(self, stores: List[Store], client: GmbApiClient) -> dict:
        """Bulk check. A failing location is reported without stopping the rest."""
        results = []
        for store in stores:
            if not store.gmb_location_id:
                results.append({"store_id": store.id, "store_name": store.name,
                                "error": "Store is not linked to a GMB location"})
                continue
            try:
                results.append(self.verify_store(store, client, source="bulk_verification"))
            except TokenExpiredError:
                raise
            except GmbApiError as e:
                logger.warning(f"Verification check failed for store {store.id}: {e}")
                results.append({"store_id": store.id, "store_name": store.name, "error": str(e)})

        checked = [r for r in results if "error" not in r]
        return {
            "results": results,
            "summary": {
                "total": len(results),
                "checked": len(checked),
                "verified": sum(1 for r in checked if r["verified"]),
                "newly_verified": sum(1 for r in checked if r["verified"] and not r["previous_verified"]),
                "errors": len(results) - len(checked),
            },
        }

    # ── Verification attempts ──────────────────────────────────────

    def record_started(self, store: Store, verification: dict, options: dict) -> Store:
        """Add a PENDING attempt for a verification returned by the Verifications API."""
        method = verification.get("method") or options.get("method") or VerificationMethod.MANUAL.value
        details = {k: options[k] for k in ("phoneNumber", "emailAddress") if options.get(k)}
        entry = history_entry(
            method, VerificationStatus.PENDING.value, "api_start_verification", now_iso(),
            verification_id=verification.get("name"), details=details,
        )
        return self._save(store, self.history(store) + [entry])

    def complete_attempt(self, store: Store, verification_id: str, success: bool,
                         details: Optional[dict] = None) -> bool:
        """Close a pending attempt. Returns False if the store has no such attempt."""
        history = self.history(store)
        attempt = next((e for e in history if e.get("verification_id") == verification_id), None)
        if attempt is None:
            return False

        now = now_iso()
        attempt.update({
            "status": VerificationStatus.COMPLETED.value if success else VerificationStatus.FAILED.value,
            "completed_at": now,
            "details": {**attempt.get("details", {}), **(details or {})},
        })
        self._save(store, history, verified=success, last_verification_check=now)
        return True

    def update_voice_of_merchant(self, store: Store, state: dict) -> dict:
        voice = {"compliance_state": compliance_state(state), "last_checked": now_iso(), "raw": state}
        self._save(store, voice_of_merchant_state=voice)
        return voice

    # ── Stats ──────────────────────────────────────────────────────

    def get_stats(self, brand_id: Optional[int] = None) -> dict:
        if brand_id is not None:
            stores = self.db.list_brand_stores(brand_id)
        else:
            stores = [s for b in self.db.list_all_brands() for s in self.db.list_brand_stores(b.id)]
        return verification_stats(stores)

    def pending_stores(self, brand_id: Optional[int] = None) -> List[dict]:
        """Stores with at least one pending verification attempt."""
        brands = [brand_id] if brand_id is not None else [b.id for b in self.db.list_all_brands()]
        pending = []
        for bid in brands:
            for store in self.db.list_brand_stores(bid):
                attempts = [e for e in self.history(store) if e.get("status") == VerificationStatus.PENDING.value]
                if attempts:
                    pending.append({"store_id": store.id, "store_name": store.name,
                                    "gmb_location_id": store.gmb_location_id, "attempts": attempts})
        return pending
