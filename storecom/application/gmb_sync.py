"""
GMB Sync Service - Business Profile Data into Local Tables
===========================================================

Pipeline (strictly sequential, one location at a time):
    1. Brand  - create/update from each location (matched by name or linked location id)
    2. Store  - create/update from each location (matched by location id, then name)
    3. Reviews - upsert by gmb_review_id onto the store owning the location
    4. Posts   - upsert by gmb_post_id the same way

sync_all_data() takes already-fetched data (e.g. pushed by the dashboard);
sync_from_google() fetches it with the caller's OAuth tokens first.

EXTENSIBILITY:
    - Scheduled sync: call sync_from_google() from a cron job (see sync_gmb.py)
"""

import logging
from typing import Callable, List, Optional

from ..domain.slugs import slugify, store_code_from_name, unique_slug
from ..infrastructure.gmb import GmbApiClient, GmbApiError, GoogleOAuthClient, TokenExpiredError
from ..infrastructure.persistence import Brand, Database, Store, merge_documents, now_iso, to_iso
from ..infrastructure.persistence.models import default_brand_settings

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Sync could not run (bad payload, unknown account)."""
    pass


def _split_address(formatted: str) -> List[str]:
    return [part.strip() for part in (formatted or "").split(",") if part.strip()]


def location_address(location: dict, country_key: str = "country") -> dict:
    """
    Address document for a location.

    Uses the structured storefront address when present; otherwise splits the
    formatted address ("line1, ..., city, postal code").
    """
    storefront = location.get("storefront_address") or {}
    latlng = location.get("latlng") or {}

    if storefront:
        lines = storefront.get("addressLines") or []
        address = {
            "line1": lines[0] if lines else "",
            "line2": ", ".join(lines[1:]),
            "locality": storefront.get("locality", ""),
            "city": storefront.get("locality", ""),
            "state": storefront.get("administrativeArea", ""),
            "postal_code": storefront.get("postalCode", ""),
            country_key: storefront.get("regionCode") or "IN",
        }
    else:
        parts = _split_address(location.get("address"))
        address = {
            "line1": parts[0] if parts else "",
            "line2": "",
            "locality": parts[-2] if len(parts) > 2 else "",
            "city": parts[-2] if len(parts) > 2 else "",
            "state": "",
            "postal_code": parts[-1] if len(parts) > 1 else "",
            country_key: "IN",
        }

    if latlng:
        address["latitude"] = latlng.get("latitude")
        address["longitude"] = latlng.get("longitude")
    return address


def primary_category(location: dict) -> Optional[str]:
    return location.get("primary_category") or next(iter(location.get("categories") or []), None)


class GmbSyncService:
    """
    Maps GMB locations, reviews and posts onto brands, stores, reviews and posts.

    Usage:
        service = GmbSyncService(db)
        result = service.sync_all_data({"account": ..., "locations": [...], "reviews": [...]})
    """

    def __init__(self, db: Database, oauth: Optional[GoogleOAuthClient] = None,
                 client_factory: Callable[[str], GmbApiClient] = GmbApiClient):
        self.db = db
        self.oauth = oauth or GoogleOAuthClient()
        self.client_factory = client_factory

    # ── Push sync ──────────────────────────────────────────────────

    def sync_all_data(self, gmb_data: dict) -> dict:
        """
        Sync one account's worth of fetched data.

        Args:
            gmb_data: {"account": {...}, "locations": [...], "reviews": [...], "posts": [...]}
                      in the shape produced by GmbApiClient

        Returns:
            {"account", "locations", "brands", "stores", "reviews", "posts"}
        """
        account = gmb_data.get("account")
        locations = gmb_data.get("locations")
        if not account or locations is None:
            raise SyncError("Account and locations data are required")

        account_id = account.get("id", "")
        results = {"brands": 0, "stores": 0, "reviews": 0, "posts": 0}

        for location in locations:
            brand = self.sync_brand_from_location(location, account_id, account.get("name", ""))
            results["brands"] += 1
            self.sync_store_from_location(location, brand.id, account_id)
            results["stores"] += 1

        results["reviews"] = self.save_reviews(gmb_data.get("reviews") or [])
        results["posts"] = self.save_posts(gmb_data.get("posts") or [])

        logger.info(
            f"GMB sync for {account_id}: {len(locations)} locations, "
            f"{results['reviews']} reviews, {results['posts']} posts"
        )
        return {"account": account, "locations": len(locations), **results}

    def sync_brand_from_location(self, location: dict, account_id: str,
                                 account_name: str = "") -> Brand:
        name = location.get("name") or "Unnamed Location"
        location_id = location.get("id", "")
        category = primary_category(location)
        integration = {
            "connected": True,
            "gmb_account_id": account_id,
            "gmb_account_name": account_name or None,
            "gmb_location_id": location_id,
            "last_sync_at": now_iso(),
        }

        existing = self.db.find_brand_for_location(name, location_id)
        if existing:
            self.db.update_brand(
                existing.id,
                name=name,
                description=existing.description or self._brand_description(location, category),
                website=location.get("website_url") or existing.website,
                phone=location.get("phone_number") or existing.phone,
                industry=category or existing.industry or "business",
                primary_category=category or existing.primary_category or "business",
                address=existing.address or location_address(location),
                settings=merge_documents(existing.settings, {"gmb_integration": integration}),
            )
            return self.db.get_brand(existing.id)

        slug = unique_slug(slugify(name) or "brand", self.db.brand_slug_exists)
        brand_id = self.db.create_brand({
            "name": name,
            "slug": slug,
            "description": self._brand_description(location, category),
            "website": location.get("website_url") or "",
            "phone": location.get("phone_number") or "",
            "industry": category or "business",
            "primary_category": category or "business",
            "address": location_address(location),
            "settings": merge_documents(default_brand_settings(), {"gmb_integration": integration}),
        })
        if brand_id is None:
            raise SyncError(f"Could not create brand for location {location_id}")
        logger.info(f"Created brand '{name}' ({slug}) from {location_id}")
        return self.db.get_brand(brand_id)

    @staticmethod
    def _brand_description(location: dict, category: Optional[str]) -> str:
        return f"{location.get('name')} - {category or 'Business'} located at {location.get('address', '')}"

    def sync_store_from_location(self, location: dict, brand_id: int,
                                 account_id: str = "") -> Store:
        name = location.get("name") or "Unnamed Location"
        location_id = location.get("id", "")
        verified = bool(location.get("verified", False))
        now = now_iso()

        metadata = {
            "categories": location.get("additional_categories") or [],
            "website_url": location.get("website_url"),
            "phone_number": location.get("phone_number"),
            "business_status": (location.get("open_info") or {}).get("status") or "OPEN",
            "price_level": location.get("price_level") or "PRICE_LEVEL_UNSPECIFIED",
            "primary_category": location.get("primary_category"),
            "additional_categories": location.get("additional_categories") or [],
            "maps_uri": location.get("maps_uri"),
        }
        fields = {
            "brand_id": brand_id,
            "name": name,
            "primary_category": primary_category(location) or "Business",
            "additional_categories": location.get("additional_categories") or [],
            "gmb_location_id": location_id,
            "gmb_account_id": location.get("account_id") or account_id,
            "place_id": location.get("place_id"),
            "verified": verified,
            "last_sync_at": now,
        }

        existing = self.db.find_store_for_location(location_id, name)
        if existing:
            self.db.update_store(
                existing.id,
                phone=location.get("phone_number") or existing.phone,
                address=merge_documents(existing.address, location_address(location, "country_code")),
                status="active" if verified else (existing.status or "draft"),
                microsite=merge_documents(existing.microsite, {
                    "gmb_url": location.get("website_url") or existing.microsite.get("gmb_url"),
                    "maps_url": location.get("maps_uri"),
                }),
                gmb_data=merge_documents(existing.gmb_data, {
                    "verified": verified, "last_sync_at": now, "metadata": metadata,
                }),
                **fields,
            )
            return self.db.get_store(existing.id)

        base = slugify(name) or "store"
        store_id = self.db.create_store({
            **fields,
            "slug": unique_slug(base, self.db.store_slug_exists),
            "store_code": unique_slug(store_code_from_name(name), self.db.store_code_exists),
            "email": "N/A",
            "phone": location.get("phone_number") or "",
            "address": location_address(location, "country_code"),
            "status": "active" if verified else "draft",
            "microsite": {"gmb_url": location.get("website_url"), "maps_url": location.get("maps_uri")},
            "gmb_data": {"verified": verified, "last_sync_at": now, "metadata": metadata},
        })
        if store_id is None:
            raise SyncError(f"Could not create store for location {location_id}")
        logger.info(f"Created store '{name}' from {location_id}")
        return self.db.get_store(store_id)

    def save_reviews(self, reviews: List[dict]) -> int:
        """Upsert reviews onto the stores owning their locations. Returns the saved count."""
        saved = 0
        for review in reviews:
            owner = self._owner_of(review.get("location_id"))
            if owner is None:
                continue
            store, brand = owner

            response = review.get("response")
            if response:
                response = {
                    "comment": response.get("comment", ""),
                    "response_time": to_iso(response.get("response_time")),
                    "responded_by": response.get("responded_by") or "GMB",
                }
            self.db.upsert_review({
                "gmb_review_id": review["id"],
                "store_id": store.id,
                "brand_id": brand.id,
                "account_id": brand.gmb_integration.get("gmb_account_id") or "",
                "reviewer": review.get("reviewer") or {"display_name": "Anonymous"},
                "star_rating": review.get("star_rating", 0),
                "comment": review.get("comment") or "",
                "gmb_create_time": to_iso(review.get("create_time")),
                "gmb_update_time": to_iso(review.get("update_time")),
                "has_response": response is not None,
                "response": response,
                "status": "active",
                "source": "gmb",
            })
            saved += 1
        return saved

    def save_posts(self, posts: List[dict]) -> int:
        """Upsert posts onto the stores owning their locations. Returns the saved count."""
        saved = 0
        for post in posts:
            owner = self._owner_of(post.get("location_id"))
            if owner is None:
                continue
            store, brand = owner

            self.db.upsert_post({
                "gmb_post_id": post["id"],
                "store_id": store.id,
                "brand_id": brand.id,
                "account_id": brand.gmb_integration.get("gmb_account_id") or "",
                "summary": post.get("summary") or "",
                "call_to_action": post.get("call_to_action"),
                "media": post.get("media") or [],
                "gmb_create_time": to_iso(post.get("create_time")),
                "gmb_update_time": to_iso(post.get("update_time")),
                "language_code": post.get("language_code") or "en",
                "state": post.get("state") or "LIVE",
                "topic_type": post.get("topic_type") or "STANDARD",
                "event": post.get("event"),
                "search_url": post.get("search_url") or "",
                "status": "active",
                "source": "gmb",
            })
            saved += 1
        return saved

    def _owner_of(self, location_id: Optional[str]):
        if not location_id:
            return None
        store = self.db.get_store_by_location_id(location_id)
        if store is None:
            logger.debug(f"No local store for {location_id}; skipping")
            return None
        brand = self.db.get_brand(store.brand_id)
        if brand is None:
            return None
        return store, brand

    # ── Pull sync ──────────────────────────────────────────────────

    def sync_from_google(self, tokens: dict, account_id: Optional[str] = None) -> dict:
        """
        Fetch accounts, locations, reviews and posts with the given tokens and sync them.

        Args:
            tokens: OAuth token dict (refreshed first if expired)
            account_id: Limit to one account ("accounts/123" or "123")

        Returns:
            {"results": totals, "tokens": current tokens, "tokens_refreshed": bool}

        Raises:
            OAuthError: tokens cannot be refreshed
            TokenExpiredError / GmbApiError: account or location listing failed
            SyncError: account_id not among the user's accounts
        """
        tokens, refreshed = self.oauth.get_valid_tokens(tokens)
        client = self.client_factory(tokens.get("access_token"))

        accounts = client.get_accounts()
        for account in accounts:
            self.db.upsert_gmb_account(account["id"], account.get("name") or "", account.get("type") or "")

        if account_id:
            selected = [
                a for a in accounts
                if a["id"] == account_id or a["id"] == f"accounts/{account_id}"
            ]
            if not selected:
                raise SyncError(f"GMB account {account_id} not found")
        else:
            selected = accounts

        totals = {"accounts": len(selected), "locations": 0, "brands": 0,
                  "stores": 0, "reviews": 0, "posts": 0}

        for account in selected:
            locations = client.get_locations(account["id"])
            reviews, posts = [], []
            for location in locations:
                try:
                    reviews.extend(client.get_reviews(location["id"]))
                    posts.extend(client.get_posts(location["id"]))
                except TokenExpiredError:
                    raise
                except GmbApiError as e:
                    logger.warning(f"Skipping {location['id']}: {e}")

            result = self.sync_all_data({
                "account": account, "locations": locations, "reviews": reviews, "posts": posts,
            })
            for key in ("locations", "brands", "stores", "reviews", "posts"):
                totals[key] += result[key]

            self.db.mark_gmb_account_synced(account["id"], {
                "locations": result["locations"],
                "reviews": result["reviews"],
                "posts": result["posts"],
            })

        logger.info(f"Pull sync finished: {totals}")
        return {"results": totals, "tokens": tokens, "tokens_refreshed": refreshed}

    # ── Stats ──────────────────────────────────────────────────────

    def get_sync_stats(self) -> dict:
        return {
            "brands": self.db.count_gmb_connected_brands(),
            "stores": self.db.count_stores_with_location(),
            "reviews": self.db.count_gmb_reviews(),
            "posts": self.db.count_gmb_posts(),
        }
