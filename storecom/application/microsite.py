"""
Microsite Service - Public Brand and Store Pages
=================================================

Read-only data for the public store locator:
    /{brand_slug}                        - brand page with its active stores
    /{brand_slug}/stores/{store_slug}    - store page with recent reviews

Both pages carry SEO metadata (title, description, keywords, Open Graph).
"""

import logging
from typing import Optional

from ..domain.pagination import pagination
from ..domain.review_stats import rating_stats
from ..infrastructure.persistence import Brand, Database, Store

logger = logging.getLogger(__name__)

STORES_PER_PAGE = 12
RECENT_REVIEWS = 10


class MicrositeNotFound(LookupError):
    pass


def _store_address_line(store: Store) -> str:
    address = store.address or {}
    parts = [address.get("line1"), address.get("city"), address.get("state"), address.get("postal_code")]
    return ", ".join(part for part in parts if part)


def brand_metadata(brand: Brand) -> dict:
    seo = (brand.settings or {}).get("seo") or {}
    description = (
        seo.get("description")
        or brand.description
        or f"Find {brand.name} stores near you. Get directions, hours, and contact information."
    )
    keywords = seo.get("keywords") or [brand.name, "stores", "locations"]
    return {
        "title": seo.get("title") or f"{brand.name} - Store Locator",
        "description": description,
        "keywords": ", ".join(keywords),
        "open_graph": {
            "title": f"{brand.name} - Store Locations",
            "description": brand.description or f"Find {brand.name} stores near you",
            "images": [brand.logo["url"]] if (brand.logo or {}).get("url") else [],
            "type": "website",
        },
    }


def store_metadata(store: Store, brand: Brand) -> dict:
    seo = store.seo or {}
    address = _store_address_line(store)
    city = (store.address or {}).get("city", "")
    state = (store.address or {}).get("state", "")
    keywords = seo.get("keywords") or [
        k for k in (brand.name, store.name, city, state, "store hours", "directions") if k
    ]
    return {
        "title": seo.get("title") or f"{store.name} - {brand.name} Store",
        "description": seo.get("description") or (
            f"Visit {store.name} located at {address}. "
            f"Get directions, hours, contact info, and read customer reviews."
        ),
        "keywords": ", ".join(keywords) if isinstance(keywords, list) else keywords,
        "open_graph": {
            "title": f"{store.name} - {brand.name}",
            "description": f"Located at {address}",
            "images": [brand.logo["url"]] if (brand.logo or {}).get("url") else [],
            "type": "website",
        },
    }


class MicrositeService:

    def __init__(self, db: Database):
        self.db = db

    def _active_brand(self, brand_slug: str) -> Brand:
        brand = self.db.get_brand_by_slug(brand_slug)
        if brand is None or brand.status != "active":
            raise MicrositeNotFound(f"Brand '{brand_slug}' not found")
        return brand

    def brand_page(self, brand_slug: str, search: str = "", city: str = "",
                   state: str = "", page: int = 1) -> dict:
        """
        Brand page data.

        Raises:
            MicrositeNotFound: unknown or inactive brand
        """
        brand = self._active_brand(brand_slug)
        page = max(page, 1)
        stores, total = self.db.list_microsite_stores(
            brand.id, search=search, city=city, state=state, page=page, limit=STORES_PER_PAGE
        )
        return {
            "brand": brand.to_dict(),
            "stores": [store.to_dict() for store in stores],
            "pagination": pagination(page, STORES_PER_PAGE, total),
            "filters": {"search": search, "city": city, "state": state},
            "seo": brand_metadata(brand),
        }

    def store_page(self, brand_slug: str, store_slug: str) -> dict:
        """
        Store page data.

        Raises:
            MicrositeNotFound: unknown/inactive brand, or store not active in this brand
        """
        brand = self._active_brand(brand_slug)
        store: Optional[Store] = self.db.get_store_by_slug(store_slug)
        if store is None or store.brand_id != brand.id or not store.is_active:
            raise MicrositeNotFound(f"Store '{store_slug}' not found")

        reviews, _ = self.db.list_reviews(page=1, limit=RECENT_REVIEWS, store_id=store.id, status="active")
        stats = rating_stats(self.db.review_ratings(store_id=store.id, status="active"))

        return {
            "brand": brand.to_dict(),
            "store": store.to_dict(),
            "reviews": [review.to_dict() for review in reviews],
            "review_count": stats["total"],
            "average_rating": stats["average_rating"],
            "seo": store_metadata(store, brand),
        }
