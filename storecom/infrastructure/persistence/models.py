"""
Persistence Records - Dataclasses for Stored Documents
=======================================================

Each table row is converted to one of these records by the repository.
Nested documents (address, settings, gmb_data, ...) stay plain dicts; they
are stored as JSON text columns.
"""

import copy
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional


class UserRole(Enum):
    SUPER_ADMIN = "super_admin"
    OWNER = "owner"
    MANAGER = "manager"


class UserStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class BrandStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class StoreStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class ReviewStatus(Enum):
    ACTIVE = "active"
    HIDDEN = "hidden"
    DELETED = "deleted"


class ContentSource(Enum):
    """Where a review or post came from."""
    GMB = "gmb"
    MANUAL = "manual"
    IMPORTED = "imported"


class PostState(Enum):
    LIVE = "LIVE"
    DRAFT = "DRAFT"
    EXPIRED = "EXPIRED"


class TopicType(Enum):
    STANDARD = "STANDARD"
    EVENT = "EVENT"
    OFFER = "OFFER"
    PRODUCT = "PRODUCT"


class CallToActionType(Enum):
    BOOK = "BOOK"
    ORDER_ONLINE = "ORDER_ONLINE"
    SHOP = "SHOP"
    LEARN_MORE = "LEARN_MORE"
    SIGN_UP = "SIGN_UP"
    GET_OFFER = "GET_OFFER"
    CALL = "CALL"


class EnquiryType(Enum):
    GENERAL = "general"
    PRODUCT = "product"
    SERVICE = "service"
    COMPLAINT = "complaint"
    FEEDBACK = "feedback"
    PARTNERSHIP = "partnership"


class EnquiryStatus(Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class VerificationMethod(Enum):
    PHONE_CALL = "PHONE_CALL"
    POSTCARD = "POSTCARD"
    EMAIL = "EMAIL"
    MANUAL = "MANUAL"
    API_CHECK = "API_CHECK"


class VerificationStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class ComplianceState(Enum):
    """Voice of Merchant compliance of a location."""
    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    UNKNOWN = "UNKNOWN"


class EntityType(Enum):
    """Subject of a sentiment rollup."""
    BRAND = "brand"
    STORE = "store"


def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


# ── Default nested documents ───────────────────────────────────────

DEFAULT_BRANDING = {
    "primary_color": "#2962FF",
    "accent_color": "#FF9100",
    "background_color": "#E6EEFF",
    "font_family": "Inter",
    "template": "classic",
}

DEFAULT_BRAND_SETTINGS = {
    "gmb_integration": {
        "connected": False,
        "auto_sync": False,
        "gmb_account_id": None,
        "gmb_account_name": None,
        "gmb_location_id": None,
        "last_sync_at": None,
    },
    "notifications": {"email": True, "sms": False, "new_reviews": True},
    "seo": {"title": "", "description": "", "keywords": []},
    "social_media": {},
}


def default_branding() -> dict:
    return copy.deepcopy(DEFAULT_BRANDING)


def default_brand_settings() -> dict:
    return copy.deepcopy(DEFAULT_BRAND_SETTINGS)


def merge_documents(base: dict, updates: dict) -> dict:
    """Recursively overlay updates on a copy of base (dicts merge, other values replace)."""
    merged = copy.deepcopy(base) if base else {}
    for key, value in (updates or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


# ── Records ────────────────────────────────────────────────────────

@dataclass
class User:
    """Dashboard user (super admin, brand owner or brand manager)."""
    id: int
    email: str
    password_hash: str
    name: str
    role: str
    brand_id: Optional[int] = None
    phone: str = ""
    status: str = "active"
    last_login_at: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("password_hash")
        return data


@dataclass
class Brand:
    """A business brand owning one or more stores."""
    id: int
    name: str
    slug: str
    email: str
    description: str = ""
    logo: dict = field(default_factory=dict)
    website: str = ""
    phone: str = ""
    industry: str = ""
    primary_category: str = ""
    additional_categories: list = field(default_factory=list)
    address: dict = field(default_factory=dict)
    branding: dict = field(default_factory=default_branding)
    content: dict = field(default_factory=dict)
    users: dict = field(default_factory=dict)
    settings: dict = field(default_factory=default_brand_settings)
    status: str = "active"
    created_at: str = ""
    updated_at: str = ""

    @property
    def gmb_integration(self) -> dict:
        return (self.settings or {}).get("gmb_integration") or {}

    def to_dict(self, include_passwords: bool = False) -> dict:
        data = asdict(self)
        if not include_passwords:
            for account in (data.get("users") or {}).values():
                if isinstance(account, dict):
                    account.pop("password", None)
        return data


@dataclass
class Store:
    """A physical store (one GMB location) belonging to a brand."""
    id: int
    brand_id: int
    name: str
    store_code: str
    slug: str
    email: str = ""
    phone: str = ""
    address: dict = field(default_factory=dict)
    primary_category: str = ""
    additional_categories: list = field(default_factory=list)
    tags: list = field(default_factory=list)
    hours_of_operation: dict = field(default_factory=dict)
    amenities: dict = field(default_factory=dict)
    microsite: dict = field(default_factory=dict)
    social_media: dict = field(default_factory=dict)
    seo: dict = field(default_factory=dict)
    gmb_location_id: Optional[str] = None
    gmb_account_id: Optional[str] = None
    place_id: Optional[str] = None
    verified: bool = False
    last_sync_at: Optional[str] = None
    gmb_data: dict = field(default_factory=dict)
    status: str = "draft"
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == StoreStatus.ACTIVE.value

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Review:
    """Customer review, usually pulled from GMB."""
    id: int
    gmb_review_id: str
    store_id: int
    brand_id: int
    account_id: str = ""
    reviewer: dict = field(default_factory=dict)
    star_rating: int = 0
    comment: str = ""
    gmb_create_time: Optional[str] = None
    gmb_update_time: Optional[str] = None
    has_response: bool = False
    response: Optional[dict] = None
    status: str = "active"
    source: str = "gmb"
    sentiment_analysis: Optional[dict] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Post:
    """GMB local post (update, offer, event, product)."""
    id: int
    gmb_post_id: str
    store_id: int
    brand_id: int
    account_id: str = ""
    summary: str = ""
    call_to_action: Optional[dict] = None
    media: list = field(default_factory=list)
    gmb_create_time: Optional[str] = None
    gmb_update_time: Optional[str] = None
    language_code: str = "en"
    state: str = "LIVE"
    topic_type: str = "STANDARD"
    event: Optional[dict] = None
    search_url: str = ""
    status: str = "active"
    source: str = "gmb"
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Enquiry:
    """Customer enquiry submitted through a microsite."""
    id: int
    name: str
    email: str
    message: str
    phone: str = ""
    subject: str = ""
    enquiry_type: str = "general"
    store_id: Optional[int] = None
    brand_id: Optional[int] = None
    store_name: str = ""
    brand_name: str = ""
    status: str = "new"
    response: str = ""
    responded_at: Optional[str] = None
    responded_by: str = ""
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GmbAccount:
    """Google Business Profile account seen during a sync."""
    id: int
    gmb_account_id: str
    name: str
    email: str = ""
    account_type: str = ""
    connected: bool = True
    last_sync_at: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    status: str = "active"
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SentimentAnalytics:
    """Stored sentiment rollup for a brand or store."""
    id: int
    entity_id: int
    entity_type: str
    overall_sentiment: str = "neutral"
    confidence: float = 0.0
    score: float = 0.0
    overall_trend: str = "new"
    periods: dict = field(default_factory=dict)
    top_positive_themes: list = field(default_factory=list)
    top_negative_themes: list = field(default_factory=list)
    recommendations: list = field(default_factory=list)
    total_reviews: int = 0
    last_analyzed: Optional[str] = None
    last_review_date: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PerformanceRecord:
    """Business Profile performance of one store over one date range."""
    id: int
    store_id: int
    brand_id: int
    account_id: str
    start_date: str
    end_date: str
    days: int
    metrics: dict = field(default_factory=dict)
    daily: list = field(default_factory=list)
    status: str = "active"
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SearchKeyword:
    """Monthly search impressions of a keyword that surfaced a store."""
    id: int
    store_id: int
    brand_id: int
    keyword: str
    year: int
    month: int
    impressions: int = 0
    below_threshold: bool = False
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GmbCategory:
    """Business Profile category from the catalog for one region/language."""
    id: int
    gmb_category_id: str
    display_name: str
    region_code: str
    language_code: str
    status: str = "active"
    last_synced_at: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)
