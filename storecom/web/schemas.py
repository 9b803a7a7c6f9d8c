"""
Request bodies.

Fields are mostly optional so handlers can report friendly "X is required"
messages instead of pydantic's generic ones.
"""

from typing import Any, List, Optional

from pydantic import BaseModel


# ── Auth ───────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class RegisterRequest(BaseModel):
    email: str = ""
    password: str = ""
    name: str = ""
    role: str = ""
    brand_id: Optional[int] = None
    phone: str = ""


class TokensRequest(BaseModel):
    access_token: str = ""
    token_type: str = ""
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    expiry_date: Optional[int] = None
    expires_at: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None


# ── Brands & stores ────────────────────────────────────────────────

class BrandUser(BaseModel):
    email: str = ""
    password: str = ""


class BrandUsers(BaseModel):
    owner: Optional[BrandUser] = None
    manager: Optional[BrandUser] = None


class BrandRequest(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[dict] = None
    website: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    industry: Optional[str] = None
    primary_category: Optional[str] = None
    additional_categories: Optional[List[str]] = None
    address: Optional[dict] = None
    branding: Optional[dict] = None
    content: Optional[dict] = None
    users: Optional[BrandUsers] = None
    settings: Optional[dict] = None
    status: Optional[str] = None


class StoreRequest(BaseModel):
    brand_id: Optional[int] = None
    name: Optional[str] = None
    store_code: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[dict] = None
    primary_category: Optional[str] = None
    additional_categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    hours_of_operation: Optional[dict] = None
    amenities: Optional[dict] = None
    microsite: Optional[dict] = None
    social_media: Optional[dict] = None
    seo: Optional[dict] = None
    gmb_location_id: Optional[str] = None
    gmb_account_id: Optional[str] = None
    status: Optional[str] = None


# ── Reviews & posts ────────────────────────────────────────────────

class ReviewRequest(BaseModel):
    gmb_review_id: Optional[str] = None
    store_id: Optional[int] = None
    brand_id: Optional[int] = None
    account_id: Optional[str] = None
    reviewer: Optional[dict] = None
    star_rating: Optional[int] = None
    comment: Optional[str] = None
    gmb_create_time: Optional[str] = None
    gmb_update_time: Optional[str] = None
    has_response: Optional[bool] = None
    response: Optional[dict] = None
    status: Optional[str] = None
    source: Optional[str] = None


class ReplyRequest(BaseModel):
    comment: str = ""


class GenerateReplyRequest(BaseModel):
    review_text: str = ""
    rating: Optional[int] = None
    customer_name: str = ""
    store_name: str = ""
    platform: str = "Google"


class SentimentRequest(BaseModel):
    review_ids: List[int] = []


class PostRequest(BaseModel):
    gmb_post_id: Optional[str] = None
    store_id: Optional[int] = None
    brand_id: Optional[int] = None
    account_id: Optional[str] = None
    summary: Optional[str] = None
    call_to_action: Optional[dict] = None
    media: Optional[List[dict]] = None
    gmb_create_time: Optional[str] = None
    gmb_update_time: Optional[str] = None
    language_code: Optional[str] = None
    state: Optional[str] = None
    topic_type: Optional[str] = None
    event: Optional[dict] = None
    search_url: Optional[str] = None
    status: Optional[str] = None
    source: Optional[str] = None


class GmbPostRequest(BaseModel):
    location_name: str = ""
    post_data: Optional[dict] = None


# ── Enquiries ──────────────────────────────────────────────────────

class EnquiryRequest(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    subject: str = ""
    message: str = ""
    enquiry_type: str = "general"
    store_id: Optional[int] = None
    brand_id: Optional[int] = None


class EnquiryUpdate(BaseModel):
    status: Optional[str] = None
    response: Optional[str] = None


# ── GMB sync ───────────────────────────────────────────────────────

class SyncAllRequest(BaseModel):
    gmbData: Optional[dict[str, Any]] = None


class PullSyncRequest(BaseModel):
    account_id: Optional[str] = None


# ── GMB verification ───────────────────────────────────────────────

class VerifyStoreRequest(BaseModel):
    store_id: Optional[int] = None


class BulkVerifyRequest(BaseModel):
    store_ids: List[int] = []
    brand_id: Optional[int] = None


class StartVerificationRequest(BaseModel):
    store_id: Optional[int] = None
    options: Optional[dict] = None


class CompleteVerificationRequest(BaseModel):
    store_id: Optional[int] = None
    verification_name: str = ""
    pin: str = ""


# ── Performance ────────────────────────────────────────────────────

class PerformanceSyncRequest(BaseModel):
    store_id: Optional[int] = None
    brand_id: Optional[int] = None
    days: int = 30
    months: int = 3
