"""
Review routes: brand-scoped listing with rating stats, CRUD, on-demand
sentiment analysis and LLM reply drafts.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ...domain.pagination import pagination
from ...domain.review_stats import rating_stats
from ...infrastructure.llm import SentimentService
from ...infrastructure.persistence import ContentSource, ReviewStatus, enum_values, now_iso, to_iso
from ...infrastructure.security import SessionData
from ..deps import ensure_brand_access, ensure_store_in_brand, get_db, ok, require_session, scoped_brand_id
from ..schemas import GenerateReplyRequest, ReviewRequest, SentimentRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])

REQUIRED_FIELDS = ("gmb_review_id", "store_id", "brand_id", "star_rating", "gmb_create_time")


def _validate(data: dict):
    if "star_rating" in data and not 1 <= data["star_rating"] <= 5:
        raise HTTPException(status_code=400, detail="star_rating must be between 1 and 5")
    if data.get("status") and data["status"] not in enum_values(ReviewStatus):
        raise HTTPException(status_code=400, detail=f"Invalid status: {data['status']}")
    if data.get("source") and data["source"] not in enum_values(ContentSource):
        raise HTTPException(status_code=400, detail=f"Invalid source: {data['source']}")
    for key in ("gmb_create_time", "gmb_update_time"):
        if data.get(key):
            normalized = to_iso(data[key])
            if normalized is None:
                raise HTTPException(status_code=400, detail=f"Invalid {key}")
            data[key] = normalized


@router.get("")
async def list_reviews(request: Request, page: int = 1, limit: int = 20,
                       store_id: Optional[int] = None, brand_id: Optional[int] = None,
                       status: str = "active", has_response: Optional[bool] = None,
                       rating: Optional[int] = Query(None, ge=1, le=5), search: str = "",
                       session: SessionData = Depends(require_session)):
    page, limit = max(page, 1), max(limit, 1)
    filters = {
        "store_id": store_id,
        "brand_id": scoped_brand_id(session, brand_id),
        "status": status,
        "has_response": has_response,
        "rating": rating,
        "search": search,
    }
    db = get_db(request)
    reviews, total = db.list_reviews(page=page, limit=limit, **filters)
    stats = rating_stats(db.review_ratings(**filters))
    return ok(
        [r.to_dict() for r in reviews],
        pagination=pagination(page, limit, total),
        stats=stats,
    )


@router.post("", status_code=201)
async def create_review(body: ReviewRequest, request: Request,
                        session: SessionData = Depends(require_session)):
    data = body.model_dump(exclude_none=True)
    missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, "")]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")
    _validate(data)
    ensure_brand_access(session, data["brand_id"])

    db = get_db(request)
    ensure_store_in_brand(db, data["store_id"], data["brand_id"])
    if db.get_review_by_gmb_id(data["gmb_review_id"]):
        raise HTTPException(status_code=409, detail="Review already exists")
    data.setdefault("source", ContentSource.MANUAL.value)
    if data.get("response"):
        data["has_response"] = True

    review_id = db.create_review(data)
    if review_id is None:
        raise HTTPException(status_code=409, detail="Review already exists")
    return ok(db.get_review(review_id).to_dict(), message="Review created successfully")


@router.post("/sentiment")
def analyze_sentiment(body: SentimentRequest, request: Request,
                      session: SessionData = Depends(require_session)):
    """Run hybrid sentiment analysis on the given reviews and store the results."""
    if not body.review_ids:
        raise HTTPException(status_code=400, detail="review_ids are required")

    db = get_db(request)
    reviews = [
        r for r in db.get_reviews_by_ids(body.review_ids)
        if session.role == "super_admin" or r.brand_id == session.brand_id
    ]
    if not reviews:
        raise HTTPException(status_code=404, detail="No reviews found")

    sentiment: SentimentService = request.app.state.sentiment_service
    results = sentiment.analyze_batch([r.comment for r in reviews])
    analyzed_at = now_iso()

    data = []
    for review, result in zip(reviews, results):
        analysis = {**result.to_dict(), "analyzed_at": analyzed_at}
        db.set_review_sentiment(review.id, analysis)
        data.append({"review_id": review.id, **analysis})

    logger.info(f"Analyzed sentiment for {len(data)} reviews")
    return ok(data, stats=SentimentService.get_stats(results))


@router.post("/generate-reply")
def generate_reply(body: GenerateReplyRequest, request: Request,
                   session: SessionData = Depends(require_session)):
    if not body.review_text or body.rating is None or not body.store_name:
        raise HTTPException(status_code=400, detail="review_text, rating and store_name are required")
    if not 1 <= body.rating <= 5:
        raise HTTPException(status_code=400, detail="rating must be between 1 and 5")

    draft = request.app.state.reply_generator.generate(
        review_text=body.review_text,
        rating=body.rating,
        store_name=body.store_name,
        customer_name=body.customer_name,
        platform=body.platform,
    )
    return ok(draft)


@router.get("/{review_id}")
async def get_review(review_id: int, request: Request,
                     session: SessionData = Depends(require_session)):
    review = get_db(request).get_review(review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    ensure_brand_access(session, review.brand_id)
    return ok(review.to_dict())


@router.put("/{review_id}")
async def update_review(review_id: int, body: ReviewRequest, request: Request,
                        session: SessionData = Depends(require_session)):
    db = get_db(request)
    review = db.get_review(review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    ensure_brand_access(session, review.brand_id)

    updates = body.model_dump(exclude_none=True)
    updates.pop("gmb_review_id", None)
    _validate(updates)
    brand_id = updates.get("brand_id", review.brand_id)
    store_id = updates.get("store_id", review.store_id)
    if brand_id != review.brand_id:
        ensure_brand_access(session, brand_id)
    if (brand_id, store_id) != (review.brand_id, review.store_id):
        ensure_store_in_brand(db, store_id, brand_id)
    if "response" in updates:
        updates["has_response"] = bool(updates["response"])

    db.update_review(review_id, **updates)
    return ok(db.get_review(review_id).to_dict(), message="Review updated successfully")


@router.delete("/{review_id}")
async def delete_review(review_id: int, request: Request,
                        session: SessionData = Depends(require_session)):
    db = get_db(request)
    review = db.get_review(review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    ensure_brand_access(session, review.brand_id)

    db.delete_review(review_id)
    return ok(message="Review deleted successfully")
