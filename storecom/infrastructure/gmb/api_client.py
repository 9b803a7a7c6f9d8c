"""
Google Business Profile API Client
===================================

Thin client over the Business Profile REST endpoints used by StoreCom:
accounts, locations, reviews (+ replies), local posts, verifications,
performance metrics, search keywords and the category catalog.

Every call goes through `_request`, which retries transient failures:
    - HTTP 408, 429 and 5xx
    - connection errors and timeouts
with exponential backoff plus jitter, capped at 5 seconds.

API responses are mapped to snake_case dicts so the sync layer never deals
with Google's field names.

EXTENSIBILITY:
- Add endpoints as methods calling `_request` + `_json`
- Mapping helpers are module-level functions and can be tested on their own
"""

import time
import random
import logging
from datetime import date
from typing import Callable, List, Optional, Sequence, Tuple
from urllib.parse import quote

import requests

from ..config import GoogleSettings, get_settings

logger = logging.getLogger(__name__)

BUSINESS_INFO_URL = "https://mybusinessbusinessinformation.googleapis.com/v1"
ACCOUNT_MANAGEMENT_URL = "https://mybusinessaccountmanagement.googleapis.com/v1"
MY_BUSINESS_V4_URL = "https://mybusiness.googleapis.com/v4"
VERIFICATIONS_URL = "https://mybusinessverifications.googleapis.com/v1"
PERFORMANCE_URL = "https://businessprofileperformance.googleapis.com/v1"

USER_AGENT = "StoreCom-Dashboard/1.0"

LOCATION_READ_MASK = (
    "name,languageCode,storeCode,title,phoneNumbers,categories,storefrontAddress,"
    "websiteUri,regularHours,specialHours,serviceArea,labels,latlng,openInfo,"
    "metadata,profile,relationshipData,moreHours,serviceItems"
)

LOCATION_PAGE_SIZE = 100
REVIEW_PAGE_SIZE = 50
CATEGORY_PAGE_SIZE = 100

# Daily metrics requested from the Performance API
DAILY_METRICS = (
    "WEBSITE_CLICKS",
    "CALL_CLICKS",
    "BUSINESS_DIRECTION_REQUESTS",
    "BUSINESS_IMPRESSIONS_DESKTOP_SEARCH",
    "BUSINESS_IMPRESSIONS_MOBILE_SEARCH",
    "BUSINESS_IMPRESSIONS_DESKTOP_MAPS",
    "BUSINESS_IMPRESSIONS_MOBILE_MAPS",
)

RETRYABLE_STATUSES = {408, 429}

STAR_RATINGS = {"ONE": 1, "TWO": 2, "THREE": 3, "FOUR": 4, "FIVE": 5}


class GmbApiError(Exception):
    """Business Profile API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenExpiredError(GmbApiError):
    """Google rejected the access token (HTTP 401)."""


# ── Resource names ─────────────────────────────────────────────────

def _split_name(name: str, kinds: Tuple[str, ...]) -> List[str]:
    parts = (name or "").strip("/").split("/")
    if len(parts) != len(kinds) * 2:
        raise ValueError(f"Invalid resource name: {name!r}")
    for i, kind in enumerate(kinds):
        if parts[i * 2] != kind or not parts[i * 2 + 1]:
            raise ValueError(f"Invalid resource name: {name!r}")
    return parts[1::2]


def parse_location_name(name: str) -> Tuple[str, str]:
    """'accounts/{a}/locations/{l}' -> (a, l). Raises ValueError otherwise."""
    account_id, location_id = _split_name(name, ("accounts", "locations"))
    return account_id, location_id


def parse_review_name(name: str) -> Tuple[str, str, str]:
    """'accounts/{a}/locations/{l}/reviews/{r}' -> (a, l, r)."""
    a, l, r = _split_name(name, ("accounts", "locations", "reviews"))
    return a, l, r


def parse_post_name(name: str) -> Tuple[str, str, str]:
    """'accounts/{a}/locations/{l}/localPosts/{p}' -> (a, l, p)."""
    a, l, p = _split_name(name, ("accounts", "locations", "localPosts"))
    return a, l, p


def parse_verification_name(name: str) -> Tuple[str, str]:
    """'locations/{l}/verifications/{v}' -> (l, v)."""
    l, v = _split_name(name, ("locations", "verifications"))
    return l, v


def account_id_from_name(account_name: str) -> str:
    return account_name.split("/")[-1]


def backoff_delay(attempt: int) -> float:
    """Seconds to wait before retry number `attempt` (1-based)."""
    delay_ms = min(1000 * 2 ** (attempt - 1) + random.randint(0, 249), 5000)
    return delay_ms / 1000


# ── Mapping ────────────────────────────────────────────────────────

def format_address(address: Optional[dict]) -> str:
    if not address:
        return "No address available"
    parts = [
        ", ".join(address.get("addressLines") or []),
        address.get("locality"),
        address.get("administrativeArea"),
        address.get("postalCode"),
        address.get("regionCode"),
    ]
    return ", ".join(part for part in parts if part)


def construct_maps_url(location: dict) -> Optional[str]:
    """Best-effort Google Maps link when metadata.mapsUri is missing."""
    place_id = location.get("placeId") or (location.get("metadata") or {}).get("placeId")
    if place_id:
        return f"https://maps.google.com/maps/place/?q=place_id:{place_id}"

    latlng = location.get("latlng") or {}
    if latlng.get("latitude") and latlng.get("longitude"):
        return f"https://maps.google.com/maps?q={latlng['latitude']},{latlng['longitude']}"

    address = location.get("storefrontAddress") or {}
    lines = ", ".join(address.get("addressLines") or [])
    city = address.get("locality", "")
    if lines and city:
        full = f"{lines}, {city}, {address.get('administrativeArea', '')}, {address.get('regionCode', '')}"
        return f"https://maps.google.com/maps/search/?api=1&query={quote(full.strip())}"

    if location.get("title") and city:
        return f"https://maps.google.com/maps/search/?api=1&query={quote(location['title'] + ', ' + city)}"
    return None


def map_account(account: dict) -> dict:
    return {
        "id": account.get("name", ""),
        "name": account.get("accountName") or account.get("name", ""),
        "type": account.get("type", ""),
        "role": account.get("role", ""),
        "state": account.get("verificationState") or (account.get("state") or {}).get("status", ""),
    }


def map_location(location: dict, account_id: str) -> dict:
    location_id = location.get("name", "").split("/")[-1]
    categories = location.get("categories") or {}
    primary = (categories.get("primaryCategory") or {}).get("displayName")
    additional = [
        c.get("displayName") for c in categories.get("additionalCategories") or [] if c.get("displayName")
    ]
    metadata = location.get("metadata") or {}

    return {
        "id": f"accounts/{account_id}/locations/{location_id}",
        "name": location.get("title") or "Unnamed Location",
        "address": format_address(location.get("storefrontAddress")),
        "storefront_address": location.get("storefrontAddress") or {},
        "phone_number": (location.get("phoneNumbers") or {}).get("primaryPhone"),
        "website_url": location.get("websiteUri"),
        "categories": [primary] if primary else [],
        "primary_category": primary,
        "additional_categories": additional,
        "store_code": location.get("storeCode"),
        "language_code": location.get("languageCode"),
        "verified": bool(metadata.get("hasVoiceOfMerchant", False)),
        "maps_uri": metadata.get("mapsUri") or construct_maps_url(location),
        "place_id": metadata.get("placeId"),
        "latlng": location.get("latlng"),
        "regular_hours": location.get("regularHours"),
        "open_info": location.get("openInfo"),
        "profile": location.get("profile"),
        "account_id": f"accounts/{account_id}",
    }


def star_rating_value(rating) -> int:
    if isinstance(rating, bool):
        return 0
    if isinstance(rating, (int, float)):
        return int(rating)
    if isinstance(rating, str):
        if rating.upper() in STAR_RATINGS:
            return STAR_RATINGS[rating.upper()]
        return int(rating) if rating.isdigit() else 0
    return 0


def map_review(review: dict, location_name: str) -> dict:
    reviewer = review.get("reviewer") or {}
    reply = review.get("reviewReply") or review.get("response")
    response = None
    if reply:
        response = {
            "comment": reply.get("comment", ""),
            "response_time": reply.get("updateTime") or reply.get("createTime"),
            "responded_by": "GMB",
        }
    return {
        "id": review.get("name", ""),
        "reviewer": {
            "display_name": reviewer.get("displayName") or "Anonymous",
            "profile_photo_url": reviewer.get("profilePhotoUrl"),
            "is_anonymous": bool(reviewer.get("isAnonymous", False)),
        },
        "star_rating": star_rating_value(review.get("starRating")),
        "comment": review.get("comment", ""),
        "create_time": review.get("createTime"),
        "update_time": review.get("updateTime"),
        "location_id": location_name,
        "response": response,
        "has_response": response is not None,
    }


def map_post(post: dict, location_name: str) -> dict:
    cta = post.get("callToAction")
    return {
        "id": post.get("name", ""),
        "summary": post.get("summary", ""),
        "call_to_action": {"action_type": cta.get("actionType"), "url": cta.get("url")} if cta else None,
        "media": [
            {"media_format": m.get("mediaFormat"), "source_url": m.get("sourceUrl") or m.get("googleUrl")}
            for m in post.get("media") or []
        ],
        "create_time": post.get("createTime"),
        "update_time": post.get("updateTime"),
        "location_id": location_name,
        "language_code": post.get("languageCode"),
        "state": post.get("state"),
        "topic_type": post.get("topicType"),
        "event": post.get("event"),
        "search_url": post.get("searchUrl"),
    }


def post_body(post_data: dict) -> dict:
    """snake_case post payload -> Business Profile localPost body."""
    body = {
        "topicType": post_data.get("topic_type"),
        "languageCode": post_data.get("language_code"),
        "summary": post_data.get("summary"),
    }
    cta = post_data.get("call_to_action")
    if cta:
        body["callToAction"] = {"actionType": cta.get("action_type"), "url": cta.get("url")}
    if post_data.get("media"):
        body["media"] = [
            {"mediaFormat": m.get("media_format"), "sourceUrl": m.get("source_url")}
            for m in post_data["media"]
        ]
    if post_data.get("event"):
        body["event"] = post_data["event"]
    return {k: v for k, v in body.items() if v is not None}


def _date_key(value: dict) -> str:
    return f"{value.get('year', 0):04d}-{value.get('month', 0):02d}-{value.get('day', 0):02d}"


def map_daily_metrics(data: dict) -> List[dict]:
    """
    fetchMultiDailyMetricsTimeSeries response -> one row per day:
        [{"date": "2024-05-01", "metrics": {"WEBSITE_CLICKS": 3, ...}}, ...]

    Days Google leaves out of a series count as zero.
    """
    days = {}
    for group in data.get("multiDailyMetricTimeSeries") or []:
        for series in group.get("dailyMetricTimeSeries") or []:
            metric = series.get("dailyMetric")
            for dated in (series.get("timeSeries") or {}).get("datedValues") or []:
                key = _date_key(dated.get("date") or {})
                row = days.setdefault(key, {"date": key, "metrics": {}})
                row["metrics"][metric] = int(dated.get("value") or 0)
    return [days[key] for key in sorted(days)]


def map_search_keyword(item: dict, year: int, month: int) -> dict:
    """
    One searchKeywordsCounts entry. Google reports either an exact value or,
    for rare keywords, only a threshold the real count is below.
    """
    insights = item.get("insightsValue") or {}
    below_threshold = "value" not in insights and "threshold" in insights
    raw = insights.get("value") if not below_threshold else insights.get("threshold")
    return {
        "keyword": item.get("searchKeyword", ""),
        "impressions": int(raw or 0),
        "below_threshold": below_threshold,
        "year": year,
        "month": month,
    }


def map_category(category: dict) -> dict:
    return {"id": category.get("name", ""), "display_name": category.get("displayName", "")}


class GmbApiClient:
    """
    Business Profile API client bound to one access token.

    Usage:
        client = GmbApiClient(tokens["access_token"])
        for account in client.get_accounts():
            locations = client.get_locations(account["id"])
    """

    def __init__(self, access_token: str, settings: Optional[GoogleSettings] = None,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        if not access_token:
            raise TokenExpiredError("No access token available - please reconnect to GMB", 401)
        self.access_token = access_token
        self.settings = settings or get_settings().google
        self.http = session or requests.Session()
        self._sleep = sleep

    # ── Accounts & locations ───────────────────────────────────────

    def get_accounts(self) -> List[dict]:
        try:
            data = self._get_json(f"{BUSINESS_INFO_URL}/accounts", "accounts")
        except TokenExpiredError:
            raise
        except GmbApiError as e:
            logger.warning(f"Business Information accounts endpoint failed ({e}); trying Account Management")
            data = self._get_json(f"{ACCOUNT_MANAGEMENT_URL}/accounts", "accounts")

        accounts = [map_account(a) for a in data.get("accounts") or []]
        logger.info(f"Fetched {len(accounts)} GMB accounts")
        return accounts

    def get_locations(self, account_name: str) -> List[dict]:
        """All locations of an account, following nextPageToken."""
        account_id = account_id_from_name(account_name)
        locations, page_token = [], None
        while True:
            params = {"readMask": LOCATION_READ_MASK, "pageSize": LOCATION_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = self._get_json(
                f"{BUSINESS_INFO_URL}/accounts/{account_id}/locations", "locations", params=params
            )
            locations.extend(data.get("locations") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.info(f"Fetched {len(locations)} locations for account {account_id}")
        return [map_location(location, account_id) for location in locations]

    def get_location(self, location_name: str) -> dict:
        """One location by resource name, mapped like get_locations()."""
        account_id, location_id = parse_location_name(location_name)
        data = self._get_json(f"{BUSINESS_INFO_URL}/locations/{location_id}", "location",
                              params={"readMask": LOCATION_READ_MASK})
        return map_location(data, account_id)

    # ── Reviews ────────────────────────────────────────────────────

    def get_reviews(self, location_name: str) -> List[dict]:
        account_id, location_id = parse_location_name(location_name)
        url = f"{MY_BUSINESS_V4_URL}/accounts/{account_id}/locations/{location_id}/reviews"

        reviews, page_token = [], None
        while True:
            params = {"pageSize": REVIEW_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = self._get_json(url, "reviews", params=params)
            reviews.extend(data.get("reviews") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.info(f"Fetched {len(reviews)} reviews for {location_name}")
        return [map_review(review, location_name) for review in reviews]

    def reply_to_review(self, review_name: str, comment: str) -> dict:
        account_id, location_id, review_id = parse_review_name(review_name)
        url = (f"{MY_BUSINESS_V4_URL}/accounts/{account_id}/locations/{location_id}"
               f"/reviews/{review_id}/reply")
        response = self._request("PUT", url, json={"comment": comment})
        return self._json(response, "review reply")

    # ── Local posts ────────────────────────────────────────────────

    def get_posts(self, location_name: str) -> List[dict]:
        """Local posts of a location. Empty if the Posts API is unavailable (403/404)."""
        account_id, location_id = parse_location_name(location_name)
        url = f"{MY_BUSINESS_V4_URL}/accounts/{account_id}/locations/{location_id}/localPosts"

        response = self._request("GET", url)
        if response.status_code in (403, 404):
            logger.warning(f"Posts API unavailable for {location_name} (HTTP {response.status_code})")
            return []
        data = self._json(response, "posts")
        return [map_post(post, location_name) for post in data.get("localPosts") or []]

    def create_post(self, location_name: str, post_data: dict) -> dict:
        account_id, location_id = parse_location_name(location_name)
        url = f"{MY_BUSINESS_V4_URL}/accounts/{account_id}/locations/{location_id}/localPosts"
        response = self._request("POST", url, json=post_body(post_data))
        return map_post(self._json(response, "create post"), location_name)

    def update_post(self, post_name: str, post_data: dict) -> dict:
        account_id, location_id, post_id = parse_post_name(post_name)
        url = (f"{MY_BUSINESS_V4_URL}/accounts/{account_id}/locations/{location_id}"
               f"/localPosts/{post_id}")
        body = post_body(post_data)
        response = self._request("PATCH", url, json=body,
                                 params={"updateMask": ",".join(sorted(body))})
        return map_post(self._json(response, "update post"),
                        f"accounts/{account_id}/locations/{location_id}")

    def delete_post(self, post_name: str) -> bool:
        account_id, location_id, post_id = parse_post_name(post_name)
        url = (f"{MY_BUSINESS_V4_URL}/accounts/{account_id}/locations/{location_id}"
               f"/localPosts/{post_id}")
        response = self._request("DELETE", url)
        self._json(response, "delete post")
        return True

    # ── Verification ───────────────────────────────────────────────

    def fetch_verification_options(self, location_name: str, language_code: str = "en-US") -> List[dict]:
        _, location_id = parse_location_name(location_name)
        url = f"{VERIFICATIONS_URL}/locations/{location_id}:fetchVerificationOptions"
        response = self._request("POST", url, json={"languageCode": language_code})
        return self._json(response, "verification options").get("options") or []

    def start_verification(self, location_name: str, options: dict) -> dict:
        """
        Start verifying a location with one of the fetched options, e.g.
        {"method": "PHONE_CALL", "phoneNumber": "+91..."}.

        Returns the pending verification ({"name": "locations/../verifications/..", ...}).
        """
        _, location_id = parse_location_name(location_name)
        body = dict(options)
        if body.get("phoneNumber"):
            body["phoneNumber"] = "".join(body["phoneNumber"].split())
        body.setdefault("languageCode", "en-US")

        url = f"{VERIFICATIONS_URL}/locations/{location_id}:verify"
        data = self._json(self._request("POST", url, json=body), "start verification")
        return data.get("verification") or data

    def complete_verification(self, verification_name: str, pin: str) -> dict:
        parse_verification_name(verification_name)
        url = f"{VERIFICATIONS_URL}/{verification_name}:complete"
        data = self._json(self._request("POST", url, json={"pin": pin}), "complete verification")
        return data.get("verification") or data

    def list_verifications(self, location_name: str) -> List[dict]:
        _, location_id = parse_location_name(location_name)
        data = self._get_json(f"{VERIFICATIONS_URL}/locations/{location_id}/verifications",
                              "verifications")
        return data.get("verifications") or []

    def get_voice_of_merchant_state(self, location_name: str) -> dict:
        _, location_id = parse_location_name(location_name)
        return self._get_json(f"{VERIFICATIONS_URL}/locations/{location_id}/VoiceOfMerchantState",
                              "voice of merchant state")

    # ── Performance ────────────────────────────────────────────────

    def get_daily_metrics(self, location_name: str, start: date, end: date,
                          metrics: Sequence[str] = DAILY_METRICS) -> List[dict]:
        """
        Daily performance metrics between start and end (inclusive).

        Empty when the Performance API is not enabled for the account (403/404).
        """
        _, location_id = parse_location_name(location_name)
        params = [("dailyMetrics", metric) for metric in metrics]
        for prefix, day in (("dailyRange.start_date", start), ("dailyRange.end_date", end)):
            params += [(f"{prefix}.year", day.year), (f"{prefix}.month", day.month),
                       (f"{prefix}.day", day.day)]

        url = f"{PERFORMANCE_URL}/locations/{location_id}:fetchMultiDailyMetricsTimeSeries"
        response = self._request("GET", url, params=params)
        if response.status_code in (403, 404):
            logger.warning(f"Performance API unavailable for {location_name} (HTTP {response.status_code})")
            return []
        return map_daily_metrics(self._json(response, "daily metrics"))

    def get_search_keywords(self, location_name: str, year: int, month: int) -> List[dict]:
        """Search keywords with impressions for one month. Empty if unavailable (403/404)."""
        _, location_id = parse_location_name(location_name)
        url = f"{PERFORMANCE_URL}/locations/{location_id}/searchkeywords/impressions/monthly"

        keywords, page_token = [], None
        while True:
            params = {
                "monthlyRange.start_month.year": year,
                "monthlyRange.start_month.month": month,
                "monthlyRange.end_month.year": year,
                "monthlyRange.end_month.month": month,
            }
            if page_token:
                params["pageToken"] = page_token
            response = self._request("GET", url, params=params)
            if response.status_code in (403, 404):
                logger.warning(f"Search keywords unavailable for {location_name} (HTTP {response.status_code})")
                return []
            data = self._json(response, "search keywords")
            keywords.extend(
                map_search_keyword(item, year, month)
                for item in data.get("searchKeywordsCounts") or []
                if item.get("searchKeyword")
            )
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        return keywords

    # ── Categories ─────────────────────────────────────────────────

    def get_categories(self, region_code: str = "IN", language_code: str = "en") -> List[dict]:
        """The full category catalog for a region and language."""
        categories, page_token = [], None
        while True:
            params = {"regionCode": region_code, "languageCode": language_code,
                      "view": "BASIC", "pageSize": CATEGORY_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = self._get_json(f"{BUSINESS_INFO_URL}/categories", "categories", params=params)
            categories.extend(map_category(c) for c in data.get("categories") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.info(f"Fetched {len(categories)} GMB categories for {region_code}/{language_code}")
        return categories

    # ── Transport ──────────────────────────────────────────────────

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send a request, retrying transient statuses and network errors."""
        max_attempts = self.settings.max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                response = self.http.request(
                    method, url, headers=self._headers(),
                    timeout=self.settings.request_timeout_seconds, **kwargs
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                if attempt < max_attempts:
                    delay = backoff_delay(attempt)
                    logger.warning(
                        f"Network/timeout error for {url}. Retrying in {delay:.2f}s "
                        f"(attempt {attempt}/{max_attempts}): {e}"
                    )
                    self._sleep(delay)
                    continue
                raise GmbApiError(f"Request to {url} failed: {e}") from e

            retryable = response.status_code in RETRYABLE_STATUSES or 500 <= response.status_code < 600
            if retryable and attempt < max_attempts:
                delay = backoff_delay(attempt)
                logger.warning(
                    f"Transient HTTP {response.status_code} for {url}. Retrying in {delay:.2f}s "
                    f"(attempt {attempt}/{max_attempts})"
                )
                self._sleep(delay)
                continue
            return response

        raise GmbApiError(f"Request to {url} failed after {max_attempts} attempts")

    def _get_json(self, url: str, what: str, params: Optional[dict] = None) -> dict:
        return self._json(self._request("GET", url, params=params), what)

    @staticmethod
    def _json(response: requests.Response, what: str) -> dict:
        if response.status_code == 401:
            raise TokenExpiredError(
                "Authentication failed - token expired. Please reconnect to GMB.",
                401, response.text,
            )
        if response.status_code >= 400:
            raise GmbApiError(
                f"GMB {what} request failed: HTTP {response.status_code}",
                response.status_code, response.text[:500],
            )
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise GmbApiError(f"GMB {what} returned invalid JSON", response.status_code) from e
        return data if isinstance(data, dict) else {}
