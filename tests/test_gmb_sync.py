import pytest

from conftest import ACCOUNT_ID, LOCATION_NAME, make_brand, make_store

from storecom.application import GmbSyncService, SyncError
from storecom.application.gmb_sync import location_address
from storecom.infrastructure.gmb import normalize_tokens

ACCOUNT = {"id": f"accounts/{ACCOUNT_ID}", "name": "Acme Group", "type": "PERSONAL"}

LOCATION = {
    "id": LOCATION_NAME,
    "name": "Acme MG Road",
    "address": "12 MG Road, Pune, MH, 411001, IN",
    "storefront_address": {
        "addressLines": ["12 MG Road"],
        "locality": "Pune",
        "administrativeArea": "MH",
        "postalCode": "411001",
        "regionCode": "IN",
    },
    "phone_number": "+91 20 5555 0100",
    "primary_category": "Cafe",
    "categories": ["Cafe"],
    "verified": True,
    "maps_uri": "https://maps.google.com/?cid=42",
    "account_id": f"accounts/{ACCOUNT_ID}",
}

REVIEW = {
    "id": f"{LOCATION_NAME}/reviews/r1",
    "reviewer": {"display_name": "Asha"},
    "star_rating": 5,
    "comment": "Great coffee",
    "create_time": "2024-05-01T10:00:00Z",
    "location_id": LOCATION_NAME,
    "response": {"comment": "Thank you!", "response_time": "2024-05-02T10:00:00Z"},
}

POST = {
    "id": f"{LOCATION_NAME}/localPosts/p1",
    "summary": "Monsoon special",
    "topic_type": "OFFER",
    "create_time": "2024-06-01T10:00:00Z",
    "location_id": LOCATION_NAME,
}


@pytest.fixture
def sync(db, oauth_client, gmb_client_factory):
    return GmbSyncService(db, oauth_client, gmb_client_factory)


# ── Address mapping ────────────────────────────────────────────────

def test_location_address_from_storefront():
    address = location_address({**LOCATION, "latlng": {"latitude": 18.5, "longitude": 73.8}})
    assert address["line1"] == "12 MG Road"
    assert address["city"] == "Pune"
    assert address["state"] == "MH"
    assert address["country"] == "IN"
    assert address["latitude"] == 18.5


def test_location_address_from_formatted_text():
    address = location_address({"address": "12 MG Road, Kothrud, Pune, 411001"}, "country_code")
    assert address["line1"] == "12 MG Road"
    assert address["city"] == "Pune"
    assert address["postal_code"] == "411001"
    assert address["state"] == ""
    assert address["country_code"] == "IN"


# ── Push sync ──────────────────────────────────────────────────────

def test_sync_all_data_creates_brand_store_reviews_and_posts(sync, db):
    result = sync.sync_all_data({
        "account": ACCOUNT, "locations": [LOCATION], "reviews": [REVIEW], "posts": [POST],
    })
    assert result["locations"] == 1
    assert result["brands"] == 1 and result["stores"] == 1
    assert result["reviews"] == 1 and result["posts"] == 1

    brand = db.get_brand_by_slug("acme-mg-road")
    assert brand.gmb_integration["connected"] is True
    assert brand.gmb_integration["gmb_location_id"] == LOCATION_NAME

    store = db.get_store_by_location_id(LOCATION_NAME)
    assert store.brand_id == brand.id
    assert store.status == "active"
    assert store.store_code == "Acme-MG-Road"
    assert store.email == "N/A"
    assert store.microsite["maps_url"] == "https://maps.google.com/?cid=42"

    review = db.get_review_by_gmb_id(REVIEW["id"])
    assert review.store_id == store.id
    assert review.has_response
    assert review.response["responded_by"] == "GMB"

    post = db.get_post_by_gmb_id(POST["id"])
    assert post.topic_type == "OFFER"
    assert post.state == "LIVE"


def test_sync_is_idempotent(sync, db):
    payload = {"account": ACCOUNT, "locations": [LOCATION], "reviews": [REVIEW]}
    sync.sync_all_data(payload)
    sync.sync_all_data(payload)

    assert len(db.list_all_brands()) == 1
    assert len(db.list_brand_stores(db.list_all_brands()[0].id)) == 1
    assert db.list_reviews()[1] == 1


def test_existing_store_keeps_slug_and_code(sync, db):
    brand_id = make_brand(db, name="Acme MG Road", slug="acme-own")
    store_id = make_store(db, brand_id, name="Acme MG Road", store_code="OWN-1", slug="own-slug",
                          status="draft")

    sync.sync_all_data({"account": ACCOUNT, "locations": [LOCATION]})

    store = db.get_store(store_id)
    assert store.slug == "own-slug"
    assert store.store_code == "OWN-1"
    assert store.gmb_location_id == LOCATION_NAME
    assert store.status == "active"
    assert store.phone == "+91 20 5555 0100"
    assert db.get_brand(brand_id).gmb_integration["gmb_account_name"] == "Acme Group"


def test_unverified_location_creates_draft_store(sync, db):
    sync.sync_all_data({"account": ACCOUNT, "locations": [{**LOCATION, "verified": False}]})
    assert db.get_store_by_location_id(LOCATION_NAME).status == "draft"


def test_reviews_for_unknown_locations_are_skipped(sync):
    result = sync.sync_all_data({
        "account": ACCOUNT, "locations": [],
        "reviews": [{**REVIEW, "location_id": "accounts/9/locations/9"}],
    })
    assert result["reviews"] == 0


def test_sync_requires_account_and_locations(sync):
    with pytest.raises(SyncError):
        sync.sync_all_data({"locations": []})
    with pytest.raises(SyncError):
        sync.sync_all_data({"account": ACCOUNT})


# ── Pull sync ──────────────────────────────────────────────────────

def test_sync_from_google_pulls_everything(sync, db):
    tokens = normalize_tokens({"access_token": "live", "refresh_token": "r", "expires_in": 3600})
    outcome = sync.sync_from_google(tokens)

    assert outcome["tokens_refreshed"] is False
    assert outcome["results"] == {"accounts": 1, "locations": 1, "brands": 1,
                                  "stores": 1, "reviews": 1, "posts": 0}
    review = db.get_review_by_gmb_id(f"{LOCATION_NAME}/reviews/r1")
    assert review.star_rating == 5
    assert review.reviewer["display_name"] == "Asha"

    account = db.get_gmb_account(f"accounts/{ACCOUNT_ID}")
    assert account.metadata == {"locations": 1, "reviews": 1, "posts": 0}


def test_sync_from_google_refreshes_expired_tokens(sync):
    outcome = sync.sync_from_google({"access_token": "stale", "refresh_token": "r"})
    assert outcome["tokens_refreshed"] is True
    assert outcome["tokens"]["access_token"] == "refreshed-token"
    assert outcome["tokens"]["refresh_token"] == "r"


def test_sync_from_google_unknown_account(sync):
    tokens = normalize_tokens({"access_token": "live", "expires_in": 3600})
    with pytest.raises(SyncError):
        sync.sync_from_google(tokens, account_id="999")


def test_sync_from_google_accepts_bare_account_id(sync):
    tokens = normalize_tokens({"access_token": "live", "expires_in": 3600})
    assert sync.sync_from_google(tokens, account_id=ACCOUNT_ID)["results"]["accounts"] == 1


def test_sync_stats(sync):
    sync.sync_all_data({"account": ACCOUNT, "locations": [LOCATION], "reviews": [REVIEW]})
    assert sync.get_sync_stats() == {"brands": 1, "stores": 1, "reviews": 1, "posts": 0}
