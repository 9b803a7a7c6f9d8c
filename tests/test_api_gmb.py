import json

import pytest

from conftest import ACCOUNT_ID, LOCATION_NAME, FakeResponse, login, make_brand, make_review, make_store

from storecom.infrastructure.gmb import normalize_tokens

LIVE_TOKENS = {"access_token": "live-token", "refresh_token": "refresh-me",
               "token_type": "Bearer", "expires_in": 3600}


@pytest.fixture
def gmb_client(admin_client):
    admin_client.cookies.set("gmb-tokens", json.dumps(normalize_tokens(LIVE_TOKENS)))
    return admin_client


# ══════════════════════════════════════════════════════════════════
#  OAUTH
# ══════════════════════════════════════════════════════════════════

def test_auth_url(client):
    url = client.get("/api/auth/gmb/auth-url?state=dashboard").json()["data"]["auth_url"]
    assert url.startswith("https://accounts.google.com/")
    assert "client_id=client-id" in url
    assert "access_type=offline" in url
    assert "state=dashboard" in url


def test_callback_sets_cookie_and_redirects(client, oauth_http):
    response = client.get("/api/auth/gmb/callback?code=abc", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "http://dashboard.test/dashboard/overview?connected=true"
    assert "gmb-tokens=" in response.headers["set-cookie"]
    assert oauth_http.calls[-1]["data"]["code"] == "abc"


@pytest.mark.parametrize("query,expected", [
    ("error=access_denied", "error=access_denied"),
    ("", "error=no_code"),
])
def test_callback_errors_redirect(client, query, expected):
    response = client.get(f"/api/auth/gmb/callback?{query}", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"].endswith(expected)


def test_store_and_read_tokens(client):
    assert client.get("/api/auth/gmb/tokens").status_code == 401

    bad = client.post("/api/auth/gmb/tokens", json={"access_token": "x"})
    assert bad.json()["error"] == "access_token and token_type are required"

    client.cookies.set("gmb-tokens", json.dumps(normalize_tokens(LIVE_TOKENS)))
    data = client.get("/api/auth/gmb/tokens").json()["data"]
    assert data["access_token"] == "live-token"
    assert data["has_refresh_token"] is True
    assert "refresh_token" not in data
    assert data["expires_at"]


def test_status(client):
    assert client.get("/api/auth/gmb/status").json()["data"] == {"connected": False}

    client.cookies.set("gmb-tokens", json.dumps(normalize_tokens(LIVE_TOKENS)))
    data = client.get("/api/auth/gmb/status").json()["data"]
    assert data["connected"] is True
    assert data["email"] == "owner@gmail.com"
    assert data["has_business_scope"] is True


def test_refresh(client, oauth_http):
    assert client.post("/api/auth/gmb/refresh").status_code == 401

    client.cookies.set("gmb-tokens", json.dumps(normalize_tokens(LIVE_TOKENS)))
    response = client.post("/api/auth/gmb/refresh")
    assert response.status_code == 200
    assert response.json()["data"]["expires_at"]
    assert oauth_http.calls[-1]["data"]["refresh_token"] == "refresh-me"


def test_refresh_failure_clears_cookie(client, oauth_http):
    oauth_http.routes["/token"] = FakeResponse(400, {"error": "invalid_grant"})
    client.cookies.set("gmb-tokens", json.dumps(normalize_tokens(LIVE_TOKENS)))

    response = client.post("/api/auth/gmb/refresh")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Token refresh failed"}


def test_disconnect_revokes_and_marks_accounts(client, oauth_http):
    db = client.app.state.db
    db.upsert_gmb_account(f"accounts/{ACCOUNT_ID}", "Acme Group")
    client.cookies.set("gmb-tokens", json.dumps(normalize_tokens(LIVE_TOKENS)))

    assert client.post("/api/auth/gmb/disconnect").json()["success"] is True
    assert oauth_http.calls[-1]["url"].endswith("/revoke")
    assert db.get_gmb_account(f"accounts/{ACCOUNT_ID}").connected is False


# ══════════════════════════════════════════════════════════════════
#  SYNC
# ══════════════════════════════════════════════════════════════════

def test_gmb_routes_require_session(client):
    assert client.post("/api/gmb/sync").status_code == 401
    assert client.get("/api/gmb/sync-all").status_code == 401


def test_pull_sync_requires_tokens(admin_client):
    response = admin_client.post("/api/gmb/sync")
    assert response.status_code == 401
    assert response.json()["error"] == "GMB authentication required"


def test_pull_sync(gmb_client):
    response = gmb_client.post("/api/gmb/sync")
    assert response.status_code == 200, response.text
    assert response.json()["data"]["stores"] == 1

    stats = gmb_client.get("/api/gmb/sync-all").json()["data"]
    assert stats == {"brands": 1, "stores": 1, "reviews": 1, "posts": 0}


def test_pull_sync_unknown_account(gmb_client):
    response = gmb_client.post("/api/gmb/sync", json={"account_id": "999"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_push_sync(admin_client):
    payload = {"gmbData": {
        "account": {"id": f"accounts/{ACCOUNT_ID}", "name": "Acme Group"},
        "locations": [{"id": LOCATION_NAME, "name": "Acme MG Road",
                       "address": "12 MG Road, Pune, 411001", "verified": True}],
    }}
    response = admin_client.post("/api/gmb/sync-all", json=payload)
    assert response.status_code == 200
    assert response.json()["data"]["stores"] == 1

    missing = admin_client.post("/api/gmb/sync-all", json={"gmbData": {"locations": []}})
    assert missing.json()["error"] == "Account and locations data are required"


# ══════════════════════════════════════════════════════════════════
#  LIVE PROXIES
# ══════════════════════════════════════════════════════════════════

def test_accounts_and_locations(gmb_client):
    data = gmb_client.get("/api/gmb/accounts").json()["data"]
    assert len(data["accounts"]) == 1
    assert data["stored_accounts"] == []

    locations = gmb_client.get(f"/api/gmb/locations?account_id={ACCOUNT_ID}").json()["data"]
    assert locations[0]["id"] == LOCATION_NAME


def test_live_reviews_validate_location(gmb_client):
    assert gmb_client.get("/api/gmb/reviews?location_id=locations/222").status_code == 400

    reviews = gmb_client.get(f"/api/gmb/reviews?location_id={LOCATION_NAME}").json()["data"]
    assert reviews[0]["star_rating"] == 5


def test_expired_tokens_are_refreshed_on_live_calls(admin_client):
    admin_client.cookies.set("gmb-tokens", json.dumps({"access_token": "stale", "refresh_token": "r"}))
    response = admin_client.get("/api/gmb/accounts")
    assert response.status_code == 200
    assert "refreshed-token" in response.headers["set-cookie"]


def test_refreshed_cookie_survives_failed_live_call(admin_client, gmb_http):
    gmb_http.routes["/v1/accounts"] = FakeResponse(403, {"error": {"status": "PERMISSION_DENIED"}})
    admin_client.cookies.set("gmb-tokens", json.dumps({"access_token": "stale", "refresh_token": "r"}))

    response = admin_client.get("/api/gmb/accounts")
    assert response.status_code == 403
    assert response.json()["success"] is False
    assert "refreshed-token" in response.headers["set-cookie"]


def test_update_live_post_refreshes_stored_copy(gmb_client, gmb_http):
    db = gmb_client.app.state.db
    brand_id = make_brand(db)
    store_id = make_store(db, brand_id, gmb_location_id=LOCATION_NAME)
    post_name = f"{LOCATION_NAME}/localPosts/p1"
    db.create_post({"gmb_post_id": post_name, "store_id": store_id, "brand_id": brand_id,
                    "summary": "Old offer"})
    gmb_http.routes["/localPosts/p1"] = FakeResponse(200, {"name": post_name, "summary": "New offer"})

    response = gmb_client.patch(f"/api/gmb/posts?post_name={post_name}",
                                json={"post_data": {"summary": "New offer"}})
    assert response.status_code == 200, response.text
    assert gmb_http.calls[-1]["method"] == "PATCH"
    assert db.get_post_by_gmb_id(post_name).summary == "New offer"

    bad = gmb_client.patch("/api/gmb/posts?post_name=localPosts/p1", json={"post_data": {"summary": "x"}})
    assert bad.status_code == 400


def test_reply_to_review(gmb_client, gmb_http):
    db = gmb_client.app.state.db
    brand_id = make_brand(db)
    store_id = make_store(db, brand_id, gmb_location_id=LOCATION_NAME)
    review_id = make_review(db, store_id, brand_id, f"{LOCATION_NAME}/reviews/r1")
    gmb_http.routes["/reply"] = FakeResponse(200, {"comment": "Thank you!"})

    response = gmb_client.post(f"/api/gmb/reviews/{review_id}/reply", json={"comment": "Thank you!"})
    assert response.status_code == 200, response.text
    assert response.json()["data"]["has_response"] is True

    put = gmb_http.calls[-1]
    assert put["method"] == "PUT"
    assert put["url"].endswith(f"{LOCATION_NAME}/reviews/r1/reply")
    assert put["json"] == {"comment": "Thank you!"}
    assert db.get_review(review_id).response["comment"] == "Thank you!"


def test_reply_requires_linked_store(gmb_client):
    db = gmb_client.app.state.db
    brand_id = make_brand(db)
    review_id = make_review(db, make_store(db, brand_id), brand_id, "r1")

    response = gmb_client.post(f"/api/gmb/reviews/{review_id}/reply", json={"comment": "Thanks"})
    assert response.status_code == 400
    assert response.json()["error"] == "Store GMB location ID not found"
    empty = gmb_client.post(f"/api/gmb/reviews/{review_id}/reply", json={"comment": " "})
    assert empty.json()["error"] == "Reply comment is required"


def test_manager_cannot_reply_to_other_brand(client):
    db = client.app.state.db
    own = make_brand(db, slug="own")
    other = make_brand(db, name="Brew", slug="brew")
    review_id = make_review(db, make_store(db, other, gmb_location_id=LOCATION_NAME), other, "r1")

    login(client)
    client.post("/api/auth/register", json={
        "email": "m@own.com", "password": "pw", "name": "M", "role": "manager", "brand_id": own,
    })
    login(client, "m@own.com", "pw")
    client.cookies.set("gmb-tokens", json.dumps(normalize_tokens(LIVE_TOKENS)))

    response = client.post(f"/api/gmb/reviews/{review_id}/reply", json={"comment": "Thanks"})
    assert response.status_code == 403


# ══════════════════════════════════════════════════════════════════
#  VERIFICATION
# ══════════════════════════════════════════════════════════════════

VERIFICATION_NAME = "locations/222/verifications/v1"


def _linked_store(db):
    brand_id = make_brand(db)
    store_id = make_store(db, brand_id, gmb_location_id=LOCATION_NAME, gmb_account_id=f"accounts/{ACCOUNT_ID}")
    return brand_id, store_id


def test_verify_store_records_check(gmb_client, gmb_http):
    db = gmb_client.app.state.db
    brand_id, store_id = _linked_store(db)
    make_store(db, brand_id, name="Acme FC Road", store_code="A-02")
    gmb_http.routes["/v1/locations/222"] = FakeResponse(200, {
        "name": "locations/222", "title": "Acme MG Road", "metadata": {"hasVoiceOfMerchant": True},
    })

    response = gmb_client.post("/api/gmb/verify-store", json={"store_id": store_id})
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["verified"] is True
    assert data["previous_verified"] is False
    assert response.json()["message"] == "Store is now verified in GMB!"

    store = db.get_store(store_id)
    assert store.verified is True
    entry = store.gmb_data["verification_history"][0]
    assert (entry["method"], entry["status"], entry["source"]) == ("API_CHECK", "COMPLETED", "manual_verification")

    stats = gmb_client.get(f"/api/gmb/verification-stats?brand_id={brand_id}").json()["data"]
    assert stats["total_stores"] == 2
    assert stats["verified_stores"] == 1
    assert stats["verification_rate"] == 50.0


def test_verify_requires_linked_store(gmb_client):
    db = gmb_client.app.state.db
    store_id = make_store(db, make_brand(db))

    response = gmb_client.post("/api/gmb/verify-store", json={"store_id": store_id})
    assert response.status_code == 400
    assert response.json()["error"] == "Store is not linked to a GMB location"
    assert gmb_client.post("/api/gmb/verify-store", json={"store_id": 999}).status_code == 404
    assert gmb_client.post("/api/gmb/verify-bulk", json={}).status_code == 400


def test_bulk_verify_reports_per_store_errors(gmb_client, gmb_http):
    db = gmb_client.app.state.db
    brand_id, store_id = _linked_store(db)
    make_store(db, brand_id, name="Acme FC Road", store_code="A-02")
    gmb_http.routes["/v1/locations/222"] = FakeResponse(200, {"name": "locations/222", "metadata": {}})

    response = gmb_client.post("/api/gmb/verify-bulk", json={"brand_id": brand_id})
    assert response.status_code == 200, response.text
    summary = response.json()["data"]["summary"]
    assert summary == {"total": 2, "checked": 1, "verified": 0, "newly_verified": 0, "errors": 1}


def test_verification_attempt_flow(gmb_client, gmb_http):
    db = gmb_client.app.state.db
    brand_id, store_id = _linked_store(db)
    gmb_http.routes[":verify"] = FakeResponse(200, {"verification": {
        "name": VERIFICATION_NAME, "method": "PHONE_CALL", "state": "PENDING",
    }})
    gmb_http.routes[f"{VERIFICATION_NAME}:complete"] = FakeResponse(200, {"verification": {
        "name": VERIFICATION_NAME, "state": "COMPLETED",
    }})

    no_method = gmb_client.post("/api/gmb/start-verification", json={"store_id": store_id, "options": {}})
    assert no_method.json()["error"] == "options.method is required"

    started = gmb_client.post("/api/gmb/start-verification", json={
        "store_id": store_id, "options": {"method": "PHONE_CALL", "phoneNumber": "+91 20 5555 0100"},
    })
    assert started.status_code == 200, started.text
    assert gmb_http.calls[-1]["json"]["phoneNumber"] == "+912055550100"

    stats = gmb_client.get(f"/api/gmb/verification-stats?brand_id={brand_id}").json()
    assert stats["data"]["pending_verifications"] == 1
    assert stats["pending"][0]["store_id"] == store_id

    no_pin = gmb_client.post("/api/gmb/complete-verification", json={
        "store_id": store_id, "verification_name": VERIFICATION_NAME, "pin": " ",
    })
    assert no_pin.json()["error"] == "pin is required"

    completed = gmb_client.post("/api/gmb/complete-verification", json={
        "store_id": store_id, "verification_name": VERIFICATION_NAME, "pin": "123456",
    })
    assert completed.status_code == 200, completed.text
    assert completed.json()["tracked"] is True
    assert completed.json()["message"] == "Verification completed"

    store = db.get_store(store_id)
    assert store.verified is True
    assert store.gmb_data["verification_history"][0]["status"] == "COMPLETED"


def test_voice_of_merchant_state_is_stored(gmb_client, gmb_http):
    db = gmb_client.app.state.db
    _, store_id = _linked_store(db)
    gmb_http.routes["/VoiceOfMerchantState"] = FakeResponse(200, {"hasVoiceOfMerchant": True})

    data = gmb_client.get(f"/api/gmb/voice-of-merchant-state?store_id={store_id}").json()["data"]
    assert data["compliance_state"] == "COMPLIANT"
    stored = db.get_store(store_id).gmb_data["voice_of_merchant_state"]
    assert stored["compliance_state"] == "COMPLIANT"


# ══════════════════════════════════════════════════════════════════
#  PERFORMANCE & CATEGORIES
# ══════════════════════════════════════════════════════════════════

DAILY_METRICS_RESPONSE = FakeResponse(200, {"multiDailyMetricTimeSeries": [{"dailyMetricTimeSeries": [
    {"dailyMetric": "BUSINESS_IMPRESSIONS_MOBILE_MAPS", "timeSeries": {"datedValues": [
        {"date": {"year": 2024, "month": 5, "day": 1}, "value": "80"},
        {"date": {"year": 2024, "month": 5, "day": 2}, "value": "120"},
    ]}},
    {"dailyMetric": "CALL_CLICKS", "timeSeries": {"datedValues": [
        {"date": {"year": 2024, "month": 5, "day": 2}, "value": "10"},
    ]}},
]}]})

KEYWORDS_RESPONSE = FakeResponse(200, {"searchKeywordsCounts": [
    {"searchKeyword": "coffee pune", "insightsValue": {"value": "120"}},
]})


def test_performance_sync_and_reports(gmb_client, gmb_http):
    db = gmb_client.app.state.db
    brand_id, store_id = _linked_store(db)
    unlinked = make_store(db, brand_id, name="Acme FC Road", store_code="A-02")
    gmb_http.routes[":fetchMultiDailyMetricsTimeSeries"] = DAILY_METRICS_RESPONSE
    gmb_http.routes["/impressions/monthly"] = KEYWORDS_RESPONSE

    bad = gmb_client.post("/api/performance/sync", json={"store_id": store_id, "days": 0})
    assert bad.status_code == 400

    response = gmb_client.post("/api/performance/sync", json={"store_id": store_id, "days": 7, "months": 2})
    assert response.status_code == 200, response.text
    assert response.json()["data"]["keywords"] == 2
    assert response.json()["data"]["performance"]["views"] == 200

    report = gmb_client.get(f"/api/performance?store_id={store_id}&days=7").json()
    assert report["data"]["days"] == 7
    assert report["data"]["metrics"]["conversion_rate"] == 5.0
    assert report["data"]["trend"][1] == {"date": "2024-05-02", "views": 120, "actions": 10}
    assert len(report["keywords"]) == 2
    assert gmb_client.get(f"/api/performance?store_id={unlinked}").status_code == 404

    table = gmb_client.get(f"/api/performance/store-wise?brand_id={brand_id}").json()["data"]
    assert [s["store_id"] for s in table["stores"]] == [store_id]
    assert table["aggregated"]["total_stores"] == 1
    assert table["aggregated"]["call_clicks"] == 10

    keywords = gmb_client.get(f"/api/performance/keywords?brand_id={brand_id}").json()["data"]
    assert keywords == [{"keyword": "coffee pune", "impressions": 240, "stores": 1, "below_threshold": False}]


def test_brand_performance_sync_skips_unlinked_stores(gmb_client, gmb_http):
    db = gmb_client.app.state.db
    brand_id, _ = _linked_store(db)
    make_store(db, brand_id, name="Acme FC Road", store_code="A-02")
    gmb_http.routes[":fetchMultiDailyMetricsTimeSeries"] = FakeResponse(403, {"error": "disabled"})

    data = gmb_client.post("/api/performance/sync", json={"brand_id": brand_id}).json()["data"]
    assert (data["stores"], data["skipped"], data["errors"]) == (1, 1, [])
    assert gmb_client.post("/api/performance/sync", json={}).status_code == 400


def test_category_sync_and_listing(gmb_client, gmb_http):
    gmb_http.routes["/v1/categories"] = FakeResponse(200, {"categories": [
        {"name": "categories/gcid:cafe", "displayName": "Cafe"},
        {"name": "categories/gcid:bakery", "displayName": "Bakery"},
        {"name": "", "displayName": "Nameless"},
    ]})

    status = gmb_client.get("/api/gmb/categories/sync").json()["data"]
    assert status["needs_sync"] is True and status["total"] == 0

    synced = gmb_client.post("/api/gmb/categories/sync?region_code=IN&language_code=en").json()["data"]
    assert (synced["fetched"], synced["created"], synced["skipped"]) == (3, 2, 1)
    assert synced["total_in_database"] == 2

    again = gmb_client.post("/api/gmb/categories/sync").json()["data"]
    assert (again["created"], again["updated"]) == (0, 2)

    found = gmb_client.get("/api/gmb/categories?search=caf").json()
    assert found["data"] == [{"value": "categories/gcid:cafe", "label": "Cafe"}]
    assert found["total"] == 1
    assert gmb_client.get("/api/gmb/categories/sync").json()["data"]["needs_sync"] is False
