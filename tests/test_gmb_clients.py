from datetime import date

import pytest
import requests

from conftest import FakeHttp, FakeResponse, LOCATION_NAME

from storecom.infrastructure.gmb import (
    GmbApiClient,
    GmbApiError,
    GoogleOAuthClient,
    OAuthError,
    TokenExpiredError,
    is_token_expired,
    merge_refreshed_tokens,
    normalize_tokens,
    parse_location_name,
    parse_review_name,
    parse_verification_name,
)
from storecom.infrastructure.gmb.api_client import (
    backoff_delay,
    construct_maps_url,
    format_address,
    map_review,
    map_search_keyword,
    post_body,
    star_rating_value,
)

NOW_MS = 1_700_000_000_000


# ══════════════════════════════════════════════════════════════════
#  OAUTH TOKENS
# ══════════════════════════════════════════════════════════════════

def test_normalize_tokens_sets_both_expiry_fields():
    tokens = normalize_tokens({"access_token": "a", "expires_in": 3600}, now_ms=NOW_MS)
    assert "expires_in" not in tokens
    assert tokens["expiry_date"] == NOW_MS + 3_600_000
    assert tokens["expires_at"] == "2023-11-14T23:13:20.000000+00:00"


def test_normalize_tokens_reads_iso_expiry():
    tokens = normalize_tokens({"access_token": "a", "expires_at": "2023-11-14T22:13:20Z"})
    assert tokens["expiry_date"] == NOW_MS


def test_expiry_uses_five_minute_buffer():
    assert is_token_expired({"expiry_date": NOW_MS + 4 * 60 * 1000}, now_ms=NOW_MS)
    assert not is_token_expired({"expiry_date": NOW_MS + 6 * 60 * 1000}, now_ms=NOW_MS)
    assert is_token_expired({"access_token": "no-expiry"}, now_ms=NOW_MS)


def test_merge_refreshed_tokens_keeps_refresh_token():
    current = {"access_token": "old", "refresh_token": "keep-me", "expiry_date": 1}
    merged = merge_refreshed_tokens(current, {"access_token": "new", "expires_in": 60}, now_ms=NOW_MS)
    assert merged["access_token"] == "new"
    assert merged["refresh_token"] == "keep-me"
    assert merged["expiry_date"] == NOW_MS + 60_000


def test_refresh_access_token_posts_refresh_grant(oauth_client, oauth_http):
    tokens = oauth_client.refresh_access_token({"access_token": "old", "refresh_token": "r"})
    assert tokens["access_token"] == "refreshed-token"
    assert tokens["refresh_token"] == "r"
    assert oauth_http.calls[-1]["data"]["grant_type"] == "refresh_token"


def test_refresh_without_refresh_token_fails(oauth_client):
    with pytest.raises(OAuthError) as exc:
        oauth_client.refresh_access_token({"access_token": "old"})
    assert exc.value.status_code == 401


def test_token_endpoint_error_raises(settings):
    http = FakeHttp({"/token": FakeResponse(400, {"error": "invalid_grant",
                                                   "error_description": "Bad code"})})
    client = GoogleOAuthClient(settings.google, session=http)
    with pytest.raises(OAuthError, match="Bad code"):
        client.exchange_code("code")


def test_get_valid_tokens_only_refreshes_when_expired(oauth_client):
    fresh = normalize_tokens({"access_token": "a", "refresh_token": "r", "expires_in": 3600})
    assert oauth_client.get_valid_tokens(fresh) == (fresh, False)

    tokens, refreshed = oauth_client.get_valid_tokens({"access_token": "a", "refresh_token": "r"})
    assert refreshed
    assert tokens["access_token"] == "refreshed-token"


def test_auth_url_requests_offline_consent(oauth_client):
    url = oauth_client.generate_auth_url(state="xyz")
    assert "access_type=offline" in url
    assert "prompt=consent" in url
    assert "state=xyz" in url
    assert "dashboard.test%2Fapi%2Fauth%2Fgmb%2Fcallback" in url


def test_token_info_returns_none_for_invalid_token(settings):
    http = FakeHttp({"/tokeninfo": FakeResponse(400, {"error": "invalid_token"})})
    assert GoogleOAuthClient(settings.google, session=http).get_token_info("bad") is None


def test_revoke_failure_is_not_raised(settings):
    http = FakeHttp({"/revoke": requests.ConnectionError("down")})
    assert GoogleOAuthClient(settings.google, session=http).revoke_token("t") is False


# ══════════════════════════════════════════════════════════════════
#  API CLIENT TRANSPORT
# ══════════════════════════════════════════════════════════════════

def _client(settings, routes):
    sleeps = []
    http = FakeHttp(routes)
    client = GmbApiClient("token", settings.google, session=http, sleep=sleeps.append)
    return client, http, sleeps


def test_missing_access_token_is_rejected(settings):
    with pytest.raises(TokenExpiredError):
        GmbApiClient("", settings.google)


def test_transient_status_is_retried(settings):
    client, http, sleeps = _client(settings, {
        "/v1/accounts": [FakeResponse(503, text="busy"), FakeResponse(200, {"accounts": []})],
    })
    assert client.get_accounts() == []
    assert len(http.calls) == 2
    assert len(sleeps) == 1


def test_network_errors_are_retried(settings):
    client, http, sleeps = _client(settings, {
        "/reviews": [requests.ConnectionError("reset"), FakeResponse(200, {"reviews": []})],
    })
    assert client.get_reviews(LOCATION_NAME) == []
    assert len(sleeps) == 1


def test_retries_give_up_after_max_attempts(settings):
    client, http, sleeps = _client(settings, {"/reviews": requests.Timeout("slow")})
    with pytest.raises(GmbApiError):
        client.get_reviews(LOCATION_NAME)
    assert len(http.calls) == settings.google.max_attempts
    assert len(sleeps) == settings.google.max_attempts - 1


def test_unauthorized_raises_token_expired(settings):
    client, _, sleeps = _client(settings, {"/reviews": FakeResponse(401, {"error": "expired"})})
    with pytest.raises(TokenExpiredError):
        client.get_reviews(LOCATION_NAME)
    assert sleeps == []


def test_posts_api_unavailable_returns_empty(settings):
    client, _, _ = _client(settings, {"/localPosts": FakeResponse(403, {"error": "forbidden"})})
    assert client.get_posts(LOCATION_NAME) == []


def test_locations_follow_page_tokens(settings):
    client, http, _ = _client(settings, {
        "/accounts/111/locations": [
            FakeResponse(200, {"locations": [{"name": "locations/1", "title": "One"}],
                               "nextPageToken": "p2"}),
            FakeResponse(200, {"locations": [{"name": "locations/2", "title": "Two"}]}),
        ],
    })
    locations = client.get_locations("accounts/111")
    assert [loc["id"] for loc in locations] == ["accounts/111/locations/1", "accounts/111/locations/2"]
    assert http.calls[1]["params"]["pageToken"] == "p2"


def test_accounts_fall_back_to_account_management(settings):
    client, http, _ = _client(settings, {
        "mybusinessbusinessinformation.googleapis.com/v1/accounts": FakeResponse(403, {}),
        "mybusinessaccountmanagement.googleapis.com/v1/accounts": FakeResponse(200, {
            "accounts": [{"name": "accounts/9", "accountName": "Fallback"}],
        }),
    })
    assert client.get_accounts()[0]["name"] == "Fallback"


def test_reply_to_review_puts_comment(settings):
    client, http, _ = _client(settings, {"/reply": FakeResponse(200, {"comment": "Thanks"})})
    assert client.reply_to_review(f"{LOCATION_NAME}/reviews/r1", "Thanks") == {"comment": "Thanks"}
    assert http.calls[0]["method"] == "PUT"
    assert http.calls[0]["json"] == {"comment": "Thanks"}


def test_update_post_patches_with_update_mask(settings):
    post_name = f"{LOCATION_NAME}/localPosts/p1"
    client, http, _ = _client(settings, {
        "/localPosts/p1": FakeResponse(200, {"name": post_name, "summary": "Monsoon special",
                                              "topicType": "STANDARD"}),
    })

    updated = client.update_post(post_name, {"summary": "Monsoon special", "topic_type": "STANDARD"})
    assert updated["id"] == post_name
    assert updated["location_id"] == LOCATION_NAME

    call = http.calls[0]
    assert call["method"] == "PATCH"
    assert call["url"].endswith(post_name)
    assert call["params"] == {"updateMask": "summary,topicType"}
    assert call["json"] == {"summary": "Monsoon special", "topicType": "STANDARD"}


def test_get_location_reads_one_location(settings):
    client, http, _ = _client(settings, {
        "/v1/locations/222": FakeResponse(200, {"name": "locations/222", "title": "Acme MG Road",
                                                 "metadata": {"hasVoiceOfMerchant": False}}),
    })
    location = client.get_location(LOCATION_NAME)
    assert location["id"] == LOCATION_NAME
    assert location["verified"] is False
    assert "readMask" in http.calls[0]["params"]


def test_start_verification_normalizes_phone(settings):
    client, http, _ = _client(settings, {
        "/locations/222:verify": FakeResponse(200, {"verification": {
            "name": "locations/222/verifications/v1", "method": "PHONE_CALL", "state": "PENDING",
        }}),
    })
    verification = client.start_verification(LOCATION_NAME, {"method": "PHONE_CALL",
                                                             "phoneNumber": "+91 20 5555 0100"})
    assert verification["name"] == "locations/222/verifications/v1"

    call = http.calls[0]
    assert call["method"] == "POST"
    assert call["url"].startswith("https://mybusinessverifications.googleapis.com/v1/")
    assert call["json"] == {"method": "PHONE_CALL", "phoneNumber": "+912055550100",
                            "languageCode": "en-US"}


def test_complete_verification_posts_pin(settings):
    client, http, _ = _client(settings, {
        "/verifications/v1:complete": FakeResponse(200, {"verification": {"state": "COMPLETED"}}),
    })
    assert client.complete_verification("locations/222/verifications/v1", "123456") == {"state": "COMPLETED"}
    assert http.calls[0]["json"] == {"pin": "123456"}

    with pytest.raises(ValueError):
        client.complete_verification("accounts/1/locations/222", "123456")


def test_daily_metrics_request_and_rows(settings):
    client, http, _ = _client(settings, {
        ":fetchMultiDailyMetricsTimeSeries": FakeResponse(200, {"multiDailyMetricTimeSeries": [{
            "dailyMetricTimeSeries": [
                {"dailyMetric": "WEBSITE_CLICKS", "timeSeries": {"datedValues": [
                    {"date": {"year": 2024, "month": 5, "day": 2}, "value": "4"},
                    {"date": {"year": 2024, "month": 5, "day": 1}},
                ]}},
                {"dailyMetric": "CALL_CLICKS", "timeSeries": {"datedValues": [
                    {"date": {"year": 2024, "month": 5, "day": 1}, "value": "2"},
                ]}},
            ],
        }]}),
    })
    rows = client.get_daily_metrics(LOCATION_NAME, date(2024, 5, 1), date(2024, 5, 2))
    assert rows == [
        {"date": "2024-05-01", "metrics": {"WEBSITE_CLICKS": 0, "CALL_CLICKS": 2}},
        {"date": "2024-05-02", "metrics": {"WEBSITE_CLICKS": 4}},
    ]

    params = http.calls[0]["params"]
    assert ("dailyMetrics", "WEBSITE_CLICKS") in params
    assert ("dailyRange.start_date.day", 1) in params
    assert ("dailyRange.end_date.day", 2) in params


def test_performance_api_unavailable_returns_empty(settings):
    client, _, _ = _client(settings, {
        ":fetchMultiDailyMetricsTimeSeries": FakeResponse(403, {"error": "forbidden"}),
        "/impressions/monthly": FakeResponse(404, {"error": "not enabled"}),
    })
    assert client.get_daily_metrics(LOCATION_NAME, date(2024, 5, 1), date(2024, 5, 2)) == []
    assert client.get_search_keywords(LOCATION_NAME, 2024, 4) == []


def test_search_keywords_follow_page_tokens(settings):
    client, http, _ = _client(settings, {
        "/impressions/monthly": [
            FakeResponse(200, {"searchKeywordsCounts": [
                {"searchKeyword": "coffee pune", "insightsValue": {"value": "120"}},
            ], "nextPageToken": "p2"}),
            FakeResponse(200, {"searchKeywordsCounts": [
                {"searchKeyword": "filter coffee", "insightsValue": {"threshold": "15"}},
                {"insightsValue": {"value": "3"}},
            ]}),
        ],
    })
    keywords = client.get_search_keywords(LOCATION_NAME, 2024, 4)
    assert [(k["keyword"], k["impressions"], k["below_threshold"]) for k in keywords] == [
        ("coffee pune", 120, False),
        ("filter coffee", 15, True),
    ]
    assert http.calls[0]["params"]["monthlyRange.start_month.month"] == 4
    assert http.calls[1]["params"]["pageToken"] == "p2"


def test_categories_follow_page_tokens(settings):
    client, http, _ = _client(settings, {
        "/v1/categories": [
            FakeResponse(200, {"categories": [{"name": "categories/gcid:cafe", "displayName": "Cafe"}],
                               "nextPageToken": "p2"}),
            FakeResponse(200, {"categories": [{"name": "categories/gcid:bakery", "displayName": "Bakery"}]}),
        ],
    })
    categories = client.get_categories("IN", "en")
    assert categories == [
        {"id": "categories/gcid:cafe", "display_name": "Cafe"},
        {"id": "categories/gcid:bakery", "display_name": "Bakery"},
    ]
    assert http.calls[0]["params"]["regionCode"] == "IN"
    assert http.calls[1]["params"]["pageToken"] == "p2"


def test_backoff_is_capped():
    assert 1.0 <= backoff_delay(1) < 1.25
    assert backoff_delay(10) == 5.0


# ══════════════════════════════════════════════════════════════════
#  NAMES & MAPPING
# ══════════════════════════════════════════════════════════════════

def test_resource_name_parsing():
    assert parse_location_name("accounts/1/locations/2") == ("1", "2")
    assert parse_review_name("accounts/1/locations/2/reviews/3") == ("1", "2", "3")
    with pytest.raises(ValueError):
        parse_location_name("locations/2")
    with pytest.raises(ValueError):
        parse_review_name("accounts/1/locations/2/localPosts/3")


@pytest.mark.parametrize("raw,expected", [
    ("FIVE", 5), ("two", 2), ("4", 4), (3, 3), ("STAR_RATING_UNSPECIFIED", 0), (None, 0),
])
def test_star_rating_value(raw, expected):
    assert star_rating_value(raw) == expected


def test_map_review_includes_reply():
    review = map_review({
        "name": f"{LOCATION_NAME}/reviews/r1",
        "starRating": "FOUR",
        "comment": "Nice",
        "reviewReply": {"comment": "Thanks!", "updateTime": "2024-05-02T00:00:00Z"},
    }, LOCATION_NAME)
    assert review["star_rating"] == 4
    assert review["reviewer"]["display_name"] == "Anonymous"
    assert review["has_response"]
    assert review["response"]["comment"] == "Thanks!"


def test_address_and_maps_url():
    address = {"addressLines": ["12 MG Road"], "locality": "Pune", "postalCode": "411001"}
    assert format_address(address) == "12 MG Road, Pune, 411001"
    assert format_address(None) == "No address available"
    assert construct_maps_url({"metadata": {"placeId": "abc"}}).endswith("place_id:abc")
    assert construct_maps_url({"latlng": {"latitude": 18.5, "longitude": 73.8}}).endswith("q=18.5,73.8")
    assert construct_maps_url({}) is None


def test_post_body_uses_api_field_names():
    body = post_body({
        "topic_type": "OFFER",
        "summary": "20% off",
        "call_to_action": {"action_type": "ORDER_ONLINE", "url": "https://acme.test"},
    })
    assert body == {
        "topicType": "OFFER",
        "summary": "20% off",
        "callToAction": {"actionType": "ORDER_ONLINE", "url": "https://acme.test"},
    }


def test_verification_name_parsing():
    assert parse_verification_name("locations/2/verifications/9") == ("2", "9")
    with pytest.raises(ValueError):
        parse_verification_name("accounts/1/locations/2")


def test_search_keyword_below_threshold_uses_threshold():
    keyword = map_search_keyword({"searchKeyword": "latte", "insightsValue": {"threshold": "15"}}, 2024, 4)
    assert keyword == {"keyword": "latte", "impressions": 15, "below_threshold": True,
                       "year": 2024, "month": 4}
