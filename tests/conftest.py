import json
from datetime import timedelta

import pytest
import requests
from fastapi.testclient import TestClient

from storecom.infrastructure.config import get_settings
from storecom.infrastructure.gmb import GmbApiClient, GoogleOAuthClient
from storecom.infrastructure.persistence import init_database, to_iso, utcnow

SUPER_ADMIN_EMAIL = "admin@storecom.test"
SUPER_ADMIN_PASSWORD = "admin-pass"


# ── Fakes ──────────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status_code=200, data=None, text=None):
        self.status_code = status_code
        self._data = data
        self.text = text if text is not None else (json.dumps(data) if data is not None else "")
        self.content = self.text.encode("utf-8")

    def json(self):
        if self._data is None:
            raise ValueError("No JSON body")
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeHttp:
    """
    Stand-in for requests.Session.

    `routes` maps a URL suffix to a FakeResponse, an exception, or a list of
    those consumed in order (the last one repeats).
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def _reply(self, method, url, kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        for suffix in sorted(self.routes, key=len, reverse=True):
            if url.endswith(suffix):
                outcome = self.routes[suffix]
                if isinstance(outcome, list):
                    outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return FakeResponse(404, {"error": "not found"})

    def request(self, method, url, **kwargs):
        return self._reply(method, url, kwargs)

    def get(self, url, **kwargs):
        return self._reply("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._reply("POST", url, kwargs)


class FakeLLM:
    """OpenRouterClient stand-in that returns a canned completion."""

    def __init__(self, content=None, configured=True):
        self.content = content
        self.is_configured = configured
        self.prompts = []

    def complete(self, prompt, max_tokens=200, temperature=None):
        self.prompts.append(prompt)
        return self.content


# ── Environment ────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def test_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "storecom-test.db"))
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("SUPER_ADMIN_EMAIL", SUPER_ADMIN_EMAIL)
    monkeypatch.setenv("SUPER_ADMIN_PASSWORD", SUPER_ADMIN_PASSWORD)
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "client-id")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("APP_URL", "http://dashboard.test")
    monkeypatch.setenv("GOOGLE_REDIRECT_URI", "")
    monkeypatch.setenv("OPENROUTER_API_KEY", "")
    monkeypatch.setenv("APP_ENV", "test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db(settings):
    return init_database(settings.database.path)


# ── Seed helpers ───────────────────────────────────────────────────

def days_ago(days: int) -> str:
    return to_iso(utcnow() - timedelta(days=days))


def make_brand(db, name="Acme Coffee", slug="acme", **extra) -> int:
    return db.create_brand({"name": name, "slug": slug, "email": f"{slug}@example.com", **extra})


def make_store(db, brand_id, name="Acme MG Road", store_code="A-01", slug=None,
               status="active", **extra) -> int:
    return db.create_store({
        "brand_id": brand_id,
        "name": name,
        "store_code": store_code,
        "slug": slug or store_code.lower(),
        "email": "store@example.com",
        "address": {"line1": "12 MG Road", "city": "Pune", "state": "MH", "postal_code": "411001"},
        "status": status,
        **extra,
    })


def make_review(db, store_id, brand_id, gmb_review_id, rating=5, comment="", days=1, **extra) -> int:
    return db.create_review({
        "gmb_review_id": gmb_review_id,
        "store_id": store_id,
        "brand_id": brand_id,
        "star_rating": rating,
        "comment": comment,
        "gmb_create_time": days_ago(days),
        **extra,
    })


# ── Google fakes ───────────────────────────────────────────────────

ACCOUNT_ID = "111"
LOCATION_NAME = f"accounts/{ACCOUNT_ID}/locations/222"

GMB_ROUTES = {
    "/v1/accounts": FakeResponse(200, {
        "accounts": [{"name": f"accounts/{ACCOUNT_ID}", "accountName": "Acme Group", "type": "PERSONAL"}],
    }),
    f"/accounts/{ACCOUNT_ID}/locations": FakeResponse(200, {
        "locations": [{
            "name": "locations/222",
            "title": "Acme MG Road",
            "storefrontAddress": {
                "addressLines": ["12 MG Road"],
                "locality": "Pune",
                "administrativeArea": "MH",
                "postalCode": "411001",
                "regionCode": "IN",
            },
            "phoneNumbers": {"primaryPhone": "+91 20 5555 0100"},
            "categories": {"primaryCategory": {"displayName": "Cafe"}},
            "metadata": {"hasVoiceOfMerchant": True, "mapsUri": "https://maps.google.com/?cid=42"},
        }],
    }),
    f"/{LOCATION_NAME}/reviews": FakeResponse(200, {
        "reviews": [{
            "name": f"{LOCATION_NAME}/reviews/r1",
            "reviewer": {"displayName": "Asha"},
            "starRating": "FIVE",
            "comment": "Great coffee and friendly staff",
            "createTime": "2024-05-01T10:00:00Z",
        }],
    }),
    f"/{LOCATION_NAME}/localPosts": FakeResponse(200, {"localPosts": []}),
}


@pytest.fixture
def gmb_http():
    return FakeHttp({key: value for key, value in GMB_ROUTES.items()})


@pytest.fixture
def oauth_http():
    return FakeHttp({
        "/token": FakeResponse(200, {"access_token": "refreshed-token", "expires_in": 3600}),
        "/tokeninfo": FakeResponse(200, {
            "email": "owner@gmail.com",
            "scope": "https://www.googleapis.com/auth/business.manage openid",
            "expires_in": 1800,
        }),
        "/revoke": FakeResponse(200, {}),
    })


@pytest.fixture
def oauth_client(settings, oauth_http):
    return GoogleOAuthClient(settings.google, session=oauth_http)


@pytest.fixture
def gmb_client_factory(settings, gmb_http):
    def factory(access_token):
        return GmbApiClient(access_token, settings.google, session=gmb_http, sleep=lambda s: None)
    return factory


# ── App ────────────────────────────────────────────────────────────

@pytest.fixture
def fake_llm():
    return FakeLLM(configured=False)


@pytest.fixture
def client(settings, oauth_client, gmb_client_factory, fake_llm):
    from storecom.infrastructure.llm import ReplyGenerator, SentimentService
    from storecom.web.app import create_app

    app = create_app(
        settings=settings,
        oauth_client=oauth_client,
        gmb_client_factory=gmb_client_factory,
        sentiment_service=SentimentService(fake_llm),
        reply_generator=ReplyGenerator(fake_llm),
    )
    with TestClient(app) as test_client:
        yield test_client


def login(client, email=SUPER_ADMIN_EMAIL, password=SUPER_ADMIN_PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]["user"]


@pytest.fixture
def admin_client(client):
    login(client)
    return client

