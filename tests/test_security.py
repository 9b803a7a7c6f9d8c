from datetime import datetime, timedelta, timezone

import jwt

from storecom.infrastructure.security import (
    SessionData,
    create_session_token,
    hash_password,
    verify_password,
    verify_session_token,
)


def test_password_hash_round_trip():
    hashed = hash_password("s3cret")
    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_rejects_empty_and_malformed():
    assert not verify_password("", hash_password("x"))
    assert not verify_password("x", "")
    assert not verify_password("x", "plain-text-not-a-hash")


def test_session_token_carries_identity():
    session = SessionData(user_id=3, email="owner@acme.com", name="Owner", role="owner", brand_id=9)
    decoded = verify_session_token(create_session_token(session))
    assert decoded == session


def test_tampered_or_foreign_tokens_are_rejected():
    token = create_session_token(SessionData(1, "a@b.c", "A", "super_admin"))
    assert verify_session_token(token[:-2] + "xx") is None
    assert verify_session_token(jwt.encode({"user_id": 1}, "other-secret", algorithm="HS256")) is None
    assert verify_session_token(None) is None


def test_expired_token_is_rejected(settings):
    payload = {
        "user_id": 1, "email": "a@b.c", "role": "super_admin",
        "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
    }
    token = jwt.encode(payload, settings.auth.jwt_secret, algorithm="HS256")
    assert verify_session_token(token) is None


def test_token_missing_claims_is_rejected(settings):
    token = jwt.encode({"email": "a@b.c"}, settings.auth.jwt_secret, algorithm="HS256")
    assert verify_session_token(token) is None
