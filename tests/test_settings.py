from pathlib import Path

from storecom.infrastructure.config import Settings, get_settings


def test_settings_read_environment(tmp_path):
    settings = get_settings()
    assert settings.database.path == Path(tmp_path / "storecom-test.db")
    assert settings.auth.jwt_secret == "test-secret"
    assert settings.auth.bcrypt_rounds == 4
    assert settings.auth.session_cookie == "session-token"
    assert settings.google.token_cookie == "gmb-tokens"
    assert settings.google.token_cookie_days == 30


def test_settings_are_cached():
    assert get_settings() is get_settings()


def test_callback_url_defaults_to_app_url():
    assert get_settings().google.callback_url == "http://dashboard.test/api/auth/gmb/callback"


def test_explicit_redirect_uri_wins(monkeypatch):
    monkeypatch.setenv("GOOGLE_REDIRECT_URI", "https://example.com/cb")
    assert Settings().google.callback_url == "https://example.com/cb"


def test_invalid_bcrypt_rounds_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("BCRYPT_ROUNDS", "lots")
    assert Settings().auth.bcrypt_rounds == 12


def test_production_flag(monkeypatch):
    assert not get_settings().is_production
    monkeypatch.setenv("APP_ENV", "Production")
    assert Settings().is_production


def test_validate_warns_about_missing_llm_key_only():
    issues = get_settings().validate()
    assert any("OPENROUTER_API_KEY" in issue for issue in issues)
    assert not any("GOOGLE_CLIENT_ID" in issue for issue in issues)
    assert not any("JWT_SECRET" in issue for issue in issues)


def test_validate_warns_about_default_jwt_secret(monkeypatch):
    monkeypatch.delenv("JWT_SECRET")
    monkeypatch.delenv("GOOGLE_CLIENT_ID")
    issues = Settings().validate()
    assert any("JWT_SECRET" in issue for issue in issues)
    assert any("GOOGLE_CLIENT_ID" in issue for issue in issues)
