"""
Google OAuth Client - GMB Token Lifecycle
==========================================

Handles the authorization-code flow for the Google Business Profile scopes:
building the consent URL, exchanging the code, refreshing, revoking and
inspecting tokens.

Tokens are plain dicts, as Google returns them, stored in a cookie by the
web layer. Two expiry fields are kept in sync on every token dict:
    expiry_date - milliseconds since epoch
    expires_at  - the same instant as an ISO-8601 string

ARCHITECTURAL DECISION:
    Raw `requests` calls instead of a Google SDK. The flow is four POST/GET
    endpoints and keeping it explicit makes every failure mode visible.
"""

import time
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple
from urllib.parse import urlencode

import requests

from ..config import GoogleSettings, get_settings
from ..persistence.timestamps import parse_timestamp, to_iso

logger = logging.getLogger(__name__)

# Refresh this long before the real expiry
EXPIRY_BUFFER_MS = 5 * 60 * 1000

OAUTH_TIMEOUT_SECONDS = 20


class OAuthError(Exception):
    """Token exchange/refresh/inspection failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _now_ms() -> int:
    return int(time.time() * 1000)


def token_expiry_ms(tokens: dict) -> Optional[int]:
    """Expiry as epoch milliseconds, read from expires_at (ISO or ms) or expiry_date."""
    for key in ("expires_at", "expiry_date"):
        value = tokens.get(key)
        if value in (None, ""):
            continue
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            if value.strip().isdigit():
                return int(value.strip())
            parsed = parse_timestamp(value)
            if parsed is not None:
                return int(parsed.timestamp() * 1000)
    return None


def is_token_expired(tokens: dict, now_ms: Optional[int] = None) -> bool:
    """True if the token has no expiry or expires within the next 5 minutes."""
    expiry = token_expiry_ms(tokens)
    if expiry is None:
        return True
    now_ms = _now_ms() if now_ms is None else now_ms
    return now_ms >= expiry - EXPIRY_BUFFER_MS


def normalize_tokens(tokens: dict, now_ms: Optional[int] = None) -> dict:
    """
    Return a copy with both expiry fields set.

    A fresh `expires_in` (seconds, as sent by Google) wins over any stored
    expiry and is dropped afterwards, since it is only meaningful at issue time.
    """
    normalized = dict(tokens)
    expires_in = normalized.pop("expires_in", None)
    if expires_in not in (None, ""):
        now_ms = _now_ms() if now_ms is None else now_ms
        expiry = now_ms + int(expires_in) * 1000
    else:
        expiry = token_expiry_ms(normalized)

    if expiry is not None:
        normalized["expiry_date"] = expiry
        normalized["expires_at"] = to_iso(
            datetime.fromtimestamp(expiry / 1000, tz=timezone.utc)
        )
    return normalized


def merge_refreshed_tokens(current: dict, refreshed: dict,
                           now_ms: Optional[int] = None) -> dict:
    """Overlay a refresh response on the stored tokens, keeping the old refresh_token if omitted."""
    merged = {**current, **refreshed}
    merged["refresh_token"] = refreshed.get("refresh_token") or current.get("refresh_token")
    if "expires_in" in refreshed:
        # Stale stored expiry must not survive the merge
        merged.pop("expires_at", None)
        merged.pop("expiry_date", None)
    return normalize_tokens(merged, now_ms=now_ms)


class GoogleOAuthClient:
    """
    OAuth2 client for the GMB integration.

    Usage:
        oauth = GoogleOAuthClient()
        url = oauth.generate_auth_url()
        tokens = oauth.exchange_code(code)
        tokens, refreshed = oauth.get_valid_tokens(tokens)
    """

    def __init__(self, settings: Optional[GoogleSettings] = None,
                 session: Optional[requests.Session] = None):
        self.settings = settings or get_settings().google
        self.http = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.client_id and self.settings.client_secret)

    def generate_auth_url(self, state: Optional[str] = None) -> str:
        params = {
            "client_id": self.settings.client_id,
            "redirect_uri": self.settings.callback_url,
            "response_type": "code",
            "scope": " ".join(self.settings.scopes),
            "access_type": "offline",
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return f"{self.settings.auth_url}?{urlencode(params)}"

    def exchange_code(self, code: str) -> dict:
        """Exchange an authorization code for tokens."""
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "redirect_uri": self.settings.callback_url,
        }
        tokens = self._post_token(data, "Token exchange")
        logger.info("Exchanged authorization code for GMB tokens")
        return normalize_tokens(tokens)

    def refresh_access_token(self, tokens: dict) -> dict:
        """Refresh the access token and merge the result over the stored tokens."""
        refresh_token = tokens.get("refresh_token")
        if not refresh_token:
            raise OAuthError("No refresh token available", status_code=401)

        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
        }
        refreshed = self._post_token(data, "Token refresh")
        logger.info("GMB access token refreshed")
        return merge_refreshed_tokens(tokens, refreshed)

    def get_valid_tokens(self, tokens: dict) -> Tuple[dict, bool]:
        """
        Refresh the tokens if they are expired or about to expire.

        Returns:
            Tuple of (usable tokens, refreshed flag)
        """
        if is_token_expired(tokens):
            logger.info("GMB token expired or expiring soon, refreshing")
            return self.refresh_access_token(tokens), True
        return tokens, False

    def revoke_token(self, token: str) -> bool:
        """Revoke a token at Google. Failures are logged, never raised."""
        try:
            response = self.http.post(
                self.settings.revoke_url,
                params={"token": token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=OAUTH_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.warning(f"Token revocation request failed: {e}")
            return False

        if response.status_code >= 400:
            logger.warning(f"Token revocation returned {response.status_code}: {response.text[:200]}")
            return False
        return True

    def get_token_info(self, access_token: str) -> Optional[dict]:
        """
        Inspect an access token.

        Returns:
            Google's tokeninfo dict, or None if the token is invalid/expired.

        Raises:
            OAuthError: Google could not be reached
        """
        try:
            response = self.http.get(
                self.settings.tokeninfo_url,
                params={"access_token": access_token},
                timeout=OAUTH_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise OAuthError(f"Token verification failed: {e}", status_code=502) from e

        if response.status_code >= 400:
            return None
        info = self._json(response)
        if not info or "error" in info:
            return None
        return info

    def get_user_info(self, access_token: str) -> dict:
        """Google profile (id, email, name, picture) of the connected account."""
        try:
            response = self.http.get(
                self.settings.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=OAUTH_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise OAuthError(f"Failed to fetch user info: {e}", status_code=502) from e

        if response.status_code == 401:
            raise OAuthError("Access token expired or revoked", status_code=401)
        if response.status_code >= 400:
            raise OAuthError(
                f"Failed to fetch user info (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        return self._json(response) or {}

    # ── Internals ──────────────────────────────────────────────────

    def _post_token(self, data: dict, action: str) -> dict:
        try:
            response = self.http.post(
                self.settings.token_url, data=data, timeout=OAUTH_TIMEOUT_SECONDS
            )
        except requests.RequestException as e:
            raise OAuthError(f"{action} failed: {e}", status_code=502) from e

        body = self._json(response) or {}
        if response.status_code >= 400 or "access_token" not in body:
            reason = body.get("error_description") or body.get("error") or f"HTTP {response.status_code}"
            logger.error(f"{action} failed: {reason}")
            raise OAuthError(f"{action} failed: {reason}", status_code=response.status_code)
        return body

    @staticmethod
    def _json(response) -> Optional[dict]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None
