"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded secrets)
- Settings are immutable dataclasses for safety and clarity
- Single source of truth for all configurable values

EXTENSIBILITY:
- To move off SQLite: replace DatabaseSettings with connection string settings
- To switch LLM provider: change LLMSettings api_url/model
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file if present (development convenience)
load_dotenv()

DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class DatabaseSettings:
    """SQLite storage settings."""

    path: Path = field(
        default_factory=lambda: Path(os.getenv("DATABASE_PATH", "storecom.db"))
    )


@dataclass(frozen=True)
class AuthSettings:
    """Dashboard login sessions and password hashing."""

    jwt_secret: str = field(
        default_factory=lambda: os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
    )
    jwt_algorithm: str = "HS256"
    session_cookie: str = "session-token"
    session_days: int = 7

    # bcrypt cost factor; tests lower it to keep hashing fast
    bcrypt_rounds: int = field(default_factory=lambda: _env_int("BCRYPT_ROUNDS", 12))

    # Optional bootstrap account created at startup
    super_admin_email: str = field(
        default_factory=lambda: os.getenv("SUPER_ADMIN_EMAIL", "").strip().lower()
    )
    super_admin_password: str = field(
        default_factory=lambda: os.getenv("SUPER_ADMIN_PASSWORD", "")
    )


@dataclass(frozen=True)
class GoogleSettings:
    """Google OAuth + Business Profile API settings."""

    client_id: str = field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_ID", ""))
    client_secret: str = field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_SECRET", ""))

    # Public base URL of this dashboard (used for redirects after OAuth)
    app_url: str = field(
        default_factory=lambda: os.getenv("APP_URL", "http://127.0.0.1:8000").rstrip("/")
    )
    redirect_uri: str = field(default_factory=lambda: os.getenv("GOOGLE_REDIRECT_URI", ""))

    scopes: tuple = (
        "https://www.googleapis.com/auth/business.manage",
        "https://www.googleapis.com/auth/userinfo.email",
        "https://www.googleapis.com/auth/userinfo.profile",
    )

    auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"
    revoke_url: str = "https://oauth2.googleapis.com/revoke"
    tokeninfo_url: str = "https://www.googleapis.com/oauth2/v1/tokeninfo"
    userinfo_url: str = "https://www.googleapis.com/oauth2/v2/userinfo"

    token_cookie: str = "gmb-tokens"
    token_cookie_days: int = 30

    # Business Profile API request policy
    request_timeout_seconds: int = 60
    max_attempts: int = 3

    @property
    def callback_url(self) -> str:
        return self.redirect_uri or f"{self.app_url}/api/auth/gmb/callback"


@dataclass(frozen=True)
class LLMSettings:
    """OpenRouter LLM settings for sentiment analysis and reply drafts."""

    api_key: str = field(default_factory=lambda: os.getenv("OPENROUTER_API_KEY", ""))
    api_url: str = "https://openrouter.ai/api/v1/chat/completions"

    model: str = field(
        default_factory=lambda: os.getenv("LLM_MODEL", "meta-llama/llama-3.2-3b-instruct:free")
    )

    # Deterministic output
    temperature: float = 0.0
    timeout_seconds: int = 15


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from storecom.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.google.client_id)
    """

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    google: GoogleSettings = field(default_factory=GoogleSettings)
    llm: LLMSettings = field(default_factory=LLMSettings)

    environment: str = field(
        default_factory=lambda: os.getenv("APP_ENV", "development").strip().lower()
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").strip().upper()
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings/errors.
        Returns empty list if all settings are valid.
        """
        issues = []

        if not self.google.client_id or not self.google.client_secret:
            issues.append(
                "WARNING: GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET not set. "
                "GMB connect and sync will not work."
            )

        if not self.llm.api_key:
            issues.append(
                "WARNING: OPENROUTER_API_KEY not set. "
                "Sentiment analysis will use rule-based scoring only."
            )

        if self.auth.jwt_secret == DEFAULT_JWT_SECRET:
            issues.append(
                "WARNING: JWT_SECRET uses the built-in default. "
                "Set a real secret before deploying."
            )

        if not self.auth.super_admin_email or not self.auth.super_admin_password:
            issues.append(
                "WARNING: SUPER_ADMIN_EMAIL/SUPER_ADMIN_PASSWORD not set. "
                "No super admin will be seeded."
            )

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()
