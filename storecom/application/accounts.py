"""
Account Service - Login, Registration and Admin Seeding
========================================================

Dashboard logins come from two places:
    1. The users table (super admins and registered owners/managers)
    2. Brand documents, whose users.owner / users.manager entries carry an
       email and a bcrypt password set when the brand was created

ARCHITECTURAL DECISION:
    Brand-embedded logins resolve to a session whose user_id and brand_id are
    both the brand id. Nothing is written to the users table for them.
"""

import logging
from typing import Optional

from ..domain.permissions import can_access_brand
from ..infrastructure.config import AuthSettings, get_settings
from ..infrastructure.persistence import Database, User, UserRole, enum_values
from ..infrastructure.security import SessionData, hash_password, verify_password

logger = logging.getLogger(__name__)


class AccountError(Exception):
    """Login or registration refused; carries the HTTP status to report."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AccountService:

    def __init__(self, db: Database, settings: Optional[AuthSettings] = None):
        self.db = db
        self.settings = settings or get_settings().auth

    # ── Login ──────────────────────────────────────────────────────

    def login(self, email: str, password: str) -> SessionData:
        """
        Authenticate and return the session payload.

        Raises:
            AccountError: 400 missing fields, 403 inactive user, 401 bad credentials
        """
        if not email or not password:
            raise AccountError("Email and password are required", 400)

        email = email.strip().lower()
        user = self.db.get_user_by_email(email)

        if user:
            if not user.is_active:
                raise AccountError("Account is not active", 403)
            if not verify_password(password, user.password_hash):
                raise AccountError("Invalid email or password", 401)
            self.db.touch_last_login(user.id)
            logger.info(f"User {email} logged in ({user.role})")
            return SessionData(
                user_id=user.id, email=user.email, name=user.name,
                role=user.role, brand_id=user.brand_id,
            )

        session = self._brand_login(email, password)
        if session is None:
            raise AccountError("Invalid email or password", 401)
        logger.info(f"Brand {session.role} {email} logged in (brand {session.brand_id})")
        return session

    def _brand_login(self, email: str, password: str) -> Optional[SessionData]:
        brand = self.db.get_brand_by_user_email(email)
        if brand is None:
            return None

        users = brand.users or {}
        for role in (UserRole.OWNER.value, UserRole.MANAGER.value):
            account = users.get(role) or {}
            if (account.get("email") or "").strip().lower() != email:
                continue
            if verify_password(password, account.get("password") or ""):
                return SessionData(
                    user_id=brand.id, email=email, name=brand.name,
                    role=role, brand_id=brand.id,
                )
        return None

    # ── Registration ───────────────────────────────────────────────

    def register(self, session: SessionData, data: dict) -> User:
        """
        Create a dashboard user on behalf of the logged-in user.

        Rules:
            - only super_admin creates owners
            - super_admin or owner creates managers (owners for their own brand)
            - owner and manager accounts need an existing brand_id
        """
        email = (data.get("email") or "").strip().lower()
        password = data.get("password") or ""
        name = (data.get("name") or "").strip()
        role = data.get("role") or ""

        if not email or not password or not name or not role:
            raise AccountError("Email, password, name and role are required", 400)
        if role not in enum_values(UserRole):
            raise AccountError(f"Invalid role: {role}", 400)

        brand_id = data.get("brand_id")
        self._check_can_create(session, role, brand_id)

        if role != UserRole.SUPER_ADMIN.value:
            if not brand_id:
                raise AccountError("brand_id is required for owner and manager accounts", 400)
            if self.db.get_brand(brand_id) is None:
                raise AccountError("Brand not found", 404)
        else:
            brand_id = None

        if self.db.get_user_by_email(email):
            raise AccountError("User with this email already exists", 409)

        user_id = self.db.create_user(
            email=email,
            password_hash=hash_password(password, self.settings.bcrypt_rounds),
            name=name,
            role=role,
            brand_id=brand_id,
            phone=data.get("phone") or "",
        )
        if user_id is None:
            raise AccountError("User with this email already exists", 409)

        logger.info(f"{session.email} registered {role} {email}")
        return self.db.get_user(user_id)

    @staticmethod
    def _check_can_create(session: SessionData, role: str, brand_id: Optional[int]):
        if role in (UserRole.SUPER_ADMIN.value, UserRole.OWNER.value):
            if session.role != UserRole.SUPER_ADMIN.value:
                raise AccountError(f"Only super admins can create {role} accounts", 403)
            return

        # manager
        if session.role not in (UserRole.SUPER_ADMIN.value, UserRole.OWNER.value):
            raise AccountError("Insufficient permissions to create managers", 403)
        if not can_access_brand(session.role, session.brand_id, brand_id):
            raise AccountError("Owners can only create managers for their own brand", 403)

    # ── Seeding ────────────────────────────────────────────────────

    def seed_super_admin(self) -> Optional[int]:
        """Create the configured super admin once. Returns the new id, if any."""
        email = self.settings.super_admin_email
        password = self.settings.super_admin_password
        if not email or not password:
            return None
        if self.db.get_user_by_email(email):
            return None

        user_id = self.db.create_user(
            email=email,
            password_hash=hash_password(password, self.settings.bcrypt_rounds),
            name="Super Admin",
            role=UserRole.SUPER_ADMIN.value,
        )
        if user_id:
            logger.info(f"Seeded super admin {email}")
        return user_id
