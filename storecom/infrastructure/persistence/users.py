"""
User table - dashboard accounts (super admins, owners, managers).
"""

import sqlite3
import logging
from typing import Optional

from .base import SQLiteRepository
from .models import User
from .timestamps import now_iso

logger = logging.getLogger(__name__)

USER_COLUMNS = (
    "email", "password_hash", "name", "role", "brand_id", "phone", "status",
    "last_login_at", "updated_at",
)


class UserRepository(SQLiteRepository):

    # ── User CRUD ──────────────────────────────────────────────────

    def create_user(self, email: str, password_hash: str, name: str, role: str,
                    brand_id: Optional[int] = None, phone: str = "",
                    status: str = "active") -> Optional[int]:
        """Create a new user. Returns None if the email is taken."""
        now = now_iso()
        try:
            with self._get_connection() as conn:
                return self._insert(conn, "users", {
                    "email": email.strip().lower(),
                    "password_hash": password_hash,
                    "name": name,
                    "role": role,
                    "brand_id": brand_id,
                    "phone": phone,
                    "status": status,
                    "created_at": now,
                    "updated_at": now,
                })
        except sqlite3.IntegrityError:
            logger.warning(f"User with email {email} already exists")
            return None

    def get_user(self, user_id: int) -> Optional[User]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
            ).fetchone()
            return self._row_to_user(row) if row else None

    def update_user(self, user_id: int, **updates) -> bool:
        updates["updated_at"] = now_iso()
        return self._update("users", user_id, updates, USER_COLUMNS, ())

    def touch_last_login(self, user_id: int) -> None:
        self.update_user(user_id, last_login_at=now_iso())

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            name=row["name"],
            role=row["role"],
            brand_id=row["brand_id"],
            phone=row["phone"] or "",
            status=row["status"],
            last_login_at=row["last_login_at"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
