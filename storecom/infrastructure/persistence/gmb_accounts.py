"""
GMB account table - Business Profile accounts discovered while syncing.
"""

import sqlite3
from typing import List, Optional

from .base import SQLiteRepository
from .models import GmbAccount
from .timestamps import now_iso


class GmbAccountRepository(SQLiteRepository):

    def upsert_gmb_account(self, gmb_account_id: str, name: str,
                           account_type: str = "", email: str = "") -> int:
        """Insert or refresh an account row, marking it connected."""
        now = now_iso()
        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO gmb_accounts
                       (gmb_account_id, name, email, account_type, connected, metadata,
                        status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, 1, '{}', 'active', ?, ?)
                   ON CONFLICT(gmb_account_id) DO UPDATE SET
                       name = excluded.name,
                       email = CASE WHEN excluded.email != '' THEN excluded.email ELSE email END,
                       account_type = excluded.account_type,
                       connected = 1,
                       status = 'active',
                       updated_at = excluded.updated_at""",
                (gmb_account_id, name, email, account_type, now, now)
            )
            row = conn.execute(
                "SELECT id FROM gmb_accounts WHERE gmb_account_id = ?", (gmb_account_id,)
            ).fetchone()
            return row["id"]

    def get_gmb_account(self, gmb_account_id: str) -> Optional[GmbAccount]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM gmb_accounts WHERE gmb_account_id = ?", (gmb_account_id,)
            ).fetchone()
            return self._row_to_gmb_account(row) if row else None

    def list_gmb_accounts(self) -> List[GmbAccount]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM gmb_accounts ORDER BY name").fetchall()
            return [self._row_to_gmb_account(row) for row in rows]

    def mark_gmb_account_synced(self, gmb_account_id: str, metadata: dict) -> None:
        """Stamp last_sync_at and store per-account counts."""
        now = now_iso()
        with self._get_connection() as conn:
            conn.execute(
                """UPDATE gmb_accounts SET last_sync_at = ?, metadata = ?, updated_at = ?
                   WHERE gmb_account_id = ?""",
                (now, self._dumps(metadata), now, gmb_account_id)
            )

    def disconnect_gmb_accounts(self) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE gmb_accounts SET connected = 0, updated_at = ? WHERE connected = 1",
                (now_iso(),)
            )
            return cursor.rowcount

    def _row_to_gmb_account(self, row: sqlite3.Row) -> GmbAccount:
        return GmbAccount(
            id=row["id"],
            gmb_account_id=row["gmb_account_id"],
            name=row["name"],
            email=row["email"] or "",
            account_type=row["account_type"] or "",
            connected=bool(row["connected"]),
            last_sync_at=row["last_sync_at"],
            metadata=self._loads(row["metadata"], {}),
            status=row["status"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
