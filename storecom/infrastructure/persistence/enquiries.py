"""
Enquiry table - contact requests from microsites.
"""

import sqlite3
from typing import List, Optional, Tuple

from .base import SQLiteRepository
from .models import Enquiry
from .timestamps import now_iso

ENQUIRY_COLUMNS = ("status", "response", "responded_at", "responded_by", "updated_at")


class EnquiryRepository(SQLiteRepository):

    def create_enquiry(self, data: dict) -> int:
        now = now_iso()
        values = {
            "name": data["name"],
            "email": data["email"],
            "phone": data.get("phone", "") or "",
            "subject": data.get("subject", "") or "",
            "message": data["message"],
            "enquiry_type": data.get("enquiry_type") or "general",
            "store_id": data.get("store_id"),
            "brand_id": data.get("brand_id"),
            "store_name": data.get("store_name", "") or "",
            "brand_name": data.get("brand_name", "") or "",
            "status": "new",
            "response": "",
            "created_at": now,
            "updated_at": now,
        }
        with self._get_connection() as conn:
            return self._insert(conn, "enquiries", values)

    def get_enquiry(self, enquiry_id: int) -> Optional[Enquiry]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM enquiries WHERE id = ?", (enquiry_id,)).fetchone()
            return self._row_to_enquiry(row) if row else None

    def list_enquiries(self, status: str = "", enquiry_type: str = "",
                       store_id: Optional[int] = None, brand_id: Optional[int] = None,
                       search: str = "", page: int = 1,
                       limit: int = 20) -> Tuple[List[Enquiry], int]:
        """List enquiries newest first."""
        clauses, params = [], []
        if status:
            clauses.append("status = ?")
            params.append(status)
        if enquiry_type:
            clauses.append("enquiry_type = ?")
            params.append(enquiry_type)
        if store_id is not None:
            clauses.append("store_id = ?")
            params.append(store_id)
        if brand_id is not None:
            clauses.append("brand_id = ?")
            params.append(brand_id)
        if search:
            like = f"%{search}%"
            clauses.append("(name LIKE ? OR email LIKE ? OR subject LIKE ?)")
            params += [like, like, like]

        where = self._where(clauses)
        with self._get_connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM enquiries {where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM enquiries {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit]
            ).fetchall()
            return [self._row_to_enquiry(row) for row in rows], total

    def update_enquiry(self, enquiry_id: int, **updates) -> bool:
        updates["updated_at"] = now_iso()
        return self._update("enquiries", enquiry_id, updates, ENQUIRY_COLUMNS, ())

    def _row_to_enquiry(self, row: sqlite3.Row) -> Enquiry:
        return Enquiry(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            message=row["message"],
            phone=row["phone"] or "",
            subject=row["subject"] or "",
            enquiry_type=row["enquiry_type"],
            store_id=row["store_id"],
            brand_id=row["brand_id"],
            store_name=row["store_name"] or "",
            brand_name=row["brand_name"] or "",
            status=row["status"],
            response=row["response"] or "",
            responded_at=row["responded_at"],
            responded_by=row["responded_by"] or "",
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
