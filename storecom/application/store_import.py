"""
Bulk store import from an uploaded spreadsheet.
"""

import logging
from typing import List, Optional

from ..domain.slugs import slugify, store_code_from_name, unique_slug
from ..infrastructure.importer import StoreSheetParser
from ..infrastructure.persistence import Database

logger = logging.getLogger(__name__)


class StoreImporter:

    def __init__(self, db: Database, parser: Optional[StoreSheetParser] = None):
        self.db = db
        self.parser = parser or StoreSheetParser()

    def import_file(self, brand_id: int, content: bytes, filename: str) -> dict:
        """
        Parse and insert stores for a brand.

        Raises:
            SheetImportError: unreadable file or no name column

        Returns:
            {"added": n, "skipped": n, "errors": [str, ...]}
        """
        rows, detected = self.parser.parse(content, filename=filename)
        logger.info(f"Importing {len(rows)} store rows for brand {brand_id} (columns: {detected})")
        return self.import_rows(brand_id, rows)

    def import_rows(self, brand_id: int, rows: List[dict]) -> dict:
        added = skipped = 0
        errors = []

        for index, row in enumerate(rows, start=1):
            code = row.get("store_code") or store_code_from_name(row["name"])
            if row.get("store_code") and self.db.store_code_exists(code):
                skipped += 1
                continue
            code = unique_slug(code, self.db.store_code_exists)

            store_id = self.db.create_store({
                "brand_id": brand_id,
                "name": row["name"],
                "store_code": code,
                "slug": unique_slug(slugify(row["name"]) or "store", self.db.store_slug_exists),
                "email": row.get("email", ""),
                "phone": row.get("phone", ""),
                "address": {
                    "line1": row.get("address", ""),
                    "city": row.get("city", ""),
                    "state": row.get("state", ""),
                    "postal_code": row.get("postal_code", ""),
                    "country_code": "IN",
                },
                "status": "draft",
            })
            if store_id is None:
                errors.append(f"Row {index}: could not create store '{row['name']}'")
                continue
            added += 1

        logger.info(f"Store import for brand {brand_id}: {added} added, {skipped} skipped")
        return {"added": added, "skipped": skipped, "errors": errors}
