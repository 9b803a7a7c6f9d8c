"""
Store Sheet Parser - Bulk Store Import from Excel/CSV
======================================================

Parses an uploaded spreadsheet of stores and auto-detects its columns.
Supports .xlsx, .xls, and .csv formats.
"""

import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

logger = logging.getLogger(__name__)

# Column name variations for auto-detection, checked in this order so that
# "Email Address" goes to email and "Pin Code" to postal_code
COLUMN_PATTERNS = (
    ("email", ["email", "e-mail", "mail"]),
    ("phone", ["phone", "mobile", "telephone", "contact"]),
    ("postal_code", ["postal", "pincode", "pin code", "zip"]),
    ("store_code", ["store_code", "store code", "storecode", "code", "sku"]),
    ("city", ["city", "town", "locality"]),
    ("state", ["state", "province", "region"]),
    ("address", ["address", "street", "line1", "line 1"]),
    ("name", ["store_name", "store name", "name", "outlet", "branch", "title"]),
)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")


class SheetImportError(ValueError):
    """The spreadsheet could not be read or has no usable columns."""
    pass


class StoreSheetParser:
    """
    Spreadsheet parser with auto-detection of store columns.

    Usage:
        parser = StoreSheetParser()
        rows, columns = parser.parse("stores.xlsx")
        # rows: [{"name": "Acme MG Road", "store_code": "A-01", "city": "Pune", ...}, ...]
    """

    def __init__(self):
        self.detected_columns: Dict[str, Optional[str]] = {}

    def parse(self, source: Union[str, Path, bytes], filename: str = "",
              sheet_name: Optional[str] = None) -> Tuple[List[Dict], Dict[str, Optional[str]]]:
        """
        Parse a file path or uploaded bytes.

        Args:
            source: Path on disk, or the raw bytes of an upload
            filename: Original file name (needed for bytes, to pick the reader)
            sheet_name: Optional sheet name for Excel files

        Returns:
            Tuple of (row dicts, detected column mapping)
        """
        df = self._read(source, filename, sheet_name)

        # Clean column names
        df.columns = [str(c).strip().lower() for c in df.columns]

        self.detected_columns = self._detect_columns(list(df.columns))
        logger.info(f"Detected columns: {self.detected_columns}")

        if not self.detected_columns.get("name"):
            raise SheetImportError(
                "Could not detect a store 'Name' column. "
                "Please ensure your file has a column with store names."
            )

        rows = []
        for _, record in df.iterrows():
            row = {field: self._clean(record.get(col)) if col else ""
                   for field, col in self.detected_columns.items()}
            # Skip empty rows
            if not row["name"]:
                continue
            rows.append(row)

        logger.info(f"Parsed {len(rows)} store rows from {filename or source}")
        return rows, self.detected_columns

    def _read(self, source, filename: str, sheet_name: Optional[str]) -> pd.DataFrame:
        if isinstance(source, (bytes, bytearray)):
            ext = Path(filename).suffix.lower()
            handle = io.BytesIO(source)
        else:
            path = Path(source)
            if not path.exists():
                raise SheetImportError(f"File not found: {source}")
            ext = path.suffix.lower()
            handle = path

        if ext not in SUPPORTED_EXTENSIONS:
            raise SheetImportError(f"Unsupported file format: {ext or 'unknown'}. Use .xlsx, .xls, or .csv")

        try:
            if ext == ".csv":
                df = pd.read_csv(handle, dtype=str)
            else:
                df = pd.read_excel(handle, sheet_name=sheet_name or 0, dtype=str)
        except (ValueError, OSError, pd.errors.ParserError) as e:
            logger.error(f"Failed to read spreadsheet: {e}")
            raise SheetImportError(f"Failed to read spreadsheet: {e}") from e

        return df.fillna("")

    def _detect_columns(self, columns: List[str]) -> Dict[str, Optional[str]]:
        claimed = set()
        detected = {}
        for field, patterns in COLUMN_PATTERNS:
            column = self._find_column(columns, patterns, claimed)
            if column:
                claimed.add(column)
            detected[field] = column
        return detected

    def _find_column(self, columns: List[str], patterns: List[str], claimed: set) -> Optional[str]:
        """Find the first unclaimed column matching any of the patterns."""
        for pattern in patterns:
            for col in columns:
                if col not in claimed and pattern in col:
                    return col
        return None

    @staticmethod
    def _clean(value) -> str:
        if value is None:
            return ""
        text = str(value).strip()
        return "" if text.lower() == "nan" else text
