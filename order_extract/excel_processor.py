#!/usr/bin/env python3
"""
Excel Processor - Spreadsheet and CSV order sheets

The real header row is the row (within the first few) with the most non-empty
cells, so title banners, merged cells and blank rows above it are skipped.
Header labels are normalized and duplicate labels get an occurrence suffix.
Rows above the header are still returned (customer names live there).
"""

import io
import re
import csv
import logging
from typing import Dict, List, Optional

import pandas as pd

from config import ORDER_PROCESSING
from .models import RawRow

logger = logging.getLogger(__name__)

HEADER_PUNCT_RE = re.compile(r'[\s._-]+')


class ExcelProcessor:
    """Read .xlsx/.xlsm (openpyxl) and .csv order sheets into RawRows"""

    def __init__(self, header_scan_rows: Optional[int] = None):
        """
        Initialize Excel processor

        Args:
            header_scan_rows: How many leading rows may hold the header (default from config)
        """
        self.header_scan_rows = header_scan_rows or ORDER_PROCESSING['header_scan_rows']
        self.engine = ORDER_PROCESSING['excel_engine']

    # -------------------- helpers: header detection & normalization --------------------
    @staticmethod
    def _cell_text(x: object) -> str:
        if x is None:
            return ""
        if not isinstance(x, str) and pd.isna(x):
            return ""
        t = str(x)
        t = t.replace("\ufeff", "")  # BOM
        t = t.replace("\u00A0", " ")  # NBSP
        t = t.strip().strip('"').strip("'")
        return " ".join(t.split())

    @classmethod
    def _normalize_header_cell(cls, s: object) -> str:
        """'Item  Name' / 'ITEM_NAME' / 'item.name' -> 'item name'"""
        t = cls._cell_text(s).lower()
        return HEADER_PUNCT_RE.sub(" ", t).strip()

    @staticmethod
    def _dedupe_headers(headers: List[str]) -> List[str]:
        """['qty', 'qty', 'qty'] -> ['qty', 'qty_1', 'qty_2']"""
        seen: Dict[str, int] = {}
        result = []
        for h in headers:
            if not h:
                result.append(h)
                continue
            count = seen.get(h, 0)
            result.append(h if count == 0 else f"{h}_{count}")
            seen[h] = count + 1
        return result

    def _detect_header_row(self, df: pd.DataFrame, max_scan: Optional[int] = None) -> int:
        """Index of the row with the most non-empty cells among the first max_scan rows"""
        max_scan = max_scan or self.header_scan_rows
        best_row, best_score = -1, 0
        for r in range(min(max_scan, len(df))):
            score = sum(1 for x in df.iloc[r].values if self._cell_text(x))
            if score > best_score:
                best_row, best_score = r, score
        return best_row

    def _reheader_dataframe(self, df: pd.DataFrame, header_row: int) -> pd.DataFrame:
        header = self._dedupe_headers([self._normalize_header_cell(x) for x in df.iloc[header_row].values])
        body = df.iloc[header_row + 1:].copy()
        body.columns = header
        keep = [c for c in body.columns if c]
        return body[keep]

    # -------------------- reading --------------------
    def read_frame(self, buffer: bytes, extension: str) -> pd.DataFrame:
        """Load the first sheet (or the CSV) without interpreting any row as header"""
        if extension == '.csv':
            text = buffer.decode('utf-8-sig', errors='replace')
            records = list(csv.reader(io.StringIO(text)))
            return pd.DataFrame(records)
        return pd.read_excel(io.BytesIO(buffer), header=None, dtype=str, engine=self.engine)

    def extract_rows(self, buffer: bytes, extension: str) -> List[RawRow]:
        """
        Extract rows from a spreadsheet buffer

        Args:
            buffer: File content
            extension: '.xlsx', '.xlsm' or '.csv'

        Returns:
            Leading rows (text only), the header row (is_header) and data rows with
            header-keyed cells. Empty list for an empty sheet.
        """
        df = self.read_frame(buffer, extension)
        if df.empty:
            logger.warning("Spreadsheet has no cells")
            return []

        header_row = self._detect_header_row(df)
        if header_row < 0:
            logger.warning("Spreadsheet has no non-empty rows in the header scan window")
            return []
        logger.debug(f"Detected header row {header_row + 1}")

        rows: List[RawRow] = []
        for r in range(header_row + 1):
            cells = [self._cell_text(x) for x in df.iloc[r].values]
            text = " ".join(c for c in cells if c)
            if text:
                rows.append(RawRow(text=text, vertical_position=r, source_format='table', is_header=(r == header_row)))

        body = self._reheader_dataframe(df, header_row)
        for offset, (_, series) in enumerate(body.iterrows(), start=header_row + 1):
            cells = {col: self._cell_text(val) for col, val in series.items()}
            values = [v for v in cells.values() if v]
            if not values:
                continue
            rows.append(RawRow(
                text=" ".join(values),
                vertical_position=offset,
                source_format='table',
                cells=cells,
            ))

        logger.info(f"Spreadsheet: {len(body)} body rows under header row {header_row + 1}")
        return rows
