#!/usr/bin/env python3
"""
PDF Processor - Rebuild logical rows from positioned PDF text

Text fragments (word runs with x/y position and font size) are read with
pdfplumber; PyMuPDF is used when pdfplumber yields no fragments at all.
Fragments are grouped into rows by vertical proximity with three anti-merge
rules (font size, crowded rows, column bleed), then each row's text is
rebuilt left to right with word and column spacing.
"""

import io
import re
import logging
import statistics
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pymupdf
import pdfplumber

from config import PDF_ROW_GROUPING
from .models import RawRow

logger = logging.getLogger(__name__)

SEPARATOR_RE = re.compile(r'^[-_=]{3,}$')


@dataclass
class TextFragment:
    """A run of text at a fixed position on a page (y grows downward)"""
    text: str
    x: float
    y: float
    width: float = 0.0
    font_size: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width


@dataclass
class FragmentRow:
    """Row under construction; y and font size come from its first fragment"""
    y: float
    font_size: float
    fragments: List[TextFragment] = field(default_factory=list)

    @property
    def left(self) -> float:
        return min(f.x for f in self.fragments)

    @property
    def right(self) -> float:
        return max(f.right for f in self.fragments)


def _accepts(row: FragmentRow, fragment: TextFragment, settings: Dict) -> bool:
    """Can `fragment` join `row` without merging two logical rows?"""
    y_diff = abs(row.y - fragment.y)
    if y_diff > settings['row_y_tolerance']:
        return False

    # Different type sizes are different rows (header vs data)
    if abs(row.font_size - fragment.font_size) > settings['font_size_threshold']:
        return False

    # A row that already has many cells only takes fragments on its exact line
    if len(row.fragments) > settings['crowded_row_cells'] and y_diff > settings['crowded_row_y_tolerance']:
        return False

    # Column bleed: fragment lies far outside the span the row already claims
    margin = settings['column_bleed_margin']
    if fragment.x < row.left - margin or fragment.x > row.right + margin:
        return False

    return True


def group_fragments(fragments: List[TextFragment], settings: Optional[Dict] = None) -> List[FragmentRow]:
    """
    Group fragments into rows, in reading order (top to bottom, then left to right)

    Each fragment joins the first existing row that accepts it, otherwise it
    starts a new row. Fragments are visited in the order given (content-stream
    order for PDFs).
    """
    settings = settings or PDF_ROW_GROUPING
    rows: List[FragmentRow] = []

    for fragment in fragments:
        if not fragment.text.strip():
            continue
        target = next((row for row in rows if _accepts(row, fragment, settings)), None)
        if target is None:
            target = FragmentRow(y=fragment.y, font_size=fragment.font_size)
            rows.append(target)
        target.fragments.append(fragment)

    rows.sort(key=lambda r: (r.y, r.left))
    return rows


def build_row_text(fragments: List[TextFragment], settings: Optional[Dict] = None) -> str:
    """
    Join fragments left to right.

    A gap wider than the word gap threshold inserts one space; a gap wider
    than the column gap threshold inserts the column separator instead.
    """
    settings = settings or PDF_ROW_GROUPING
    ordered = sorted(fragments, key=lambda f: f.x)
    parts = []

    for i, fragment in enumerate(ordered):
        parts.append(fragment.text.strip())
        if i + 1 < len(ordered):
            gap = ordered[i + 1].x - fragment.right
            if gap > settings['column_gap_threshold']:
                parts.append(settings['column_separator'])
            elif gap > settings['word_gap_threshold']:
                parts.append(' ')

    return ''.join(parts)


def collapse_whitespace(text: str) -> str:
    return ' '.join(text.split())


class PdfProcessor:
    """Turn a PDF buffer into RawRows"""

    def __init__(self, rule_loader, settings: Optional[Dict] = None):
        """
        Args:
            rule_loader: RuleLoader instance (header words come from 30_line_filters.yaml)
            settings: Row grouping settings (defaults to config.PDF_ROW_GROUPING)
        """
        self.settings = dict(PDF_ROW_GROUPING)
        if settings:
            self.settings.update(settings)

        header_words = rule_loader.get_line_filter_rules().get('header_words', [])
        words = '|'.join(r'\.?\s*'.join(re.escape(p) for p in w.split()) for w in header_words)
        self.header_re = re.compile(rf'^(?:{words})\b', re.IGNORECASE) if words else None

    def extract_rows(self, buffer: bytes) -> List[RawRow]:
        """
        Extract rows from every page of a PDF

        Args:
            buffer: PDF file content

        Returns:
            RawRows in reading order; empty list when the PDF has no text layer
        """
        pages = self._read_fragments_pdfplumber(buffer)
        if not any(pages):
            logger.debug("pdfplumber returned no text fragments, trying PyMuPDF")
            pages = self._read_fragments_mupdf(buffer)

        rows: List[RawRow] = []
        for page_no, fragments in enumerate(pages, start=1):
            rows.extend(self.rows_from_fragments(fragments, page=page_no))

        if not rows:
            logger.warning("No text rows extracted from PDF")
        return rows

    def rows_from_fragments(self, fragments: List[TextFragment], page: int = 1) -> List[RawRow]:
        """Group one page's fragments and build RawRows with header flags"""
        fragments = [f for f in fragments if f.text.strip()]
        if not fragments:
            return []

        median_size = statistics.median(f.font_size for f in fragments)
        rows = []

        for group in group_fragments(fragments, self.settings):
            raw_text = build_row_text(group.fragments, self.settings)
            text = collapse_whitespace(raw_text)
            if len(text) < self.settings['min_row_length'] or SEPARATOR_RE.match(text):
                continue
            rows.append(RawRow(
                text=text,
                raw_text=raw_text,
                vertical_position=group.y,
                horizontal_position=group.left,
                font_size=group.font_size,
                source_format='pdf',
                page=page,
                is_header=self.is_header(text, group.font_size, median_size),
            ))

        logger.debug(f"Page {page}: {len(fragments)} fragments grouped into {len(rows)} rows (median font {median_size:.1f})")
        return rows

    def is_header(self, text: str, font_size: float, median_size: float) -> bool:
        if font_size > median_size + self.settings['font_size_threshold']:
            return True
        return bool(self.header_re and self.header_re.match(text))

    def _read_fragments_pdfplumber(self, buffer: bytes) -> List[List[TextFragment]]:
        pages = []
        with pdfplumber.open(io.BytesIO(buffer)) as pdf:
            for page in pdf.pages:
                words = page.extract_words(keep_blank_chars=True, use_text_flow=True, extra_attrs=['size'])
                pages.append([
                    TextFragment(
                        text=w['text'].strip(),
                        x=float(w['x0']),
                        y=float(w['top']),
                        width=float(w['x1']) - float(w['x0']),
                        font_size=float(w.get('size') or 0.0),
                    )
                    for w in words if w['text'].strip()
                ])
        return pages

    def _read_fragments_mupdf(self, buffer: bytes) -> List[List[TextFragment]]:
        pages = []
        doc = pymupdf.open(stream=buffer, filetype='pdf')
        try:
            for page in doc:
                fragments = []
                for block in page.get_text('dict').get('blocks', []):
                    for line in block.get('lines', []):
                        for span in line.get('spans', []):
                            text = span.get('text', '').strip()
                            if not text:
                                continue
                            x0, y0, x1, _ = span['bbox']
                            fragments.append(TextFragment(text=text, x=x0, y=y0, width=x1 - x0, font_size=span.get('size', 0.0)))
                pages.append(fragments)
        finally:
            doc.close()
        return pages
