#!/usr/bin/env python3
"""
Line Candidates - Turn extracted rows into validated (description, quantity) candidates

Tabular rows with recognizable item and quantity columns are read cell by
cell. Every other row goes through the text path:

1. Split rows are merged (product row + qty/price row, or product row +
   pack row + qty/price row).
2. Junk rows are dropped and product-looking rows kept. A strict test
   (dosage form, strength with unit, pack token or table-row shape) runs
   first; when it finds nothing, a relaxed structural test is used.
3. The quantity comes from the first quantity strategy that finds one:
   labeled, merged line, quantity-only line, fallback.
4. The product name is cut out of the row around the quantity and prices.

Rows with a missing description or an invalid quantity are reported as
errors; fractional quantities are rounded up and reported as warnings.
"""

import math
import re
import logging
from typing import Callable, Dict, List, Optional, Tuple

from config import PDF_ROW_GROUPING, VALIDATION
from .models import LineCandidate, RawRow, RowIssue
from .utils.numbers import clean_number

logger = logging.getLogger(__name__)

PACK_TOKEN_RE = re.compile(r"^\d+['`\"]?S$", re.IGNORECASE)
PACK_TEXT_RE = re.compile(r"\d+['`\"]S\b", re.IGNORECASE)
AMOUNT_TOKEN_RE = re.compile(r'^\d+\.\d{2}$')
NUMBER_TOKEN_RE = re.compile(r'^\d+(?:\.\d+)?$')
INTEGER_TOKEN_RE = re.compile(r'^\d+$')
COLUMN_KEY_RE = re.compile(r'[.\s_-]+')


def _pattern_list(patterns: List[str]) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def _alternation(words: List[str]) -> str:
    ordered = sorted(words, key=len, reverse=True)
    return '|'.join(r'\s*'.join(re.escape(part) for part in w.split()) for w in ordered)


class LineCandidateBuilder:
    """Filter rows into line candidates and validate them"""

    def __init__(self, rule_loader, validation: Optional[Dict] = None):
        """
        Initialize candidate builder

        Args:
            rule_loader: RuleLoader instance (30_line_filters.yaml, 20_product_vocabulary.yaml)
            validation: Validation limits (defaults to config.VALIDATION)
        """
        self.validation = dict(VALIDATION)
        if validation:
            self.validation.update(validation)

        filters = rule_loader.get_line_filter_rules()
        vocabulary = rule_loader.get_product_vocabulary()

        self.hard_junk_patterns = _pattern_list(filters.get('hard_junk_patterns', []))
        self.invalid_product_patterns = _pattern_list(filters.get('invalid_product_patterns', []))
        self.relaxed_reject_patterns = _pattern_list(filters.get('relaxed_reject_patterns', []))
        self.column_synonyms = filters.get('column_synonyms', {})

        forms = vocabulary.get('dosage_forms', [])
        units = vocabulary.get('strength_units', [])
        self.form_re = re.compile(rf'\b(?:{_alternation(forms)})\b') if forms else None
        self.strength_unit_re = re.compile(rf'\b\d+(?:\.\d+)?\s*(?:{_alternation(units)})\b') if units else None
        self.known_strengths = {float(v) for v in vocabulary.get('strength_values', [])}

        labels = filters.get('quantity_labels', [])
        count_units = filters.get('count_units', [])
        self.labeled_qty_re = re.compile(rf'\b(?:{_alternation(labels)})\s*[:\-]?\s*(\d{{1,6}})\b') if labels else None
        self.count_unit_qty_re = re.compile(rf'\b(\d{{1,6}})\s*(?:{_alternation(count_units)})\b') if count_units else None
        self.non_quantity_followers = {w.upper() for w in filters.get('non_quantity_followers', [])}

        self.quantity_strategies: List[Tuple[str, Callable[[str], Optional[int]]]] = [
            ('labeled', self._qty_labeled),
            ('merged_line', self._qty_merged_line),
            ('qty_line', self._qty_only_line),
            ('fallback', self._qty_fallback),
        ]

    # -------------------- entry point --------------------
    def build(self, rows: List[RawRow]) -> Tuple[List[LineCandidate], List[RowIssue], List[RowIssue]]:
        """
        Build line candidates from extracted rows

        Args:
            rows: RawRows in reading order

        Returns:
            Tuple of (candidates, errors, warnings)
        """
        table_rows = [r for r in rows if r.cells]
        if table_rows:
            columns = self.detect_columns(list(table_rows[0].cells.keys()))
            if columns.get('item') and columns.get('quantity'):
                logger.debug(f"Tabular columns: {columns}")
                return self._build_from_columns(table_rows, columns)
            logger.debug(f"No item/quantity columns in {list(table_rows[0].cells.keys())}, using text rows")

        lines = self.merge_rows(rows)

        candidates, errors, warnings = self._collect(lines, strict=True)
        if not candidates and not errors:
            logger.debug("No product rows with strict detection, trying relaxed detection")
            candidates, errors, warnings = self._collect(lines, strict=False)
        return candidates, errors, warnings

    # -------------------- tabular path --------------------
    def detect_columns(self, headers: List[str]) -> Dict[str, Optional[str]]:
        """
        Find item / quantity / code columns by header synonyms

        Exact matches (after removing spaces, dots, underscores and hyphens)
        win over containment matches; one header serves one role.
        """
        keys = {h: COLUMN_KEY_RE.sub('', str(h).lower()) for h in headers}
        roles = ['quantity', 'code', 'item']
        columns: Dict[str, Optional[str]] = {role: None for role in roles}
        claimed = set()

        for exact in (True, False):
            for role in roles:
                if columns[role]:
                    continue
                for synonym in self.column_synonyms.get(role, []):
                    match = next((h for h, k in keys.items() if h not in claimed and (
                        k == synonym if exact else (len(synonym) >= 4 and synonym in k))), None)
                    if match:
                        columns[role] = match
                        claimed.add(match)
                        break
        return columns

    def _build_from_columns(self, rows: List[RawRow], columns: Dict[str, Optional[str]]):
        candidates, errors, warnings = [], [], []
        for row in rows:
            row_number = int(row.vertical_position) + 1
            description = row.cells.get(columns['item'], '').strip()
            quantity_raw = row.cells.get(columns['quantity'], '').strip()
            code = row.cells.get(columns['code'], '').strip() if columns.get('code') else ''

            if not description and not quantity_raw:
                continue
            upper = description.upper()
            if description and (self.is_hard_junk(upper) or self.is_invalid_product(upper)):
                logger.debug(f"Row {row_number}: skipped non-product row '{description}'")
                continue

            candidate = self._validate(row_number, description, clean_number(quantity_raw), row.text,
                                       errors, warnings, raw_quantity=quantity_raw)
            if candidate:
                candidate.product_code = code or None
                candidates.append(candidate)
        return candidates, errors, warnings

    # -------------------- text path --------------------
    def merge_rows(self, rows: List[RawRow]) -> List[Tuple[int, str]]:
        """
        Re-join product rows split across two or three rows

        Returns:
            List of (row_number, text); row_number is the 1-based index of the first row used;
            header rows are skipped but still counted
        """
        merged: List[Tuple[int, str]] = []
        i = 0
        while i < len(rows):
            row = rows[i]
            text = row.text.strip()
            is_qty_line = self.looks_like_qty_price_line(text)

            if not text or row.is_header or (is_qty_line and not merged):
                i += 1
                continue

            if self.looks_like_product(text) and self.extract_quantity(text) is None:
                second = rows[i + 1] if i + 1 < len(rows) else None
                third = rows[i + 2] if i + 2 < len(rows) else None

                # Name -> pack -> qty/price
                if second and third and second.text.split() and PACK_TOKEN_RE.match(second.text.split()[0]) \
                        and self.looks_like_qty_price_line(third.text):
                    logger.debug(f"3-row merge: '{text}' + '{second.text}' + '{third.text}'")
                    merged.append((i + 1, f"{text} {second.text} {third.text}"))
                    i += 3
                    continue

                # Product -> qty(/price)
                if second and self._is_quantity_row(second, row):
                    logger.debug(f"2-row merge: '{text}' + '{second.text}'")
                    merged.append((i + 1, f"{text} {second.text}"))
                    i += 2
                    continue

            if not is_qty_line:
                merged.append((i + 1, text))
            i += 1
        return merged

    def _is_quantity_row(self, row: RawRow, previous: RawRow) -> bool:
        """Numeric-only row carrying the quantity of the product row before it"""
        if self.looks_like_qty_price_line(row.text):
            return True
        tokens = row.text.split()
        if not tokens or not all(NUMBER_TOKEN_RE.match(t) or PACK_TOKEN_RE.match(t) for t in tokens):
            return False
        if not any(INTEGER_TOKEN_RE.match(t) for t in tokens):
            return False
        same_page = row.page == previous.page
        return same_page and abs(row.vertical_position - previous.vertical_position) <= PDF_ROW_GROUPING['row_y_tolerance']

    def _collect(self, lines: List[Tuple[int, str]], strict: bool):
        candidates, errors, warnings = [], [], []
        for row_number, text in lines:
            upper = text.upper()
            if self.is_hard_junk(upper):
                continue
            if not self.looks_like_product(upper, strict=strict):
                continue

            quantity = self.extract_quantity(upper)
            description = self.extract_product_name(upper, quantity)

            if not strict and description and not self.looks_like_product(description, strict=False):
                logger.debug(f"Row {row_number}: '{description}' not product-like after cleaning")
                continue

            candidate = self._validate(row_number, description, quantity, text, errors, warnings)
            if candidate:
                candidates.append(candidate)
        return candidates, errors, warnings

    # -------------------- validation --------------------
    def _validate(self, row_number: int, description: str, quantity: Optional[float], raw_text: str,
                  errors: List[RowIssue], warnings: List[RowIssue], raw_quantity=None) -> Optional[LineCandidate]:
        if not description or len(description) < self.validation['min_description_length']:
            errors.append(RowIssue(row=row_number, field='description', message='Missing item', value=description or raw_text))
            return None

        if quantity is None or quantity <= 0 or quantity > self.validation['max_quantity']:
            errors.append(RowIssue(row=row_number, field='quantity', message='Invalid quantity',
                                   value=raw_quantity if raw_quantity is not None else quantity))
            return None

        if quantity != int(quantity):
            rounded = math.ceil(quantity)
            warnings.append(RowIssue(row=row_number, field='quantity',
                                     message=f'Quantity {quantity:g} rounded up to {rounded}', value=quantity))
            quantity = rounded

        return LineCandidate(description_text=description, quantity=int(quantity), raw_text=raw_text, row_number=row_number)

    # -------------------- row classification --------------------
    def is_hard_junk(self, text: str) -> bool:
        return any(p.search(text.strip()) for p in self.hard_junk_patterns)

    def is_invalid_product(self, text: str) -> bool:
        return any(p.search(text.strip()) for p in self.invalid_product_patterns)

    def has_medicine_signal(self, text: str) -> bool:
        upper = text.upper()
        if self.form_re and self.form_re.search(upper):
            return True
        if self.strength_unit_re and self.strength_unit_re.search(upper):
            return True
        return bool(PACK_TEXT_RE.search(upper))

    def looks_like_product(self, text: str, strict: bool = True) -> bool:
        """
        Does a row look like a product line?

        Args:
            text: Row text
            strict: Require a medicine signal or a table-row shape; when False,
                    fall back to structural checks for rows without form words
        """
        if not text or len(text.strip()) < 3:
            return False
        upper = text.upper().strip()

        if self.is_invalid_product(upper) or self.is_hard_junk(upper):
            return False

        tokens = upper.split()
        # Tax ids / licence codes: one mixed alphanumeric token
        if len(tokens) == 1 and re.fullmatch(r'[0-9A-Z]{10,15}', upper) \
                and re.search(r'\d', upper) and re.search(r'[A-Z]', upper):
            return False

        # "2 218038 NITROFIX 30SR 10,S 10 1957.50 50"
        if len(tokens) >= 5 and re.fullmatch(r'\d{1,2}', tokens[0]) and re.fullmatch(r'\d{3,6}', tokens[1]):
            if 1 <= int(tokens[0]) <= 99 and re.search(r'\d+\.\d{2}', upper) and re.search(r'[A-Z]{3,}', upper):
                return True
        # "10 35 3148.60 2 110010 MECONERV 500"
        if len(tokens) >= 6 and re.fullmatch(r'\d{1,2}', tokens[0]) and AMOUNT_TOKEN_RE.match(tokens[2]):
            if re.fullmatch(r'\d{1,2}', tokens[3]) and re.fullmatch(r'\d{3,6}', tokens[4]) and re.search(r'[A-Z]{3,}', upper):
                return True

        if self.has_medicine_signal(upper):
            return True

        if strict:
            return False
        return self._looks_like_product_relaxed(upper)

    def _looks_like_product_relaxed(self, upper: str) -> bool:
        if any(p.search(upper) for p in self.relaxed_reject_patterns):
            return False

        words = upper.split()
        if not 1 <= len(words) <= 15:
            return False
        # PLAGERINE, MECONERV
        if len(words) == 1 and re.fullmatch(r'[A-Z]{5,}', words[0]):
            return True
        # AVAS, VILDAPRIDE M
        if re.fullmatch(r'[A-Z0-9\s\-]+', upper) and len(re.sub(r'[^A-Z]', '', upper)) >= 3:
            return True
        # 1013 DIANORM-OD
        if re.match(r'^\d{3,6}\s+[A-Z]{3,}', upper):
            return True
        return bool(re.search(r'[A-Z]{3,}[A-Z\s\-]*\d+', upper))

    @staticmethod
    def looks_like_qty_price_line(text: str) -> bool:
        """Numeric-only row with 2+ numbers, one of them a two-decimal amount ("120 0 81.19 9742.80")"""
        if not text:
            return False
        tokens = text.split()
        if any(re.search(r'[A-Z]', t, re.IGNORECASE) for t in tokens):
            return False
        numeric = [t for t in tokens if NUMBER_TOKEN_RE.match(t)]
        return len(numeric) >= 2 and any(AMOUNT_TOKEN_RE.match(t) for t in numeric)

    # -------------------- quantity --------------------
    def extract_quantity(self, text: str) -> Optional[int]:
        """First quantity found by the ordered strategies, or None"""
        if not text:
            return None
        upper = text.upper()
        for name, strategy in self.quantity_strategies:
            quantity = strategy(upper)
            if quantity:
                logger.debug(f"Quantity {quantity} ({name}) from '{text[:60]}'")
                return quantity
        return None

    def _qty_labeled(self, text: str) -> Optional[int]:
        for pattern in (self.labeled_qty_re, self.count_unit_qty_re):
            if pattern:
                match = pattern.search(text)
                if match:
                    return int(match.group(1))
        return None

    def _qty_merged_line(self, text: str) -> Optional[int]:
        """Anchor on the first price and search backwards for the quantity"""
        cleaned = re.sub(r'(\d{1,2}X\d{1,2})([\d.]+)', r'\1 \2', text)          # 1X102314 -> 1X10 2314
        cleaned = re.sub(r'([A-Z]{2,})(\d)', r'\1 \2', cleaned)                  # TAB2314 -> TAB 2314
        cleaned = re.sub(r'(\d{3,}\.\d{2})(\d+)', r'\1 \2', cleaned)             # 2314.2030 -> 2314.20 30
        tokens = cleaned.split()

        amount_idx = next((i for i, t in enumerate(tokens) if AMOUNT_TOKEN_RE.match(t)), -1)
        if amount_idx == -1:
            return None

        for i in range(amount_idx - 1, -1, -1):
            token = tokens[i]
            if not INTEGER_TOKEN_RE.match(token):
                continue
            value = int(token)
            prev = tokens[i - 1] if i > 0 else ''
            nxt = tokens[i + 1] if i + 1 < len(tokens) else ''

            if PACK_TOKEN_RE.match(token + nxt) or re.fullmatch(r"['`\"]S", nxt):
                continue
            if prev.endswith('X'):
                continue
            if nxt in self.non_quantity_followers:
                continue
            if i == 0 and (1000 <= value <= 9999 or value < 100):
                continue          # leading code / serial number
            if i <= 5 and value < 10:
                continue          # serial number
            if re.search(r'[A-Z\-]{4,}', nxt):
                continue          # product code followed by the name
            if 1 <= value <= 99999:
                return value
        return None

    def _qty_only_line(self, text: str) -> Optional[int]:
        """"120 0 81.19 9742.80": last integer before the first amount"""
        if re.search(r'[A-Z]{4,}', text):
            return None
        tokens = text.split()
        amount_idx = next((i for i, t in enumerate(tokens) if AMOUNT_TOKEN_RE.match(t)), -1)
        if amount_idx == -1:
            return None
        for i in range(amount_idx - 1, -1, -1):
            if not INTEGER_TOKEN_RE.match(tokens[i]):
                continue
            value = int(tokens[i])
            if i == 0 and 1000 <= value <= 9999:
                continue
            if 1 <= value <= 99999:
                return value
        return None

    def _qty_fallback(self, text: str) -> Optional[int]:
        """Best plausible integer: not a code, strength, pack or serial; later positions preferred"""
        cleaned = re.sub(r'\b\d{6,}\b', ' ', text)
        cleaned = re.sub(r'\d{3,}\.\d+', ' ', cleaned)
        cleaned = re.sub(r'\+\s*\d*\s*(?:FREE|F)\s*$', '', cleaned)
        tokens = cleaned.split()

        found = []
        for i, token in enumerate(tokens):
            if not INTEGER_TOKEN_RE.match(token):
                continue
            value = int(token)
            prev = tokens[i - 1] if i > 0 else ''
            nxt = tokens[i + 1] if i + 1 < len(tokens) else ''

            if 1000 <= value <= 9999 or value > 10000 or value < 1:
                continue
            if nxt in self.non_quantity_followers:
                continue
            if PACK_TOKEN_RE.match(token + nxt) or re.fullmatch(r"['`\"]S", nxt):
                continue
            if prev.endswith('X') or nxt.startswith('X'):
                continue
            if i == 0 and value < 10:
                continue
            # "DOLO 650": a known strength right after the name
            if i <= 2 and re.fullmatch(r'[A-Z]+', prev) and float(value) in self.known_strengths:
                continue
            found.append((2 if i > 2 else 1, i, value))

        if not found:
            return None
        return max(found)[2]

    # -------------------- product name --------------------
    def extract_product_name(self, text: str, quantity: Optional[int]) -> str:
        """Cut the product description out of a row"""
        t = text.upper()
        t = re.sub(r'([A-Z]{2,})(\d+X\d+[A-Z]?)', r'\1 \2', t)            # TAB1X10 -> TAB 1X10
        t = re.sub(r"([A-Z]{2,})(\d+['`\"]?S)\b", r'\1 \2', t)           # TAB15'S -> TAB 15'S
        t = re.sub(r'([A-Z]{2,})(\d{3,})', r'\1 \2', t)                   # TAB2314 -> TAB 2314
        t = re.sub(r"^\d+['`\"]?S\s+", '', t)
        t = re.sub(r'^\d+X\d+[A-Z]?\s+', '', t)

        # "10 28 4876.76 1 110009 MECONERV 1500MG": quantity and price first
        reversed_layout = bool(re.match(r'^\d+\s+\d+\s+\d+\.\d{2}', t))
        if reversed_layout:
            after_price = re.search(r'\d+\.\d{2}\s+(.+)', t)
            if after_price:
                t = after_price.group(1)
        t = re.sub(r'^(?:\d+\s+)+', '', t)     # serial numbers and codes

        form = self.form_re.search(t) if self.form_re else None
        if form:
            t = t[:form.end()]
        else:
            if quantity and not reversed_layout:
                t = re.sub(rf'\b{quantity}\b.*$', '', t)
            t = re.sub(r'\s*\d{3,}\.\d{2}.*$', ' ', t)
            t = re.sub(r'\s+\d{4,}\s*$', '', t)
            t = re.sub(r'\s+\d+X\d+[A-Z]?\s*$', '', t)
            t = re.sub(r"\s+\d+['`\"]?S\s*$", '', t)
            t = re.sub(r'\s+\d{1,2},S\s*$', '', t)

            # Keep the first number (strength), stop at the second (pack/qty)
            words, seen_number = [], False
            for w in t.split():
                if re.search(r'[A-Z]', w):
                    words.append(w)
                elif NUMBER_TOKEN_RE.match(w):
                    if seen_number:
                        break
                    words.append(w)
                    seen_number = True
                if len(words) >= 6:
                    break
            t = ' '.join(words)

        t = re.sub(r"\(\s*\d+\s*['`\"]?\s*S\s*\)", ' ', t)
        t = re.sub(r"\b\d+\s*['`\"]\s*S\b", ' ', t)
        return ' '.join(t.split()).strip(' -,.')
