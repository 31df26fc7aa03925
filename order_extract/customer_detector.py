#!/usr/bin/env python3
"""
Customer Detection - Apply customer detection rules from 10_customer_detection.yaml
Detects the ordering party's name from the filename and the document's leading rows
"""

import re
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from config import ORDER_PROCESSING
from .models import RawRow
from .utils.address_filter import AddressFilter
from .utils.name_cleaner import CustomerNameCleaner

logger = logging.getLogger(__name__)

FILENAME_SPLIT_RE = re.compile(r'[\s_\-.()]+')


class CustomerDetector:
    """Detect the customer name using an ordered cascade of heuristics"""

    def __init__(self, rule_loader):
        """
        Initialize customer detector

        Args:
            rule_loader: RuleLoader instance
        """
        self.rule_loader = rule_loader
        self.detection_rules = rule_loader.get_customer_detection_rules()
        self.unknown_customer = rule_loader.get_unknown_customer()
        self.address_filter = AddressFilter(rule_loader)
        self.cleaner = CustomerNameCleaner(self.detection_rules)

        rules = self.detection_rules
        self.scan_rows = rules.get('scan_rows', ORDER_PROCESSING['customer_scan_rows'])
        self.first_line_rows = rules.get('first_line_rows', 5)
        self.min_filename_length = rules.get('min_filename_length', 5)
        self.min_keyword_score = rules.get('min_keyword_score', 1)
        self.min_fallback_length = rules.get('min_fallback_length', 6)
        self.min_uppercase_ratio = rules.get('min_uppercase_ratio', 0.7)
        self.filename_stop_keywords = {k.upper() for k in rules.get('filename_stop_keywords', [])}

        terms = sorted((t.upper() for t in rules.get('business_terms', [])), key=len, reverse=True)
        self.business_term_res = [re.compile(r'\b' + r'\s+'.join(map(re.escape, t.split())) + r'\b') for t in terms]
        self.label_patterns = [re.compile(p, re.IGNORECASE) for p in rules.get('label_patterns', [])]

        strategies: Dict[str, Callable[[List[str], Optional[str]], Optional[str]]] = {
            'filename': self._from_filename,
            'first_line_business_name': self._from_first_line_business_name,
            'explicit_label': self._from_explicit_label,
            'keyword_score': self._from_keyword_score,
            'fallback': self._from_fallback,
        }
        order = rules.get('detection_order', list(strategies))
        self.strategies: List[Tuple[str, Callable]] = [(name, strategies[name]) for name in order if name in strategies]

    def detect(self, rows: Sequence[Union[RawRow, str]], filename: Optional[str] = None) -> str:
        """Best-guess customer name, or the unknown sentinel"""
        return self.detect_with_source(rows, filename)[0]

    def detect_with_source(self, rows: Sequence[Union[RawRow, str]], filename: Optional[str] = None) -> Tuple[str, Optional[str]]:
        """
        Detect customer name and the heuristic that produced it

        Args:
            rows: Document rows (RawRow or plain strings), in reading order
            filename: Original document filename

        Returns:
            Tuple of (customer_name, strategy_name); strategy_name is None for the unknown sentinel
        """
        lines = []
        for row in rows[:self.scan_rows]:
            text = row.text if isinstance(row, RawRow) else str(row)
            text = ' '.join(text.split())
            if text:
                lines.append(text)

        for name, strategy in self.strategies:
            candidate = strategy(lines, filename)
            if candidate:
                logger.debug(f"Customer detected by {name}: {candidate}")
                return candidate, name

        logger.warning(f"Could not detect customer for {filename or 'document'}, using {self.unknown_customer}")
        return self.unknown_customer, None

    # -------------------- shared helpers --------------------
    def _accept(self, raw: str) -> Optional[str]:
        """Clean a candidate and run the validation gate"""
        if not raw:
            return None
        cleaned = self.cleaner.clean(raw)
        return cleaned if self.cleaner.is_valid(cleaned) else None

    def business_term_count(self, line: str) -> int:
        upper = line.upper()
        return sum(1 for pattern in self.business_term_res if pattern.search(upper))

    @staticmethod
    def uppercase_ratio(line: str) -> float:
        letters = [ch for ch in line if ch.isalpha()]
        if not letters:
            return 0.0
        return sum(1 for ch in letters if ch.isupper()) / len(letters)

    # -------------------- strategies --------------------
    def _from_filename(self, lines: List[str], filename: Optional[str]) -> Optional[str]:
        if not filename:
            return None
        tokens = [t for t in FILENAME_SPLIT_RE.split(Path(filename).stem) if t]
        taken = []
        for token in tokens:
            if re.search(r'\d', token) or token.upper() in self.filename_stop_keywords:
                break
            taken.append(token)
        name = ' '.join(taken)
        if len(name) < self.min_filename_length:
            return None
        return self._accept(name)

    def _from_first_line_business_name(self, lines: List[str], filename: Optional[str]) -> Optional[str]:
        for line in lines[:self.first_line_rows]:
            if self.uppercase_ratio(line) < self.min_uppercase_ratio:
                continue
            if not self.business_term_count(line):
                continue
            if self.address_filter.is_address_line(line):
                continue
            accepted = self._accept(line)
            if accepted:
                return accepted
        return None

    def _from_explicit_label(self, lines: List[str], filename: Optional[str]) -> Optional[str]:
        for line in lines:
            for pattern in self.label_patterns:
                match = pattern.match(line)
                if not match:
                    continue
                name = match.group('name')
                if self.address_filter.is_address_line(name):
                    continue
                accepted = self._accept(name)
                if accepted:
                    return accepted
        return None

    def _from_keyword_score(self, lines: List[str], filename: Optional[str]) -> Optional[str]:
        scored = []
        for index, line in enumerate(lines):
            if self.address_filter.is_address_line(line):
                continue
            score = self.business_term_count(line)
            if score >= self.min_keyword_score:
                scored.append((-score, index, line))

        for _, _, line in sorted(scored):
            accepted = self._accept(line)
            if accepted:
                return accepted
        return None

    def _from_fallback(self, lines: List[str], filename: Optional[str]) -> Optional[str]:
        for line in lines:
            if len(line) < self.min_fallback_length or re.search(r'\d', line):
                continue
            if self.uppercase_ratio(line) < self.min_uppercase_ratio:
                continue
            if self.address_filter.is_address_line(line):
                continue
            accepted = self._accept(line)
            if accepted:
                return accepted
        return None
