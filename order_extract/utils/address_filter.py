#!/usr/bin/env python3
"""
Address Filter - Recognize address lines in order headers
"""

import re
import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class AddressFilter:
    """Decide whether a line is part of a postal address"""

    def __init__(self, rule_loader=None, address_rules: Optional[Dict] = None):
        """
        Initialize address filter patterns

        Args:
            rule_loader: RuleLoader instance (street keywords and field labels)
            address_rules: Explicit rules dict, overrides rule_loader
        """
        rules = address_rules if address_rules is not None else (rule_loader.get_address_rules() if rule_loader else {})
        street_keywords = rules.get('street_keywords', ['ROAD', 'RD', 'STREET', 'ST', 'LANE', 'BUILDING', 'FLOOR'])
        field_labels = rules.get('field_labels', ['ADDRESS', 'ADDR'])

        # "41/685", "12 / 3A"
        self.street_number_re = re.compile(r'\b\d+[A-Z]?\s*/\s*\d+[A-Z]?\b', re.IGNORECASE)
        self.street_keyword_re = re.compile(
            r'\b(?:' + '|'.join(re.escape(k) for k in street_keywords) + r')\b', re.IGNORECASE)
        # "(12)", "(3A)"
        self.plot_number_re = re.compile(r'\(\s*\d+[A-Z]?\s*\)', re.IGNORECASE)
        # "New No 41", "old no.12", "new No41/685"
        self.new_old_no_re = re.compile(r'\b(?:NEW|OLD)\s*NO\b\.?|\b(?:NEW|OLD)\s*NO\.?\s*\d', re.IGNORECASE)
        self.field_label_re = re.compile(
            r'^\s*(?:ADDRESS\b|(?:' + '|'.join(re.escape(k) for k in field_labels) + r')\s*[:.\-])', re.IGNORECASE)

    def address_indicators(self, line: str) -> List[str]:
        """Names of the address indicators present in a line"""
        found = []
        if self.street_number_re.search(line):
            found.append('street_number')
        if self.street_keyword_re.search(line):
            found.append('street_keyword')
        if self.plot_number_re.search(line):
            found.append('plot_number')
        if self.new_old_no_re.search(line):
            found.append('new_old_no')
        if self.field_label_re.search(line):
            found.append('field_label')
        return found

    def is_address_line(self, line: str) -> bool:
        """
        Check if a line is an address line

        Two indicators are enough; an address field label alone is enough.

        Args:
            line: Line to check

        Returns:
            True if line appears to be an address, False otherwise
        """
        line = (line or '').strip()
        if not line:
            return False

        indicators = self.address_indicators(line)
        if 'field_label' in indicators or len(indicators) >= 2:
            logger.debug(f"Address line ({', '.join(indicators)}): {line[:50]}")
            return True
        return False

    def filter_address_lines(self, lines: List[str]) -> List[str]:
        """
        Filter out address lines from a list of lines

        Args:
            lines: List of document lines

        Returns:
            Filtered list without address lines
        """
        return [line for line in lines if not self.is_address_line(line)]
