#!/usr/bin/env python3
"""
Customer name cleaning and validation

Cleaning removes label prefixes (M/S, BILL TO:), trailing order/invoice
numbers, trailing phone and tax-id fragments and trailing punctuation, then
collapses whitespace and upper-cases the result.
"""

import re
import logging
from typing import Dict, List

logger = logging.getLogger(__name__)


class CustomerNameCleaner:
    """Cleaning pipeline and blacklist gate for customer name candidates"""

    def __init__(self, detection_rules: Dict):
        """
        Args:
            detection_rules: customer_detection section of 10_customer_detection.yaml
        """
        cleaning = detection_rules.get('name_cleaning', {})
        self.prefix_patterns = [re.compile(p, re.IGNORECASE) for p in cleaning.get('prefix_patterns', [])]
        self.suffix_patterns = [re.compile(p, re.IGNORECASE) for p in cleaning.get('suffix_patterns', [])]
        self.trailing_punctuation = cleaning.get('trailing_punctuation', ',.;:-_/|')
        self.blacklist = [b.upper() for b in detection_rules.get('blacklist', [])]
        self.min_letters = detection_rules.get('min_letters', 5)

    def clean(self, name: str) -> str:
        text = ' '.join(str(name or '').split()).upper()

        for pattern in self.prefix_patterns:
            text = pattern.sub('', text, count=1)

        # Suffixes can stack ("ABC MEDICALS PH: 98470 12345 GSTIN ...")
        changed = True
        while changed and text:
            changed = False
            for pattern in self.suffix_patterns:
                stripped = pattern.sub('', text)
                if stripped != text:
                    text = stripped
                    changed = True

        text = text.strip().rstrip(self.trailing_punctuation + ' ').lstrip(self.trailing_punctuation + ' ')
        return ' '.join(text.split())

    def blacklisted_terms(self, name: str) -> List[str]:
        upper = (name or '').upper()
        return [term for term in self.blacklist if term in upper]

    def is_valid(self, name: str) -> bool:
        """Reject blacklisted supplier/system strings and names with fewer than min_letters letters"""
        if not name:
            return False
        letters = sum(1 for ch in name if ch.isalpha())
        if letters < self.min_letters:
            return False
        if self.blacklisted_terms(name):
            logger.debug(f"Rejected blacklisted customer candidate: {name}")
            return False
        return True
