#!/usr/bin/env python3
"""
Pack Normalizer - Resolve a pack size and the number of boxes for an order line

Pack size sources, first usable one wins:
1. Pack written in the order description ("(10'S)", "1X10", "PACK OF 10")
2. Catalog pack size (values below 1 are inverse ratios: 0.1 -> 10)
3. Pack written in the catalog display name
4. Default of 1
"""

import math
import re
import logging
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

PACK_PATTERNS: List[re.Pattern] = [
    re.compile(r"\(\s*(\d+)\s*['`\"]?\s*S\s*\)"),            # (10'S)
    re.compile(r"\b(\d+)\s*['`\"]\s*S\b"),                    # 10'S
    re.compile(r"\b\d+\s*X\s*(\d+)\b"),                      # 1X10, 10 X 10
    re.compile(r"\b(?:PACK|STRIP)\s*OF\s*(\d+)\b"),           # PACK OF 10
    re.compile(r"\b(\d+)S\b"),                                # 10S
]


def parse_pack_size(text: str) -> Optional[int]:
    """Pack size written in a description, or None"""
    upper = str(text or '').upper()
    for pattern in PACK_PATTERNS:
        match = pattern.search(upper)
        if match:
            value = int(match.group(1))
            if value > 0:
                return value
    return None


def box_pack(quantity: float, pack_size: float) -> int:
    """ceil(quantity / pack_size); callers pass a resolved (positive) pack size"""
    if pack_size is None or pack_size <= 0:
        raise ValueError(f"Pack size must be positive, got {pack_size}")
    return int(math.ceil(quantity / pack_size))


class PackNormalizer:
    """Resolve pack sizes with a fixed source priority"""

    def __init__(self, rule_loader=None, default_pack_size: Optional[int] = None):
        if default_pack_size is None:
            defaults = rule_loader.get_defaults() if rule_loader else {}
            default_pack_size = defaults.get('default_pack_size', 1)
        self.default_pack_size = int(default_pack_size)

        self.sources = [
            ('description', lambda description, entry: parse_pack_size(description)),
            ('catalog', lambda description, entry: self.catalog_pack_size(getattr(entry, 'pack_size', None))),
            ('catalog_name', lambda description, entry: parse_pack_size(getattr(entry, 'display_name', ''))),
        ]

    @staticmethod
    def catalog_pack_size(value) -> Optional[int]:
        """Stored pack size; 0 < value < 1 is an inverse ratio; non-positive or missing -> None"""
        if value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number) or number <= 0:
            return None
        if number < 1:
            return int(round(1 / number))
        return int(round(number))

    def resolve(self, description: str, catalog_entry=None) -> Tuple[int, str]:
        """
        Resolve the pack size of an order line

        Args:
            description: Order line description as written in the document
            catalog_entry: Matched ProductCatalogEntry (optional)

        Returns:
            Tuple of (pack_size, source) where source is description, catalog, catalog_name or default
        """
        for source, resolver in self.sources:
            if source != 'description' and catalog_entry is None:
                continue
            value = resolver(description, catalog_entry)
            if value and value > 0:
                return value, source
        return self.default_pack_size, 'default'

    def normalize(self, description: str, quantity: float, catalog_entry=None) -> Tuple[int, str, int]:
        """(pack_size, source, box_pack) for an order line"""
        pack_size, source = self.resolve(description, catalog_entry)
        return pack_size, source, box_pack(quantity, pack_size)
