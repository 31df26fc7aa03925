#!/usr/bin/env python3
"""
Customer Matcher - Resolve a detected customer name against the customer catalog

Statuses:
    EXACT_ID         a catalog tax id / licence id appears in the document
    EXACT            normalized names are equal
    FUZZY_AUTO       best score clears the auto-accept score and gap
    MANUAL_REQUIRED  anything else (top candidates listed for review)
"""

import re
import logging
from difflib import SequenceMatcher
from typing import Any, Dict, List, Optional, Sequence

from config import CUSTOMER_MATCHING
from .models import CustomerCatalogEntry, CustomerMatch

logger = logging.getLogger(__name__)

MS_PREFIX_RE = re.compile(r'^M\s*/?\s*S\b\.?\s*')
LOCATION_SUFFIX_RE = re.compile(r'\s*(?:,|\s-\s).*$')
PUNCT_RE = re.compile(r"[^A-Z0-9\s]")
ID_CHARS_RE = re.compile(r'[^A-Z0-9]')


class CustomerMatcher:
    """Match customer names with difflib similarity and a first-word bonus"""

    def __init__(self, rule_loader=None, settings: Optional[Dict] = None):
        self.settings = dict(CUSTOMER_MATCHING)
        if settings:
            self.settings.update(settings)
        self.unknown_customer = rule_loader.get_unknown_customer() if rule_loader else 'UNKNOWN'
        suffixes = sorted(self.settings['company_suffixes'], key=len, reverse=True)
        self.suffix_re = re.compile(r'\s+(?:' + '|'.join(re.escape(s) for s in suffixes) + r')\s*$')

    def normalize(self, name: str) -> str:
        """'M/S. Sri Sabari Agencies Pvt Ltd, Kochi' -> 'SRI SABARI AGENCIES'"""
        text = ' '.join(str(name or '').upper().split())
        text = MS_PREFIX_RE.sub('', text)
        text = LOCATION_SUFFIX_RE.sub('', text)
        text = text.replace('&', ' AND ')
        text = PUNCT_RE.sub(' ', text)
        text = ' '.join(text.split())

        previous = None
        while text != previous:
            previous = text
            text = self.suffix_re.sub('', text).strip()
        return text

    def similarity(self, a: str, b: str) -> float:
        """Score two normalized names; 1.0 only for equal names"""
        if not a or not b:
            return 0.0
        if a == b:
            return 1.0

        score = SequenceMatcher(None, a, b).ratio()

        # "K K M AGENCIES" vs "KKM AGENCIES"
        spaceless_a, spaceless_b = a.replace(' ', ''), b.replace(' ', '')
        if spaceless_a == spaceless_b:
            score = max(score, 1.0)
        elif spaceless_a in spaceless_b or spaceless_b in spaceless_a:
            score = max(score, 0.85)

        first_a, first_b = a.split()[0], b.split()[0]
        if first_a == first_b and len(first_a) > 3:
            score += self.settings['first_word_bonus']

        return min(score, self.settings['max_fuzzy_score'])

    def match_by_ids(self, lines: Sequence[str], customers: Sequence[Any]) -> Optional[CustomerMatch]:
        """Look for a catalog tax id or licence id in the document's leading lines"""
        haystack = ID_CHARS_RE.sub('', ' '.join(lines).upper())
        if not haystack:
            return None
        for customer in self._entries(customers):
            ids = [customer.tax_id] + list(customer.license_ids or [])
            for identifier in ids:
                key = ID_CHARS_RE.sub('', str(identifier or '').upper())
                if len(key) >= 6 and key in haystack:
                    logger.info(f"Customer {customer.customer_code} identified by id {identifier}")
                    return CustomerMatch(status='EXACT_ID', customer=customer, score=1.0,
                                         candidates=[{'customer': customer, 'score': 1.0}])
        return None

    def match(self, name: str, customers: Sequence[Any]) -> CustomerMatch:
        """
        Resolve a customer name

        Args:
            name: Detected customer display name (or the unknown sentinel)
            customers: Customer catalog snapshot (entries or dicts)

        Returns:
            CustomerMatch
        """
        entries = self._entries(customers)
        if not name or name == self.unknown_customer or not entries:
            return CustomerMatch(status='MANUAL_REQUIRED')

        query = self.normalize(name)
        for customer in entries:
            if self.normalize(customer.display_name) == query:
                return CustomerMatch(status='EXACT', customer=customer, score=1.0,
                                     candidates=[{'customer': customer, 'score': 1.0}])

        scored = [(self.similarity(query, self.normalize(c.display_name)), index, c) for index, c in enumerate(entries)]
        scored.sort(key=lambda item: (-item[0], item[1]))
        candidates = [{'customer': c, 'score': round(s, 4)} for s, _, c in scored[:self.settings['max_candidates']]]

        best_score, _, best = scored[0]
        second_score = scored[1][0] if len(scored) > 1 else 0.0
        if best_score >= self.settings['auto_accept_score'] and best_score - second_score >= self.settings['auto_accept_gap']:
            logger.debug(f"Customer '{name}' auto-matched to {best.display_name} ({best_score:.2f})")
            return CustomerMatch(status='FUZZY_AUTO', customer=best, score=round(best_score, 4), candidates=candidates)

        logger.info(f"Customer '{name}' needs manual confirmation (best {best_score:.2f}, second {second_score:.2f})")
        return CustomerMatch(status='MANUAL_REQUIRED', score=round(best_score, 4), candidates=candidates)

    @staticmethod
    def _entries(customers: Sequence[Any]) -> List[CustomerCatalogEntry]:
        return [c if isinstance(c, CustomerCatalogEntry) else CustomerCatalogEntry.from_dict(c) for c in customers or []]
