#!/usr/bin/env python3
"""
Product Matcher - Match order descriptions to the product catalog

Every catalog entry first passes the strength gate: when the description
carries a strength, entries whose strength differs (or is missing) are
excluded before any scoring. Surviving entries are scored by the first
strategy that gives a non-zero score:

    EXACT          normalized description == normalized catalog name
    CLEANED        canonical reassemblies are equal
    BASE_STRENGTH  equal base names and variants, strength present
    BASE_NAME      equal base names and variants, no strength
    FUZZY          weighted jaccard / word overlap / partial / edit distance
    CONTAINS       one text contains the other
    KEYWORD        shared significant keywords

The best score wins (ties keep the earlier entry); a perfect score stops the
scan. The best score must clear the acceptance threshold, which is lower for
descriptions carrying strength or variant information.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import PRODUCT_MATCHING
from .decomposer import DescriptionDecomposer, canonical_strength
from .models import MatchResult, ProductCatalogEntry, ProductIdentity, TraceRecord
from . import similarity

logger = logging.getLogger(__name__)


@dataclass
class _CandidateProfile:
    """Precomputed matching view of one catalog entry"""
    entry: ProductCatalogEntry
    normalized: str
    canonical: str
    keywords: List[str]
    base_name: str
    strength: Optional[str]
    variant: Optional[str]


class ProductMatcher:
    """Match descriptions against a catalog snapshot with a strength safety gate"""

    def __init__(self, rule_loader=None, settings: Optional[Dict] = None, decomposer: Optional[DescriptionDecomposer] = None):
        """
        Initialize product matcher

        Args:
            rule_loader: RuleLoader instance (vocabularies and flags)
            settings: Overrides for config.PRODUCT_MATCHING
            decomposer: DescriptionDecomposer to share with other components
        """
        self.settings = dict(PRODUCT_MATCHING)
        if settings:
            self.settings.update(settings)
        self.scores = self.settings['scores']
        self.weights = self.settings['fuzzy_weights']

        self.decomposer = decomposer or DescriptionDecomposer(rule_loader)
        vocabulary = rule_loader.get_product_vocabulary() if rule_loader else {}
        self.stopwords = set(vocabulary.get('keyword_stopwords', similarity.DEFAULT_STOPWORDS))

        flags = rule_loader.get_flags() if rule_loader else {}
        self.trace_strength_gate = flags.get('trace_strength_gate', True)
        self.debug = os.getenv('ORDERS_DEBUG', '0') == '1'

        self.strategies = [
            ('EXACT', self._exact_match),
            ('CLEANED', self._cleaned_match),
            ('BASE', self._base_match),
            ('FUZZY', self._fuzzy_match),
            ('CONTAINS', self._contains_match),
            ('KEYWORD', self._keyword_match),
        ]

    # -------------------- catalog --------------------
    def build_profiles(self, products: Sequence[Any]) -> List[_CandidateProfile]:
        """Precompute the matching view of a catalog (entries or dicts)"""
        profiles = []
        for product in products:
            entry = product if isinstance(product, ProductCatalogEntry) else ProductCatalogEntry.from_dict(product)
            identity = self.decomposer.decompose(entry.display_name)
            base = similarity.normalize(self.decomposer.decompose(entry.base_name).base_name) if entry.base_name else identity.base_name
            variant = entry.variant.upper().strip() if entry.variant else identity.variant
            profiles.append(_CandidateProfile(
                entry=entry,
                normalized=similarity.normalize(entry.display_name),
                canonical=self.decomposer.reassemble(identity),
                keywords=similarity.keywords(entry.display_name, self.stopwords),
                base_name=base,
                strength=identity.strength or canonical_strength(entry.strength),
                variant=variant,
            ))
        return profiles

    # -------------------- matching --------------------
    def match(self, description: str, products: Sequence[Any]) -> MatchResult:
        """
        Find the best catalog entry for a description

        Args:
            description: Order line description
            products: Catalog snapshot (ProductCatalogEntry objects or dicts)

        Returns:
            MatchResult; catalog_entry is None when nothing clears the threshold
        """
        profiles = products if products and isinstance(products[0], _CandidateProfile) else self.build_profiles(products or [])
        return self._match_profiles(description, profiles)

    def _match_profiles(self, description: str, profiles: List[_CandidateProfile]) -> MatchResult:
        query = self.decomposer.strip_noise(str(description or '').upper())
        identity = self.decomposer.decompose(description)
        result = MatchResult(catalog_entry=None, confidence_score=0.0, strategy_tag=None, query=query, identity=identity)

        if not query or not profiles:
            return result

        query_view = {
            'normalized': similarity.normalize(query),
            'canonical': self.decomposer.reassemble(identity),
            'keywords': similarity.keywords(query, self.stopwords),
        }

        best: Optional[_CandidateProfile] = None
        best_score, best_tag = 0.0, None

        for profile in profiles:
            if not self.strength_compatible(identity.strength, profile.strength):
                logger.debug(f"Strength gate: '{query}' ({identity.strength}) excludes "
                             f"'{profile.entry.display_name}' ({profile.strength})")
                if self.trace_strength_gate:
                    result.trace.append(TraceRecord(
                        stage='strength_gate', candidate=profile.entry.display_name, decision='excluded',
                        detail=f"query strength {identity.strength}, candidate strength {profile.strength}"))
                continue

            score, tag = self.score_candidate(query_view, identity, profile)
            if self.debug and score:
                logger.debug(f"  {tag} {profile.entry.display_name}: {score:.2f}")

            if score > best_score:
                best, best_score, best_tag = profile, score, tag
                result.trace.append(TraceRecord(stage='score', candidate=profile.entry.display_name,
                                                score=score, decision='best', detail=tag))

            if score >= self.scores['exact']:
                break

        threshold = self.threshold_for(identity)
        if best is None:
            logger.debug(f"No candidate for '{query}'")
            return result

        if best_score < threshold:
            logger.debug(f"Best match too low: {best.entry.display_name} ({best_score:.2f} < {threshold})")
            result.trace.append(TraceRecord(stage='threshold', candidate=best.entry.display_name,
                                            score=best_score, decision='rejected', detail=f"threshold {threshold}"))
            return result

        result.catalog_entry = best.entry
        result.confidence_score = round(best_score, 4)
        result.strategy_tag = best_tag
        result.trace.append(TraceRecord(stage='threshold', candidate=best.entry.display_name,
                                        score=best_score, decision='accepted', detail=f"threshold {threshold}"))
        logger.debug(f"Matched '{query}' -> {best.entry.display_name} ({best_tag}, {best_score:.2f})")
        return result

    def match_batch(self, items: Sequence[Any], products: Sequence[Any]) -> Tuple[List[Tuple[Any, MatchResult]], List[Dict]]:
        """
        Match many line candidates against one catalog snapshot

        Args:
            items: LineCandidate objects (description_text, row_number)
            products: Catalog snapshot

        Returns:
            Tuple of (matched [(item, MatchResult)], failed [{row, original, cleaned, reason}])
        """
        profiles = self.build_profiles(products or [])
        matched, failed = [], []
        for item in items:
            result = self._match_profiles(item.description_text, profiles)
            if result.matched:
                matched.append((item, result))
            else:
                failed.append({
                    'row': item.row_number,
                    'original': item.description_text,
                    'cleaned': result.query,
                    'reason': 'No matching product found in catalog',
                })

        if items:
            rate = len(matched) / len(items) * 100
            logger.info(f"Matched {len(matched)}/{len(items)} items ({rate:.1f}%), {len(failed)} failed")
        return matched, failed

    # -------------------- gate & threshold --------------------
    @staticmethod
    def strength_compatible(query_strength: Optional[str], candidate_strength: Optional[str]) -> bool:
        """A query without strength is compatible with anything; otherwise strengths must be equal"""
        if not query_strength:
            return True
        if not candidate_strength:
            return False
        return canonical_strength(query_strength) == canonical_strength(candidate_strength)

    def threshold_for(self, identity: ProductIdentity) -> float:
        if self.decomposer.has_signal(identity):
            return self.settings['min_score_with_signal']
        return self.settings['min_score_without_signal']

    # -------------------- strategies --------------------
    def score_candidate(self, query: Dict, identity: ProductIdentity, profile: _CandidateProfile) -> Tuple[float, Optional[str]]:
        for name, strategy in self.strategies:
            found = strategy(query, identity, profile)
            if found:
                return found
        return 0.0, None

    def _exact_match(self, query, identity, profile):
        if query['normalized'] and query['normalized'] == profile.normalized:
            return self.scores['exact'], 'EXACT'
        return None

    def _cleaned_match(self, query, identity, profile):
        if query['canonical'] and query['canonical'] == profile.canonical:
            return self.scores['cleaned'], 'CLEANED'
        return None

    def _base_match(self, query, identity, profile):
        if not identity.base_name or identity.base_name != profile.base_name:
            return None
        if (identity.variant or None) != (profile.variant or None):
            return None
        if identity.strength:
            return self.scores['base_strength'], 'BASE_STRENGTH'
        return self.scores['base_only'], 'BASE_NAME'

    def _fuzzy_match(self, query, identity, profile):
        words1, words2 = query['keywords'], profile.keywords
        score = (
            similarity.jaccard(words1, words2) * self.weights['jaccard']
            + similarity.word_overlap(words1, words2) * self.weights['word_overlap']
            + similarity.partial_word_match(words1, words2) * self.weights['partial']
            + similarity.levenshtein_similarity(query['normalized'], profile.normalized) * self.weights['levenshtein']
        )
        if score >= self.settings['fuzzy_floor']:
            return score, 'FUZZY'
        return None

    def _contains_match(self, query, identity, profile):
        a, b = query['normalized'], profile.normalized
        if not a or not b:
            return None
        if a in b or b in a:
            ratio = min(len(a), len(b)) / max(len(a), len(b))
            return self.scores['containment_factor'] * ratio, 'CONTAINS'
        return None

    def _keyword_match(self, query, identity, profile):
        if not query['keywords'] or not profile.keywords:
            return None
        exact, partial = similarity.keyword_counts(query['keywords'], profile.keywords)
        score = exact * self.settings['keyword_exact_weight'] + partial * self.settings['keyword_partial_weight']
        score = min(self.settings['keyword_cap'], score)
        if score:
            return score, 'KEYWORD'
        return None
