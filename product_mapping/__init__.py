"""
Stage 2: Resolve Line Candidates Against Catalogs
Decomposes descriptions, matches products (with the strength safety gate),
matches customers, resolves schemes and normalizes pack sizes.
"""

from .models import (
    ProductIdentity,
    ProductCatalogEntry,
    CustomerCatalogEntry,
    MatchResult,
    TraceRecord,
    SchemeSlab,
    Scheme,
    SchemeResolution,
    UpsellSuggestion,
    CustomerMatch,
)
from .decomposer import DescriptionDecomposer, canonical_number, canonical_strength
from .product_matcher import ProductMatcher
from .customer_matcher import CustomerMatcher
from .scheme_resolver import SchemeResolver
from .pack_normalizer import PackNormalizer, parse_pack_size, box_pack

__all__ = [
    'ProductIdentity',
    'ProductCatalogEntry',
    'CustomerCatalogEntry',
    'MatchResult',
    'TraceRecord',
    'SchemeSlab',
    'Scheme',
    'SchemeResolution',
    'UpsellSuggestion',
    'CustomerMatch',
    'DescriptionDecomposer',
    'canonical_number',
    'canonical_strength',
    'ProductMatcher',
    'CustomerMatcher',
    'SchemeResolver',
    'PackNormalizer',
    'parse_pack_size',
    'box_pack',
]
