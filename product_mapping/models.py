#!/usr/bin/env python3
"""
Data classes for catalog resolution

Catalog entries are read-only snapshots handed in by the caller; nothing in
product_mapping mutates them. Catalog JSON may use snake_case or camelCase
keys (productCode / product_code).
"""

import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


def _snake(key: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', key).lower()


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = set(cls.__dataclass_fields__)
    return {_snake(k): v for k, v in data.items() if _snake(k) in names}


@dataclass(frozen=True)
class ProductIdentity:
    """Base name / strength / variant triple of a description"""
    base_name: str
    strength: Optional[str] = None
    variant: Optional[str] = None


@dataclass
class ProductCatalogEntry:
    product_code: str
    display_name: str
    base_name: Optional[str] = None
    strength: Optional[str] = None
    variant: Optional[str] = None
    division: Optional[str] = None
    pack_size: Optional[float] = None
    box_pack_size: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductCatalogEntry':
        values = _known_fields(cls, data)
        values['product_code'] = str(values.get('product_code', '')).strip()
        values['display_name'] = str(values.get('display_name') or '')
        if values.get('strength') is not None:
            values['strength'] = str(values['strength'])
        return cls(**values)


@dataclass
class CustomerCatalogEntry:
    customer_code: str
    display_name: str
    tax_id: Optional[str] = None
    license_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomerCatalogEntry':
        values = _known_fields(cls, data)
        values['customer_code'] = str(values.get('customer_code', '')).strip()
        values['display_name'] = str(values.get('display_name') or '')
        return cls(**values)


@dataclass
class TraceRecord:
    """One diagnostic step of a matching pass: why a candidate was kept, scored or excluded"""
    stage: str
    candidate: str
    score: float = 0.0
    decision: str = ''
    detail: str = ''


@dataclass
class MatchResult:
    """
    Outcome of matching one description

    catalog_entry is None when nothing cleared the threshold. Scores are only
    comparable within one matching pass.
    """
    catalog_entry: Optional[ProductCatalogEntry]
    confidence_score: float
    strategy_tag: Optional[str]
    query: str = ''
    identity: Optional[ProductIdentity] = None
    trace: List[TraceRecord] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.catalog_entry is not None

    def excluded_by_strength(self) -> List[str]:
        """Catalog names dropped by the strength gate"""
        return [t.candidate for t in self.trace if t.stage == 'strength_gate' and t.decision == 'excluded']


@dataclass
class SchemeSlab:
    minimum_quantity: int
    free_quantity: int = 0
    discount_fraction: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SchemeSlab':
        values = _known_fields(cls, data)
        return cls(
            minimum_quantity=int(values.get('minimum_quantity', 0)),
            free_quantity=int(values.get('free_quantity') or 0),
            discount_fraction=float(values.get('discount_fraction') or 0.0),
        )


@dataclass
class Scheme:
    """A promotional scheme owning the slabs of one catalog entry"""
    product_code: str
    slabs: List[SchemeSlab] = field(default_factory=list)
    active: bool = True
    name: str = ''
    applicable_customers: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scheme':
        values = _known_fields(cls, data)
        slabs = [s if isinstance(s, SchemeSlab) else SchemeSlab.from_dict(s) for s in values.get('slabs', [])]
        return cls(
            product_code=str(values.get('product_code', '')).strip(),
            slabs=slabs,
            active=bool(values.get('active', True)),
            name=values.get('name') or '',
            applicable_customers=[str(c) for c in values.get('applicable_customers') or []],
        )


@dataclass
class UpsellSuggestion:
    target_slab: SchemeSlab
    additional_quantity: int
    message: str


@dataclass
class SchemeResolution:
    applied: bool
    free_quantity: int = 0
    discount_fraction: float = 0.0
    slab_used: Optional[SchemeSlab] = None
    available_slabs: List[SchemeSlab] = field(default_factory=list)
    upsell: Optional[UpsellSuggestion] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CustomerMatch:
    """Customer catalog resolution: EXACT, FUZZY_AUTO or MANUAL_REQUIRED"""
    status: str
    customer: Optional[CustomerCatalogEntry] = None
    score: float = 0.0
    candidates: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
