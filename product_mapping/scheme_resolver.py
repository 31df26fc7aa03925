#!/usr/bin/env python3
"""
Scheme Resolver - Resolve volume schemes (free quantity slabs) for an order line

The applied slab is the one with the largest minimum quantity not exceeding
the order quantity. Its free quantity is granted as-is however far the order
exceeds the threshold (an order of 100 on a 50+10 slab gets 10 free, not 20).
"""

import logging
from typing import Any, List, Optional, Sequence

from .models import Scheme, SchemeResolution, SchemeSlab, UpsellSuggestion

logger = logging.getLogger(__name__)


class SchemeResolver:
    """Pick the floor slab of the active scheme owning a product code"""

    def __init__(self, schemes: Optional[Sequence[Any]] = None):
        """
        Args:
            schemes: Scheme snapshot (Scheme objects or dicts)
        """
        self.schemes: List[Scheme] = [s if isinstance(s, Scheme) else Scheme.from_dict(s) for s in schemes or []]

    def find_scheme(self, product_code: str, customer_code: Optional[str] = None) -> Optional[Scheme]:
        """Active scheme for a product code (case-insensitive), honoring customer restrictions"""
        key = str(product_code or '').strip().upper()
        if not key:
            return None
        for scheme in self.schemes:
            if not scheme.active or scheme.product_code.strip().upper() != key:
                continue
            if scheme.applicable_customers and customer_code not in scheme.applicable_customers:
                logger.debug(f"Scheme {scheme.name or key} not applicable to customer {customer_code}")
                continue
            return scheme
        return None

    def resolve(self, product_code: str, quantity: float, customer_code: Optional[str] = None) -> SchemeResolution:
        """
        Resolve the scheme for one order line

        Args:
            product_code: Matched catalog product code
            quantity: Order quantity
            customer_code: Matched customer code (for restricted schemes)

        Returns:
            SchemeResolution with the slab used, the sorted slab list and an upsell suggestion
        """
        scheme = self.find_scheme(product_code, customer_code)
        if not scheme or not scheme.slabs:
            return SchemeResolution(applied=False)

        slabs = sorted(scheme.slabs, key=lambda s: s.minimum_quantity)
        eligible = [s for s in slabs if s.minimum_quantity <= quantity]
        upsell = self.upsell_for(slabs, quantity)

        if not eligible:
            return SchemeResolution(applied=False, available_slabs=slabs, upsell=upsell)

        slab = eligible[-1]
        logger.debug(f"Scheme {product_code}: qty {quantity} -> slab {slab.minimum_quantity}+{slab.free_quantity}")
        return SchemeResolution(
            applied=True,
            free_quantity=slab.free_quantity,
            discount_fraction=slab.discount_fraction,
            slab_used=slab,
            available_slabs=slabs,
            upsell=upsell,
        )

    @staticmethod
    def upsell_for(slabs: List[SchemeSlab], quantity: float) -> Optional[UpsellSuggestion]:
        """Smallest slab above the current quantity"""
        higher = [s for s in sorted(slabs, key=lambda s: s.minimum_quantity) if s.minimum_quantity > quantity]
        if not higher:
            return None
        target = higher[0]
        additional = int(target.minimum_quantity - quantity)
        return UpsellSuggestion(
            target_slab=target,
            additional_quantity=additional,
            message=f"Order {additional} more units to get {target.free_quantity} free",
        )
