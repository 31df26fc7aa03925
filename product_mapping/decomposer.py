#!/usr/bin/env python3
"""
Description Decomposer - Split a product description into base name, strength and variant

Order of operations:
1. Strip noise (pack annotations, reseller fragments, leading catalog codes)
2. Take the variant token (last token from the variant vocabulary)
3. Take the strength: combination (50/500), number with unit (650MG),
   decimal before a dosage form (0.5 TAB), then a bare number only if it is
   a known strength value
4. Remove the strength, unit words and dosage forms
5. What remains is the base name

Strengths are canonical numeric text with units dropped ("650.0MG" -> "650",
"50/500 MG" -> "50/500"). reassemble() writes the strength back with an MG
marker so decomposing the reassembly finds the same triple again.
"""

import re
import logging
from typing import Dict, List, Optional, Tuple

from .models import ProductIdentity

logger = logging.getLogger(__name__)

KEEP_CHARS_RE = re.compile(r'[^A-Z0-9./\s]')
LOOSE_DOT_RE = re.compile(r'(?<!\d)\.|\.(?!\d)')
COMBO_RE_TEMPLATE = r'(?<![\d.])(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)\s*(?:{units})?\b'
WITH_UNIT_RE_TEMPLATE = r'(?<![\d./])(\d+(?:\.\d+)?)\s*(?:{units})\b'
DECIMAL_FORM_RE_TEMPLATE = r'(?<![\d./])(\d+\.\d+)\s*(?=(?:{forms})\b)'
BARE_NUMBER_RE = re.compile(r'(?<![\dA-Z./])\d+(?:\.\d+)?(?![\dA-Z./])')


def canonical_number(value) -> Optional[str]:
    """'650.0' -> '650', '2.50' -> '2.5', '007' -> '7'; None when not numeric"""
    if value is None:
        return None
    text = str(value).strip()
    if not re.fullmatch(r'\d+(?:\.\d+)?', text):
        return None
    whole, _, fraction = text.partition('.')
    whole = whole.lstrip('0') or '0'
    fraction = fraction.rstrip('0')
    return f"{whole}.{fraction}" if fraction else whole


def canonical_strength(value) -> Optional[str]:
    """Canonical strength text of a stored or parsed strength ('50/500MG' -> '50/500', '15 ML' -> '15')"""
    if value is None:
        return None
    numbers = re.findall(r'\d+(?:\.\d+)?', str(value))
    if not numbers:
        return None
    if '/' in str(value) and len(numbers) >= 2:
        return f"{canonical_number(numbers[0])}/{canonical_number(numbers[1])}"
    return canonical_number(numbers[0])


def _alternation(words: List[str]) -> str:
    return '|'.join(re.escape(w) for w in sorted(words, key=len, reverse=True))


class DescriptionDecomposer:
    """Decompose product descriptions using the closed vocabularies in 20_product_vocabulary.yaml"""

    def __init__(self, rule_loader=None, vocabulary: Optional[Dict] = None):
        """
        Initialize decomposer vocabularies

        Args:
            rule_loader: RuleLoader instance
            vocabulary: Explicit product_vocabulary dict, overrides rule_loader
        """
        if vocabulary is None:
            vocabulary = rule_loader.get_product_vocabulary() if rule_loader else {}

        self.units = [u.upper() for u in vocabulary.get('strength_units', ['MCG', 'MG', 'ML', 'GM', 'G', 'IU'])]
        self.variants = {v.upper() for v in vocabulary.get('variant_tokens', [])}
        self.forms = [f.upper() for f in vocabulary.get('dosage_forms', [])]
        self.known_strengths = {canonical_number(v) for v in vocabulary.get('strength_values', [])}
        self.noise_patterns = [re.compile(p) for p in vocabulary.get('noise_patterns', [])]

        units = _alternation(self.units)
        self.combo_re = re.compile(COMBO_RE_TEMPLATE.format(units=units))
        self.with_unit_re = re.compile(WITH_UNIT_RE_TEMPLATE.format(units=units))
        self.unit_word_re = re.compile(rf'\b(?:{units})\b')
        if self.forms:
            forms = _alternation(self.forms)
            self.decimal_form_re = re.compile(DECIMAL_FORM_RE_TEMPLATE.format(forms=forms))
            self.form_word_re = re.compile(rf'\b(?:{forms})\b')
        else:
            self.decimal_form_re = None
            self.form_word_re = None

        # 30SR -> 30 SR, 40H -> 40 H
        self.glued_variant_re = re.compile(rf'\b(\d+(?:\.\d+)?)({_alternation(sorted(self.variants))})\b') if self.variants else None

        self.strength_strategies = [
            ('combination', self._strength_combination),
            ('with_unit', self._strength_with_unit),
            ('decimal_before_form', self._strength_decimal_before_form),
            ('known_value', self._strength_known_value),
        ]

    # -------------------- public API --------------------
    def decompose(self, description: str) -> ProductIdentity:
        """
        Split a description into {base_name, strength, variant}

        Args:
            description: Raw product description

        Returns:
            ProductIdentity; strength and variant are None when not found
        """
        text = self.strip_noise(str(description or '').upper())
        if self.glued_variant_re:
            text = self.glued_variant_re.sub(r'\1 \2', text)

        variant, text = self._take_variant(text)

        strength = None
        for name, strategy in self.strength_strategies:
            found = strategy(text)
            if found:
                strength, span = found
                text = text[:span[0]] + ' ' + text[span[1]:]
                logger.debug(f"Strength {strength} ({name}) in '{description}'")
                break

        base = self._base_name(text)
        return ProductIdentity(base_name=base, strength=strength, variant=variant)

    def reassemble(self, identity: ProductIdentity) -> str:
        """Canonical text of an identity: 'BASE 650MG VARIANT'"""
        parts = [identity.base_name]
        if identity.strength:
            parts.append(f"{identity.strength}MG")
        if identity.variant:
            parts.append(identity.variant)
        return ' '.join(p for p in parts if p)

    def extract_strength(self, text: str) -> Optional[str]:
        return self.decompose(text).strength

    def has_signal(self, identity: ProductIdentity) -> bool:
        """Whether the description carried explicit strength or variant information"""
        return bool(identity.strength or identity.variant)

    # -------------------- cleaning --------------------
    def strip_noise(self, text: str) -> str:
        """Apply noise patterns and punctuation cleanup until nothing changes"""
        previous = None
        while text != previous:
            previous = text
            for pattern in self.noise_patterns:
                text = pattern.sub(' ', text)
            text = KEEP_CHARS_RE.sub(' ', text)
            text = LOOSE_DOT_RE.sub(' ', text)
            text = ' '.join(text.split())
        return text

    def _take_variant(self, text: str) -> Tuple[Optional[str], str]:
        tokens = text.split()
        for index in range(len(tokens) - 1, -1, -1):
            if tokens[index] in self.variants:
                variant = tokens.pop(index)
                return variant, ' '.join(tokens)
        return None, text

    def _base_name(self, text: str) -> str:
        text = self.combo_re.sub(' ', text)
        text = self.with_unit_re.sub(' ', text)
        text = self.unit_word_re.sub(' ', text)
        if self.form_word_re:
            text = self.form_word_re.sub(' ', text)
        text = text.replace('/', ' ')
        return self.strip_noise(text)

    # -------------------- strength strategies --------------------
    def _strength_combination(self, text: str):
        match = self.combo_re.search(text)
        if not match:
            return None
        return f"{canonical_number(match.group(1))}/{canonical_number(match.group(2))}", match.span()

    def _strength_with_unit(self, text: str):
        match = self.with_unit_re.search(text)
        if not match:
            return None
        return canonical_number(match.group(1)), match.span()

    def _strength_decimal_before_form(self, text: str):
        if not self.decimal_form_re:
            return None
        match = self.decimal_form_re.search(text)
        if not match:
            return None
        return canonical_number(match.group(1)), match.span(1)

    def _strength_known_value(self, text: str):
        for match in BARE_NUMBER_RE.finditer(text):
            value = canonical_number(match.group(0))
            if value in self.known_strengths:
                return value, match.span()
        return None
