#!/usr/bin/env python3
"""
Description Decomposer Tests: base name / strength / variant extraction
"""

import os
import unittest
from pathlib import Path

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from order_extract.rule_loader import RuleLoader
from product_mapping.decomposer import DescriptionDecomposer, canonical_number, canonical_strength
from product_mapping.models import ProductIdentity


class TestDescriptionDecomposer(unittest.TestCase):
    """Decomposition order: noise, variant, strength, dosage forms, base"""

    @classmethod
    def setUpClass(cls):
        cls.rule_loader = RuleLoader(PROJECT_ROOT / 'order_rules')
        cls.decomposer = DescriptionDecomposer(cls.rule_loader)

    def test_bare_known_strength_and_dosage_form(self):
        identity = self.decomposer.decompose('DOLO 650 TABLETS')
        self.assertEqual(identity, ProductIdentity(base_name='DOLO', strength='650', variant=None))

    def test_strength_with_unit(self):
        identity = self.decomposer.decompose('Pan 40mg Tab')
        self.assertEqual(identity.base_name, 'PAN')
        self.assertEqual(identity.strength, '40')

    def test_combination_strength(self):
        identity = self.decomposer.decompose('AUGMENTIN 500/125 MG TAB')
        self.assertEqual(identity.base_name, 'AUGMENTIN')
        self.assertEqual(identity.strength, '500/125')

    def test_glued_variant_is_split_from_strength(self):
        identity = self.decomposer.decompose('NITROFIX 30SR')
        self.assertEqual(identity, ProductIdentity(base_name='NITROFIX', strength='30', variant='SR'))

    def test_glued_single_letter_variant(self):
        identity = self.decomposer.decompose('TELMA 40H')
        self.assertEqual(identity, ProductIdentity(base_name='TELMA', strength='40', variant='H'))
        identity = self.decomposer.decompose('DOLO 5M')
        self.assertEqual(identity, ProductIdentity(base_name='DOLO', strength='5', variant='M'))

    def test_number_glued_after_letters_is_not_a_strength(self):
        identity = self.decomposer.decompose('GLIMY M1')
        self.assertIsNone(identity.strength)
        self.assertEqual(identity.base_name, 'GLIMY M1')

    def test_hyphenated_variant(self):
        identity = self.decomposer.decompose('DIANORM-OD 60MG')
        self.assertEqual(identity.variant, 'OD')
        self.assertEqual(identity.base_name, 'DIANORM')
        self.assertEqual(identity.strength, '60')

    def test_single_letter_variant(self):
        identity = self.decomposer.decompose('VILDAPRIDE M 50')
        self.assertEqual(identity, ProductIdentity(base_name='VILDAPRIDE', strength='50', variant='M'))

    def test_unknown_bare_number_is_not_a_strength(self):
        identity = self.decomposer.decompose('ZINCOVIT 123')
        self.assertIsNone(identity.strength)
        self.assertEqual(identity.base_name, 'ZINCOVIT 123')

    def test_decimal_strength_before_form(self):
        identity = self.decomposer.decompose('GLIMY 0.5 TAB')
        self.assertEqual(identity.strength, '0.5')
        self.assertEqual(identity.base_name, 'GLIMY')

    def test_noise_is_removed(self):
        identity = self.decomposer.decompose("RAJ DOLO-650 (15'S)")
        self.assertEqual(identity, ProductIdentity(base_name='DOLO', strength='650', variant=None))

    def test_leading_catalog_code_is_removed(self):
        identity = self.decomposer.decompose('110009 MECONERV 1500MG')
        self.assertEqual(identity.base_name, 'MECONERV')
        self.assertEqual(identity.strength, '1500')

    def test_no_strength_no_variant(self):
        identity = self.decomposer.decompose('DOLO DROPS')
        self.assertEqual(identity, ProductIdentity(base_name='DOLO', strength=None, variant=None))
        self.assertFalse(self.decomposer.has_signal(identity))

    def test_empty_description(self):
        self.assertEqual(self.decomposer.decompose(''), ProductIdentity(base_name=''))

    def test_reassemble(self):
        identity = ProductIdentity(base_name='NITROFIX', strength='30', variant='SR')
        self.assertEqual(self.decomposer.reassemble(identity), 'NITROFIX 30MG SR')

    def test_decomposition_is_idempotent(self):
        descriptions = [
            'DOLO 650 TABLETS',
            'NITROFIX 30SR',
            'AUGMENTIN 500/125 MG TAB',
            'VILDAPRIDE M 50',
            'TELMA H 40',
            'ZINCOVIT 123',
            'GLIMY 0.5 TAB',
            "RAJ DOLO-650 (15'S)",
            'DOLO DROPS',
            'CALPOL 2.50 ML SYRUP',
            'MECONERV PLUS 1500MG',
            'TELMA 40H',
            'DOLO 5M',
            'GLIMY M1',
            'PAN 40MG 1X10',
        ]
        for description in descriptions:
            with self.subTest(description=description):
                first = self.decomposer.decompose(description)
                second = self.decomposer.decompose(self.decomposer.reassemble(first))
                self.assertEqual(first, second)


class TestCanonicalNumbers(unittest.TestCase):

    def test_canonical_number(self):
        self.assertEqual(canonical_number('650.0'), '650')
        self.assertEqual(canonical_number('2.50'), '2.5')
        self.assertEqual(canonical_number('0.5'), '0.5')
        self.assertEqual(canonical_number('007'), '7')
        self.assertIsNone(canonical_number('abc'))
        self.assertIsNone(canonical_number(None))

    def test_canonical_strength(self):
        self.assertEqual(canonical_strength('650 MG'), '650')
        self.assertEqual(canonical_strength('50/500MG'), '50/500')
        self.assertEqual(canonical_strength(650.0), '650')
        self.assertIsNone(canonical_strength('N/A'))


if __name__ == '__main__':
    unittest.main()
