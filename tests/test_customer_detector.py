#!/usr/bin/env python3
"""
Customer Detection Tests: detection cascade, address lines, name cleaning
"""

import os
import unittest
from pathlib import Path

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from order_extract.customer_detector import CustomerDetector
from order_extract.models import RawRow
from order_extract.rule_loader import RuleLoader
from order_extract.utils.address_filter import AddressFilter
from order_extract.utils.name_cleaner import CustomerNameCleaner


class TestAddressFilter(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.address_filter = AddressFilter(RuleLoader(PROJECT_ROOT / 'order_rules'))

    def test_street_number_and_keyword(self):
        self.assertTrue(self.address_filter.is_address_line('41/685, Pajar Street, Town. 678001'))

    def test_new_no_and_road(self):
        self.assertTrue(self.address_filter.is_address_line('NEW NO 12, GANDHI ROAD'))

    def test_field_label_alone(self):
        self.assertTrue(self.address_filter.is_address_line('Address: Market Junction'))
        self.assertTrue(self.address_filter.is_address_line('PIN: 678001'))

    def test_single_weak_indicator_is_not_an_address(self):
        self.assertFalse(self.address_filter.is_address_line('MAIN PHARMA'))
        self.assertFalse(self.address_filter.is_address_line('ABC MEDICALS'))
        self.assertFalse(self.address_filter.is_address_line(''))

    def test_filter_address_lines(self):
        lines = ['ABC MEDICALS', '41/685, Pajar Street, Town. 678001', 'DOLO 650 10']
        self.assertEqual(self.address_filter.filter_address_lines(lines), ['ABC MEDICALS', 'DOLO 650 10'])


class TestCustomerNameCleaner(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        rules = RuleLoader(PROJECT_ROOT / 'order_rules').get_customer_detection_rules()
        cls.cleaner = CustomerNameCleaner(rules)

    def test_prefix_and_order_number(self):
        self.assertEqual(self.cleaner.clean('M/S. Abc Medicals Order No: 45'), 'ABC MEDICALS')

    def test_phone_suffix(self):
        self.assertEqual(self.cleaner.clean('ABC MEDICALS PH: 98470 12345'), 'ABC MEDICALS')

    def test_label_prefix_and_trailing_punctuation(self):
        self.assertEqual(self.cleaner.clean('BILL TO: Kind Pharmacy,'), 'KIND PHARMACY')

    def test_word_boundaries_protect_names(self):
        self.assertEqual(self.cleaner.clean('MARTIN MEDICALS'), 'MARTIN MEDICALS')

    def test_validation_gate(self):
        self.assertTrue(self.cleaner.is_valid('ABC MEDICALS'))
        self.assertFalse(self.cleaner.is_valid('RAJ DISTRIBUTORS'))
        self.assertFalse(self.cleaner.is_valid('AB 12'))
        self.assertFalse(self.cleaner.is_valid(''))


class TestCustomerDetector(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.detector = CustomerDetector(RuleLoader(PROJECT_ROOT / 'order_rules'))

    def test_filename_heuristic(self):
        name, source = self.detector.detect_with_source([], 'SRI SABARI AGENCIES_ORDER_12.pdf')
        self.assertEqual(name, 'SRI SABARI AGENCIES')
        self.assertEqual(source, 'filename')

    def test_first_line_business_name(self):
        rows = [RawRow(text='ABC DRUG HOUSE'), RawRow(text='12/3, Temple Road')]
        name, source = self.detector.detect_with_source(rows, 'po_1.pdf')
        self.assertEqual(name, 'ABC DRUG HOUSE')
        self.assertEqual(source, 'first_line_business_name')

    def test_explicit_label(self):
        rows = ['Purchase Order', 'BILL TO: City Medicals']
        name, source = self.detector.detect_with_source(rows, 'scan_001.pdf')
        self.assertEqual(name, 'CITY MEDICALS')
        self.assertEqual(source, 'explicit_label')

    def test_keyword_score_prefers_more_terms(self):
        rows = ['Kind Medicals', 'Good Health Pharmacy and Surgicals']
        name, source = self.detector.detect_with_source(rows, None)
        self.assertEqual(name, 'GOOD HEALTH PHARMACY AND SURGICALS')
        self.assertEqual(source, 'keyword_score')

    def test_fallback(self):
        name, source = self.detector.detect_with_source(['SUNRISE LIFE CARE', 'DOLO 650 10'], '1234.pdf')
        self.assertEqual(name, 'SUNRISE LIFE CARE')
        self.assertEqual(source, 'fallback')

    def test_blacklisted_supplier_is_skipped(self):
        rows = ['RAJ DISTRIBUTORS', 'ABC MEDICALS']
        self.assertEqual(self.detector.detect(rows, 'order.pdf'), 'ABC MEDICALS')

    def test_address_line_is_never_the_customer(self):
        for line in ('41/685, Pajar Street, Town. 678001', '41/685, PAJAR STREET, TOWN. 678001'):
            with self.subTest(line=line):
                self.assertEqual(self.detector.detect([line], 'order_123.pdf'), 'UNKNOWN')

    def test_unknown_sentinel(self):
        name, source = self.detector.detect_with_source(['12345', '---'], None)
        self.assertEqual(name, 'UNKNOWN')
        self.assertIsNone(source)

    def test_strategy_order_is_configurable(self):
        self.assertEqual([name for name, _ in self.detector.strategies],
                         ['filename', 'first_line_business_name', 'explicit_label', 'keyword_score', 'fallback'])


if __name__ == '__main__':
    unittest.main()
