#!/usr/bin/env python3
"""
Rule Loader Tests: caching, hot-reload toggle and vocabulary sections
"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from order_extract.rule_loader import RuleLoader


class TestRuleLoader(unittest.TestCase):
    """Rule loader fast path and vocabulary accessors"""

    @classmethod
    def setUpClass(cls):
        """Set up test fixtures"""
        cls.rules_dir = PROJECT_ROOT / 'order_rules'

    def test_hot_reload_default_off(self):
        """Hot-reload is OFF by default"""
        original_env = os.environ.pop('ORDERS_HOT_RELOAD', None)
        try:
            loader = RuleLoader(self.rules_dir)
            self.assertFalse(loader._enable_hot_reload)
            self.assertIsNone(loader._file_checksums, "Checksums should not be tracked when hot-reload is OFF")
        finally:
            if original_env is not None:
                os.environ['ORDERS_HOT_RELOAD'] = original_env

    def test_hot_reload_env_variable(self):
        """ORDERS_HOT_RELOAD=1 enables hot-reload"""
        original_env = os.environ.get('ORDERS_HOT_RELOAD')
        try:
            os.environ['ORDERS_HOT_RELOAD'] = '1'
            self.assertTrue(RuleLoader(self.rules_dir)._enable_hot_reload)

            os.environ['ORDERS_HOT_RELOAD'] = '0'
            self.assertFalse(RuleLoader(self.rules_dir)._enable_hot_reload)
        finally:
            if original_env is not None:
                os.environ['ORDERS_HOT_RELOAD'] = original_env
            elif 'ORDERS_HOT_RELOAD' in os.environ:
                del os.environ['ORDERS_HOT_RELOAD']

    def test_no_duplicate_reads_hot_reload_off(self):
        """Rule files are read once when hot-reload is OFF"""
        loader = RuleLoader(self.rules_dir, enable_hot_reload=False)

        loader.reset_file_read_count()
        vocabulary1 = loader.get_product_vocabulary()
        loader.get_customer_detection_rules()
        loader.get_address_rules()
        first_read_count = loader.get_file_read_count()
        self.assertEqual(first_read_count, 2, "20_product_vocabulary.yaml and 10_customer_detection.yaml")

        vocabulary2 = loader.get_product_vocabulary()
        loader.get_customer_detection_rules()
        self.assertEqual(loader.get_file_read_count(), first_read_count)
        self.assertEqual(vocabulary1, vocabulary2)

    def test_reload_works_when_hot_reload_on(self):
        """Hot-reload re-reads a rule file only after it changes"""
        with tempfile.TemporaryDirectory() as tmp:
            rules_dir = Path(tmp)
            shutil.copy(self.rules_dir / 'shared.yaml', rules_dir / 'shared.yaml')
            loader = RuleLoader(rules_dir, enable_hot_reload=True)

            shared_file = rules_dir / 'shared.yaml'
            self.assertTrue(loader._should_reload_file('shared.yaml', shared_file))
            loader._load_shared_rules()
            self.assertFalse(loader._should_reload_file('shared.yaml', shared_file))

            shared_file.write_text("defaults:\n  unknown_customer: NOT FOUND\n", encoding='utf-8')
            self.assertEqual(loader.get_unknown_customer(), 'NOT FOUND')

    def test_defaults_and_flags(self):
        loader = RuleLoader(self.rules_dir)
        self.assertEqual(loader.get_unknown_customer(), 'UNKNOWN')
        self.assertEqual(loader.get_defaults().get('default_pack_size'), 1)
        self.assertTrue(loader.get_flags().get('trace_strength_gate'))

    def test_vocabulary_sections(self):
        loader = RuleLoader(self.rules_dir)
        vocabulary = loader.get_product_vocabulary()
        self.assertIn('650', vocabulary['strength_values'])
        self.assertIn('SR', vocabulary['variant_tokens'])
        self.assertIn('TABLETS', vocabulary['dosage_forms'])

        detection = loader.get_customer_detection_rules()
        self.assertIn('filename', detection['detection_order'])
        self.assertIn('DRUG LINES', detection['business_terms'])

        filters = loader.get_line_filter_rules()
        self.assertIn('qty', filters['column_synonyms']['quantity'])

    def test_missing_rule_file_returns_empty(self):
        with tempfile.TemporaryDirectory() as tmp:
            loader = RuleLoader(Path(tmp))
            self.assertEqual(loader.get_product_vocabulary(), {})
            self.assertEqual(loader.get_unknown_customer(), 'UNKNOWN')

    def test_clear_cache_forces_reread(self):
        loader = RuleLoader(self.rules_dir)
        loader.get_line_filter_rules()
        loader.reset_file_read_count()
        loader.clear_cache()
        loader.get_line_filter_rules()
        self.assertEqual(loader.get_file_read_count(), 1)


if __name__ == '__main__':
    unittest.main()
