#!/usr/bin/env python3
"""
Workflow Tests: end-to-end document processing against catalog snapshots
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from order_extract.errors import UnsupportedFormatError
from workflow import OrderWorkflow, load_catalog, main


ORDER_TEXT = (
    'ABC MEDICALS\n'
    'DOLO 650 TABLETS 100\n'
    'PAN 40MG TAB 5\n'
    'ZEBRAX 20MG TAB 4\n'
)

PRODUCTS = [
    {'productCode': 'P650', 'displayName': 'DOLO 650', 'strength': '650', 'packSize': 15},
    {'productCode': 'PAN40', 'displayName': 'PAN 40MG TAB', 'packSize': 0},
]
CUSTOMERS = [
    {'customerCode': 'C1', 'displayName': 'ABC MEDICALS'},
    {'customerCode': 'C2', 'displayName': 'KERALA DRUG HOUSE'},
]
SCHEMES = [
    {'productCode': 'P650', 'slabs': [{'minimumQuantity': 50, 'freeQuantity': 10}]},
]


class TestOrderWorkflow(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.workflow = OrderWorkflow(rules_dir=str(PROJECT_ROOT / 'order_rules'))
        cls.result = cls.workflow.process_document(ORDER_TEXT.encode('utf-8'), 'order_77.txt',
                                                   PRODUCTS, CUSTOMERS, SCHEMES)

    def test_customer(self):
        self.assertEqual(self.result.customer_name, 'ABC MEDICALS')
        self.assertEqual(self.result.customer_match.status, 'EXACT')
        self.assertEqual(self.result.customer_match.customer.customer_code, 'C1')

    def test_line_items(self):
        items = {item['product_code']: item for item in self.result.line_items}
        self.assertEqual(set(items), {'P650', 'PAN40'})

        dolo = items['P650']
        self.assertEqual(dolo['row'], 2)
        self.assertEqual(dolo['original_description'], 'DOLO 650 TABLETS')
        self.assertEqual(dolo['quantity'], 100)
        self.assertEqual(dolo['pack_size'], 15)
        self.assertEqual(dolo['pack_source'], 'catalog')
        self.assertEqual(dolo['box_pack'], 7)
        self.assertTrue(dolo['scheme_applied'])
        self.assertEqual(dolo['free_quantity'], 10)
        self.assertIsNone(dolo['upsell'])

        pan = items['PAN40']
        self.assertEqual(pan['pack_source'], 'default')
        self.assertFalse(pan['scheme_applied'])
        self.assertEqual(pan['free_quantity'], 0)

    def test_unmatched_and_warnings(self):
        self.assertEqual([f['row'] for f in self.result.failed_items], [4])
        self.assertEqual(self.result.errors, [])
        self.assertEqual([(w.row, w.field, w.message) for w in self.result.warnings],
                         [(3, 'pack_size', 'Pack missing, defaulted to 1')])

    def test_summary(self):
        self.assertEqual(self.result.summary, {
            'rows': 4,
            'candidates': 3,
            'matched': 2,
            'failed': 1,
            'errors': 0,
            'warnings': 1,
            'schemes_applied': 1,
        })

    def test_to_dict_is_json_serializable(self):
        payload = self.result.to_dict()
        self.assertIn('2', payload['scheme_resolutions'])
        self.assertTrue(payload['scheme_resolutions']['2']['applied'])
        json.dumps(payload, default=str)

    def test_empty_document(self):
        result = self.workflow.process_document(b'\n\n', 'empty.txt', PRODUCTS)
        self.assertEqual(result.customer_name, 'UNKNOWN')
        self.assertEqual(result.line_items, [])
        self.assertEqual([w.message for w in result.warnings], ['No rows extracted'])
        self.assertEqual(result.summary['rows'], 0)

    def test_unsupported_format(self):
        with self.assertRaises(UnsupportedFormatError):
            self.workflow.process_document(b'', 'order.xls', PRODUCTS)

    def test_without_customer_catalog(self):
        result = self.workflow.process_document(ORDER_TEXT.encode('utf-8'), 'order_77.txt', PRODUCTS)
        self.assertIsNone(result.customer_match)
        self.assertEqual(result.summary['schemes_applied'], 0)


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.root = Path(self.temp_dir.name)

    def _write(self, name, content):
        path = self.root / name
        path.write_text(content, encoding='utf-8')
        return str(path)

    def test_load_catalog(self):
        self.assertEqual(load_catalog(None), [])
        self.assertEqual(load_catalog(self._write('products.json', json.dumps(PRODUCTS))), PRODUCTS)
        with self.assertRaises(FileNotFoundError):
            load_catalog(str(self.root / 'missing.json'))
        with self.assertRaises(ValueError):
            load_catalog(self._write('bad.json', '{"productCode": "P1"}'))

    def test_main_writes_results(self):
        document = self._write('order_77.txt', ORDER_TEXT)
        products = self._write('products.json', json.dumps(PRODUCTS))
        output = self.root / 'out' / 'results.json'

        argv = ['order-importer', document, '--products', products, '--output', str(output), '--log-level', 'WARNING']
        with mock.patch('sys.argv', argv):
            main()

        results = json.loads(output.read_text(encoding='utf-8'))
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]['filename'], 'order_77.txt')
        self.assertEqual(results[0]['summary']['matched'], 2)


if __name__ == '__main__':
    unittest.main()
