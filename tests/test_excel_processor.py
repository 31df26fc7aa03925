#!/usr/bin/env python3
"""
Spreadsheet / Text Extraction Tests: header detection, header normalization, format dispatch
"""

import io
import os
import unittest
from pathlib import Path

from openpyxl import Workbook

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from order_extract.errors import UnsupportedFormatError
from order_extract.excel_processor import ExcelProcessor
from order_extract.row_extractor import RowExtractor
from order_extract.rule_loader import RuleLoader
from order_extract.text_processor import TextProcessor


CSV_ORDER = (
    'Order from ABC MEDICALS,,\n'
    ',,\n'
    'Item Name,Qty,Qty\n'
    'DOLO 650,10,1\n'
    ',,\n'
    'PAN 40,5,2\n'
)


def xlsx_bytes(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestExcelProcessor(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.processor = ExcelProcessor()

    def test_header_normalization(self):
        self.assertEqual(ExcelProcessor._normalize_header_cell(' ITEM_NAME '), 'item name')
        self.assertEqual(ExcelProcessor._normalize_header_cell('Item.Name'), 'item name')
        self.assertEqual(ExcelProcessor._dedupe_headers(['qty', 'qty', 'qty']), ['qty', 'qty_1', 'qty_2'])

    def test_csv_header_detection(self):
        rows = self.processor.extract_rows(CSV_ORDER.encode('utf-8'), '.csv')
        texts = [r.text for r in rows]

        self.assertEqual(texts[0], 'Order from ABC MEDICALS')
        header = [r for r in rows if r.is_header]
        self.assertEqual(len(header), 1)
        self.assertEqual(header[0].text, 'Item Name Qty Qty')

        data = [r for r in rows if r.cells]
        self.assertEqual(len(data), 2)
        self.assertEqual(data[0].cells, {'item name': 'DOLO 650', 'qty': '10', 'qty_1': '1'})
        self.assertEqual(data[1].cells['item name'], 'PAN 40')
        self.assertEqual(data[0].vertical_position, 3)
        self.assertEqual(data[1].vertical_position, 5)

    def test_xlsx_header_detection(self):
        content = xlsx_bytes([
            ['ORDER SHEET'],
            ['Sl No', 'Item Description', 'Ord Qty'],
            [1, 'DOLO 650 TAB', 20],
            [2, 'PAN 40MG TAB', 5],
        ])
        rows = self.processor.extract_rows(content, '.xlsx')

        self.assertEqual(rows[0].text, 'ORDER SHEET')
        self.assertTrue(rows[1].is_header)
        data = [r for r in rows if r.cells]
        self.assertEqual(len(data), 2)
        self.assertEqual(data[0].cells['item description'], 'DOLO 650 TAB')
        self.assertEqual(data[0].cells['ord qty'], '20')
        self.assertEqual(data[0].source_format, 'table')

    def test_empty_csv(self):
        self.assertEqual(self.processor.extract_rows(b'', '.csv'), [])


class TestTextProcessor(unittest.TestCase):

    def test_one_row_per_non_blank_line(self):
        rows = TextProcessor().extract_rows(b'ABC MEDICALS\n\n  DOLO 650   TAB   10  \n')
        self.assertEqual([r.text for r in rows], ['ABC MEDICALS', 'DOLO 650 TAB 10'])
        self.assertEqual(rows[1].vertical_position, 2)
        self.assertEqual(rows[1].raw_text, '  DOLO 650   TAB   10')


class TestRowExtractor(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.extractor = RowExtractor(RuleLoader(PROJECT_ROOT / 'order_rules'))

    def test_detect_format(self):
        self.assertEqual(self.extractor.detect_format('order.PDF'), 'pdf')
        self.assertEqual(self.extractor.detect_format('order.xlsx'), 'table')
        self.assertEqual(self.extractor.detect_format('order.csv'), 'table')
        self.assertEqual(self.extractor.detect_format('order.txt'), 'text')

    def test_legacy_xls_is_rejected(self):
        with self.assertRaises(UnsupportedFormatError) as ctx:
            self.extractor.extract(b'not read', 'order.xls')
        self.assertEqual(ctx.exception.extension, '.xls')

    def test_unknown_extension_is_rejected(self):
        for name in ('order.docx', 'order'):
            with self.subTest(name=name):
                with self.assertRaises(UnsupportedFormatError):
                    self.extractor.detect_format(name)

    def test_dispatches_csv(self):
        rows = self.extractor.extract(CSV_ORDER.encode('utf-8'), 'order.csv')
        self.assertEqual(len([r for r in rows if r.cells]), 2)


if __name__ == '__main__':
    unittest.main()
