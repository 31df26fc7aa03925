#!/usr/bin/env python3
"""
Row Extractor - Pick the processor for a document from its file extension
"""

import logging
from pathlib import Path
from typing import List

from config import ORDER_PROCESSING
from .errors import UnsupportedFormatError
from .excel_processor import ExcelProcessor
from .models import RawRow
from .pdf_processor import PdfProcessor
from .text_processor import TextProcessor

logger = logging.getLogger(__name__)

FORMAT_BY_EXTENSION = {
    '.pdf': 'pdf',
    '.xlsx': 'table',
    '.xlsm': 'table',
    '.csv': 'table',
    '.txt': 'text',
}


class RowExtractor:
    """Convert a document buffer into an ordered list of RawRows"""

    def __init__(self, rule_loader):
        """
        Args:
            rule_loader: RuleLoader instance
        """
        self.pdf_processor = PdfProcessor(rule_loader)
        self.excel_processor = ExcelProcessor()
        self.text_processor = TextProcessor()
        self.supported_formats = [ext.lower() for ext in ORDER_PROCESSING['supported_formats']]

    def detect_format(self, filename: str) -> str:
        """
        Map a filename to 'pdf', 'table' or 'text'

        Raises:
            UnsupportedFormatError: extension not supported
        """
        extension = Path(filename or '').suffix.lower()
        if extension not in self.supported_formats or extension not in FORMAT_BY_EXTENSION:
            raise UnsupportedFormatError(filename, extension)
        return FORMAT_BY_EXTENSION[extension]

    def extract(self, buffer: bytes, filename: str) -> List[RawRow]:
        """
        Extract rows from a document

        Args:
            buffer: Document content
            filename: Original filename (its extension selects the processor)

        Returns:
            RawRows in reading order, empty when nothing could be extracted
        """
        source_format = self.detect_format(filename)
        extension = Path(filename).suffix.lower()

        if source_format == 'pdf':
            rows = self.pdf_processor.extract_rows(buffer)
        elif source_format == 'table':
            rows = self.excel_processor.extract_rows(buffer, extension)
        else:
            rows = self.text_processor.extract_rows(buffer)

        logger.debug(f"{filename}: extracted {len(rows)} rows ({source_format})")
        return rows
