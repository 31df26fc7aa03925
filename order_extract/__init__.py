"""
Stage 1: Extract Rows and Line Candidates from Order Documents
Reads PDF, Excel, CSV and plain text orders, rebuilds logical rows,
detects the ordering customer and builds validated line candidates.
"""

from .errors import UnsupportedFormatError
from .models import RawRow, LineCandidate, RowIssue
from .rule_loader import RuleLoader
from .pdf_processor import PdfProcessor, TextFragment, group_fragments, build_row_text
from .excel_processor import ExcelProcessor
from .text_processor import TextProcessor
from .row_extractor import RowExtractor
from .line_candidates import LineCandidateBuilder
from .customer_detector import CustomerDetector
from .utils.address_filter import AddressFilter
from .utils.name_cleaner import CustomerNameCleaner

__all__ = [
    'UnsupportedFormatError',
    'RawRow',
    'LineCandidate',
    'RowIssue',
    'RuleLoader',
    'PdfProcessor',
    'TextFragment',
    'group_fragments',
    'build_row_text',
    'ExcelProcessor',
    'TextProcessor',
    'RowExtractor',
    'LineCandidateBuilder',
    'CustomerDetector',
    'AddressFilter',
    'CustomerNameCleaner',
]
