#!/usr/bin/env python3
"""
Data classes passed between the row extractor, the candidate builder and the workflow
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional


@dataclass
class RawRow:
    """One logical row of text recovered from a document"""
    text: str
    vertical_position: float = 0.0
    horizontal_position: float = 0.0
    font_size: float = 0.0
    source_format: str = 'text'           # 'pdf', 'table' or 'text'
    raw_text: str = ''                    # Row text before whitespace collapsing
    page: int = 1
    is_header: bool = False
    cells: Dict[str, str] = field(default_factory=dict)   # Tabular rows only: header -> cell

    def __post_init__(self):
        if not self.raw_text:
            self.raw_text = self.text


@dataclass
class LineCandidate:
    """A plausible product row with its order quantity"""
    description_text: str
    quantity: float
    raw_text: str
    row_number: int = 0
    product_code: Optional[str] = None    # Code column value for tabular input


@dataclass
class RowIssue:
    """A per-row validation error (row excluded) or warning (row kept, value corrected)"""
    row: int
    field: str
    message: str
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
