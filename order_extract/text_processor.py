#!/usr/bin/env python3
"""
Text Processor - Plain text orders, one row per non-blank line
"""

import logging
from typing import List

from .models import RawRow

logger = logging.getLogger(__name__)


class TextProcessor:
    """Split a plain-text order into RawRows"""

    def extract_rows(self, buffer: bytes) -> List[RawRow]:
        text = buffer.decode('utf-8-sig', errors='replace')
        rows = []
        for index, line in enumerate(text.splitlines()):
            collapsed = ' '.join(line.split())
            if not collapsed:
                continue
            rows.append(RawRow(text=collapsed, raw_text=line.rstrip(), vertical_position=index, source_format='text'))
        if not rows:
            logger.warning("Text document has no non-blank lines")
        return rows
