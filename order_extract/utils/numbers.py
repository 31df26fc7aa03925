#!/usr/bin/env python3
"""
Number parsing helpers shared by the spreadsheet and text processors
"""

import pandas as pd


def clean_number(x):
    """Parse 1,234.56 / Rs.12 / (12.34) -> float. Return float or None."""
    if x is None:
        return None
    if isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        if pd.isna(x):
            return None
        return float(x)
    s = str(x).strip().replace(",", "").replace("\u00A0", " ")
    for prefix in ("RS.", "RS", "INR", "\u20B9"):
        if s.upper().startswith(prefix):
            s = s[len(prefix):].strip()
            break
    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1]
    try:
        return float(s)
    except ValueError:
        return None

