#!/usr/bin/env python3
"""
Configuration file for the Order Importer project
Edit these values to tune extraction and matching behaviour.
Closed vocabularies (business words, strengths, variants, junk patterns)
live in the YAML files under order_rules/ and are loaded by RuleLoader.
"""

# Rule files directory (relative to project root)
# - shared.yaml: defaults and flags
# - 10_customer_detection.yaml: customer cascade vocabulary + address keywords
# - 20_product_vocabulary.yaml: strengths, variants, dosage forms, noise
# - 30_line_filters.yaml: junk / header / quantity label patterns
RULES_DIR = 'order_rules'

# Order Document Processing Settings
ORDER_PROCESSING = {
    'supported_formats': ['.pdf', '.xlsx', '.xlsm', '.csv', '.txt'],
    # Excel files use openpyxl engine (.xls is not readable by openpyxl)
    'excel_engine': 'openpyxl',
    'header_scan_rows': 20,            # Rows scanned for the real header row
    'customer_scan_rows': 15,          # Leading rows searched for the customer name
}

# Positioned PDF text -> rows
PDF_ROW_GROUPING = {
    'row_y_tolerance': 1.8,            # Max vertical distance for fragments on one row
    'font_size_threshold': 1.2,        # Larger font difference = different row (header vs data)
    'word_gap_threshold': 3,           # Gap that inserts a single space
    'column_gap_threshold': 20,        # Gap that inserts a column separator
    'column_separator': '    ',
    'crowded_row_cells': 8,            # Rows with more cells use the tighter tolerance
    'crowded_row_y_tolerance': 0.8,
    'column_bleed_margin': 50,         # Horizontal slack around a row's claimed span
    'min_row_length': 2,
}

# Product Matching Settings
PRODUCT_MATCHING = {
    'scores': {
        'exact': 1.0,
        'cleaned': 0.95,
        'base_strength': 0.90,
        'base_only': 0.85,
        'containment_factor': 0.70,
    },
    'fuzzy_weights': {
        'jaccard': 0.25,
        'word_overlap': 0.30,
        'partial': 0.30,
        'levenshtein': 0.15,
    },
    'fuzzy_floor': 0.50,
    'keyword_cap': 0.85,
    'keyword_exact_weight': 0.30,
    'keyword_partial_weight': 0.15,
    # Descriptions with strength/variant signal are accepted at the lower bar
    'min_score_with_signal': 0.35,
    'min_score_without_signal': 0.45,
}

# Customer catalog matching
CUSTOMER_MATCHING = {
    'auto_accept_score': 0.70,
    'auto_accept_gap': 0.10,
    'first_word_bonus': 0.35,
    'max_fuzzy_score': 0.98,
    'max_candidates': 5,
    'company_suffixes': ['PVT', 'PRIVATE', 'LTD', 'LIMITED', 'LLP', 'CO', 'AND'],
}

# Per-row validation
VALIDATION = {
    'min_description_length': 3,
    'max_quantity': 100000,
}

# Logging Settings
LOGGING = {
    'level': 'INFO',                   # DEBUG, INFO, WARNING, ERROR
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'log_dir': 'logs',
    'log_file': 'order_extract.log',
}
