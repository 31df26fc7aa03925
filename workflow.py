#!/usr/bin/env python3
"""
Main Workflow Script - Order Document Processing Pipeline
        Stage 1: Extract rows, customer name and line candidates (order_extract)
        Stage 2: Match products and customer, resolve schemes and packs (product_mapping)

Catalog snapshots are passed in; nothing here reads a database.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

# Load environment variables from .env file if it exists
_env_file = Path(__file__).parent / '.env'
if _env_file.exists():
    with open(_env_file, 'r') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                os.environ.setdefault(key.strip(), value.strip())

from order_extract.rule_loader import RuleLoader
from order_extract.row_extractor import RowExtractor
from order_extract.customer_detector import CustomerDetector
from order_extract.line_candidates import LineCandidateBuilder
from order_extract.logger import setup_logger
from order_extract.models import RowIssue
from product_mapping.decomposer import DescriptionDecomposer
from product_mapping.product_matcher import ProductMatcher
from product_mapping.customer_matcher import CustomerMatcher
from product_mapping.scheme_resolver import SchemeResolver
from product_mapping.pack_normalizer import PackNormalizer
from product_mapping.models import CustomerMatch, SchemeResolution

logger = logging.getLogger(__name__)


@dataclass
class DocumentResult:
    """Everything produced for one order document"""
    filename: str
    customer_name: str
    line_items: List[Dict[str, Any]] = field(default_factory=list)
    customer_match: Optional[CustomerMatch] = None
    errors: List[RowIssue] = field(default_factory=list)
    warnings: List[RowIssue] = field(default_factory=list)
    failed_items: List[Dict[str, Any]] = field(default_factory=list)
    scheme_resolutions: Dict[int, SchemeResolution] = field(default_factory=dict)
    summary: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'filename': self.filename,
            'customer_name': self.customer_name,
            'customer_match': self.customer_match.to_dict() if self.customer_match else None,
            'line_items': self.line_items,
            'errors': [e.to_dict() for e in self.errors],
            'warnings': [w.to_dict() for w in self.warnings],
            'failed_items': self.failed_items,
            'scheme_resolutions': {str(row): r.to_dict() for row, r in self.scheme_resolutions.items()},
            'summary': self.summary,
        }


class OrderWorkflow:
    """Order document pipeline: rows -> candidates -> matched, scheme-resolved line items"""

    def __init__(self, rules_dir: Optional[str] = None, rule_loader: Optional[RuleLoader] = None):
        """
        Initialize every component from one RuleLoader

        Args:
            rules_dir: order_rules directory (defaults to the one shipped with the project)
            rule_loader: Existing RuleLoader to share
        """
        self.rule_loader = rule_loader or RuleLoader(Path(rules_dir) if rules_dir else None)

        self.row_extractor = RowExtractor(self.rule_loader)
        self.customer_detector = CustomerDetector(self.rule_loader)
        self.candidate_builder = LineCandidateBuilder(self.rule_loader)
        self.decomposer = DescriptionDecomposer(self.rule_loader)
        self.product_matcher = ProductMatcher(self.rule_loader, decomposer=self.decomposer)
        self.customer_matcher = CustomerMatcher(self.rule_loader)
        self.pack_normalizer = PackNormalizer(self.rule_loader)

    def process_document(self, buffer: bytes, filename: str, products: Sequence[Any],
                         customers: Optional[Sequence[Any]] = None,
                         schemes: Optional[Sequence[Any]] = None) -> DocumentResult:
        """
        Process one order document

        Args:
            buffer: Document content
            filename: Original filename (extension selects the extraction path)
            products: Product catalog snapshot
            customers: Customer catalog snapshot (optional)
            schemes: Scheme snapshot (optional)

        Returns:
            DocumentResult

        Raises:
            UnsupportedFormatError: extension not supported (nothing is processed)
        """
        rows = self.row_extractor.extract(buffer, filename)
        unknown = self.rule_loader.get_unknown_customer()

        if not rows:
            logger.warning(f"{filename}: no rows extracted")
            result = DocumentResult(filename=filename, customer_name=unknown)
            result.warnings.append(RowIssue(row=0, field='document', message='No rows extracted'))
            result.summary = self._summary(result, rows=0, candidates=0)
            return result

        customer_name, source = self.customer_detector.detect_with_source(rows, filename)
        result = DocumentResult(filename=filename, customer_name=customer_name)

        if customers:
            leading = [r.text for r in rows[:self.customer_detector.scan_rows]]
            result.customer_match = (self.customer_matcher.match_by_ids(leading, customers)
                                     or self.customer_matcher.match(customer_name, customers))
        customer_code = result.customer_match.customer.customer_code \
            if result.customer_match and result.customer_match.customer else None

        candidates, errors, warnings = self.candidate_builder.build(rows)
        result.errors.extend(errors)
        result.warnings.extend(warnings)

        matched, failed = self.product_matcher.match_batch(candidates, products)
        result.failed_items.extend(failed)

        scheme_resolver = SchemeResolver(schemes)
        for candidate, match in matched:
            entry = match.catalog_entry
            pack_size, pack_source, boxes = self.pack_normalizer.normalize(candidate.raw_text, candidate.quantity, entry)
            if pack_source == 'default':
                result.warnings.append(RowIssue(row=candidate.row_number, field='pack_size',
                                                message=f'Pack missing, defaulted to {pack_size}',
                                                value=entry.display_name))

            resolution = scheme_resolver.resolve(entry.product_code, candidate.quantity, customer_code)
            result.scheme_resolutions[candidate.row_number] = resolution

            result.line_items.append({
                'row': candidate.row_number,
                'original_description': candidate.description_text,
                'description': entry.display_name,
                'product_code': entry.product_code,
                'quantity': candidate.quantity,
                'pack_size': pack_size,
                'pack_source': pack_source,
                'box_pack': boxes,
                'match_score': match.confidence_score,
                'match_strategy': match.strategy_tag,
                'free_quantity': resolution.free_quantity if resolution.applied else 0,
                'scheme_applied': resolution.applied,
                'upsell': resolution.upsell.message if resolution.upsell else None,
            })

        result.summary = self._summary(result, rows=len(rows), candidates=len(candidates))
        logger.info(f"{filename}: customer {customer_name} ({source or 'fallback sentinel'}), "
                    f"{len(rows)} rows, {len(candidates)} candidates, {len(result.line_items)} matched, "
                    f"{len(result.failed_items)} failed, {len(result.errors)} errors")
        return result

    @staticmethod
    def _summary(result: DocumentResult, rows: int, candidates: int) -> Dict[str, int]:
        return {
            'rows': rows,
            'candidates': candidates,
            'matched': len(result.line_items),
            'failed': len(result.failed_items),
            'errors': len(result.errors),
            'warnings': len(result.warnings),
            'schemes_applied': sum(1 for r in result.scheme_resolutions.values() if r.applied),
        }


def load_catalog(path: Optional[str]) -> List[Dict[str, Any]]:
    """Load a catalog JSON file (a list of objects); empty list when no path given"""
    if not path:
        return []
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog file not found: {catalog_path}")
    with open(catalog_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Catalog file must contain a JSON list: {catalog_path}")
    logger.debug(f"Loaded {len(data)} records from {catalog_path}")
    return data


def main():
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='Order Document Processing')
    parser.add_argument('documents', nargs='+', help='Order documents (.pdf, .xlsx, .xlsm, .csv, .txt)')
    parser.add_argument('--products', type=str, required=True, help='Product catalog JSON')
    parser.add_argument('--customers', type=str, help='Customer catalog JSON')
    parser.add_argument('--schemes', type=str, help='Scheme JSON')
    parser.add_argument('--rules-dir', type=str, help='order_rules directory')
    parser.add_argument('--output', type=str, help='Write results JSON here (default: stdout)')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])

    args = parser.parse_args()

    setup_logger(args.log_level)

    products = load_catalog(args.products)
    customers = load_catalog(args.customers)
    schemes = load_catalog(args.schemes)

    workflow = OrderWorkflow(rules_dir=args.rules_dir)

    results = []
    for document in args.documents:
        path = Path(document)
        buffer = path.read_bytes()
        result = workflow.process_document(buffer, path.name, products, customers, schemes)
        results.append(result.to_dict())

    payload = json.dumps(results, indent=2, default=str)
    if args.output:
        Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        Path(args.output).write_text(payload, encoding='utf-8')
        logger.info(f"Wrote {len(results)} result(s) to {args.output}")
    else:
        print(payload)


if __name__ == '__main__':
    main()
