#!/usr/bin/env python3
"""
Rule Loader - Load YAML vocabularies from the order_rules directory
Each rule file is cached separately; shared.yaml holds the defaults and flags
"""

import os
import yaml
import logging
import hashlib
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_RULES_DIR = Path(__file__).parent.parent / 'order_rules'


class RuleLoader:
    """Load and cache YAML rule files used by the extraction and matching components"""

    def __init__(self, rules_dir: Optional[Path] = None, enable_hot_reload: Optional[bool] = None):
        """
        Initialize rule loader with rules directory

        Args:
            rules_dir: Path to order_rules directory (defaults to the one shipped with the project)
            enable_hot_reload: Enable checksum-based hot-reload. When None, the
                               ORDERS_HOT_RELOAD environment variable decides (default: off)
        """
        if enable_hot_reload is None:
            enable_hot_reload = os.getenv('ORDERS_HOT_RELOAD', '0') == '1'

        self.rules_dir = Path(rules_dir) if rules_dir else DEFAULT_RULES_DIR
        self._rules_cache: Dict[str, Dict[str, Any]] = {}
        self._file_checksums = {} if enable_hot_reload else None  # Only track when enabled
        self._enable_hot_reload = enable_hot_reload
        self._shared_rules = None
        self._file_read_count = 0

    def _calculate_file_checksum(self, file_path: Path) -> str:
        """Calculate MD5 checksum for a file"""
        with open(file_path, 'rb') as f:
            return hashlib.md5(f.read()).hexdigest()

    def _should_reload_file(self, filename: str, rule_file: Path) -> bool:
        """Check if a rule file should be (re)loaded"""
        if not self._enable_hot_reload:
            return filename not in self._rules_cache

        if not rule_file.exists():
            return False

        current_checksum = self._calculate_file_checksum(rule_file)
        cached_checksum = self._file_checksums.get(filename)

        if current_checksum != cached_checksum:
            if cached_checksum:
                logger.debug(f"Rule file {filename} modified, reloading...")
            return True

        return False

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load a YAML file directly"""
        self._file_read_count += 1
        with open(file_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def _load_shared_rules(self) -> Dict[str, Any]:
        """Load shared.yaml rules"""
        shared_file = self.rules_dir / 'shared.yaml'
        if self._shared_rules is None or (self._enable_hot_reload and self._should_reload_file('shared.yaml', shared_file)):
            if shared_file.exists():
                self._shared_rules = self._load_yaml_file(shared_file)
                if self._enable_hot_reload:
                    self._file_checksums['shared.yaml'] = self._calculate_file_checksum(shared_file)
                logger.debug("Loaded shared.yaml")
            else:
                self._shared_rules = {}
                logger.warning(f"shared.yaml not found in {self.rules_dir}")
        return self._shared_rules

    def load_rule_file_by_name(self, filename: str) -> Dict[str, Any]:
        """
        Load a specific rule file by filename (e.g., '20_product_vocabulary.yaml')

        Args:
            filename: Rule file name

        Returns:
            Rule dictionary or empty dict if not found
        """
        rule_file = self.rules_dir / filename

        if not rule_file.exists():
            logger.warning(f"Rule file not found: {rule_file}")
            return {}

        if self._should_reload_file(filename, rule_file):
            self._rules_cache[filename] = self._load_yaml_file(rule_file)
            if self._enable_hot_reload:
                self._file_checksums[filename] = self._calculate_file_checksum(rule_file)
            logger.debug(f"Loaded rule file: {filename}")

        return self._rules_cache.get(filename, {})

    def get_defaults(self) -> Dict[str, Any]:
        """Default sentinel values from shared.yaml"""
        return self._load_shared_rules().get('defaults', {})

    def get_flags(self) -> Dict[str, Any]:
        """Feature flags from shared.yaml"""
        return self._load_shared_rules().get('flags', {})

    def get_unknown_customer(self) -> str:
        """Sentinel used when no customer name can be detected"""
        return self.get_defaults().get('unknown_customer', 'UNKNOWN')

    def get_customer_detection_rules(self) -> Dict[str, Any]:
        """Get customer detection rules from 10_customer_detection.yaml"""
        rules = self.load_rule_file_by_name('10_customer_detection.yaml')
        return rules.get('customer_detection', {})

    def get_address_rules(self) -> Dict[str, Any]:
        """Get address-line vocabulary from 10_customer_detection.yaml"""
        rules = self.load_rule_file_by_name('10_customer_detection.yaml')
        return rules.get('address', {})

    def get_product_vocabulary(self) -> Dict[str, Any]:
        """Get decomposer/matcher vocabularies from 20_product_vocabulary.yaml"""
        rules = self.load_rule_file_by_name('20_product_vocabulary.yaml')
        return rules.get('product_vocabulary', {})

    def get_line_filter_rules(self) -> Dict[str, Any]:
        """Get line candidate filters from 30_line_filters.yaml"""
        rules = self.load_rule_file_by_name('30_line_filters.yaml')
        return rules.get('line_filters', {})

    def clear_cache(self):
        """Clear the rules cache"""
        logger.debug("Clearing rules cache")
        self._rules_cache.clear()
        if self._file_checksums is not None:
            self._file_checksums.clear()
        self._shared_rules = None

    def get_file_read_count(self) -> int:
        """Number of YAML files read from disk since the last reset"""
        return self._file_read_count

    def reset_file_read_count(self):
        self._file_read_count = 0
