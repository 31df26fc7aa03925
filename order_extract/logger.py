#!/usr/bin/env python3
"""
Logger setup for order document processing
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from config import LOGGING


def setup_logger(log_level: str = None, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging configuration for command-line runs

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR), defaults to config.LOGGING
        log_dir: Directory for log files (defaults to 'logs/')

    Returns:
        Configured logger instance
    """
    log_level = log_level or LOGGING['level']
    log_dir = Path(log_dir) if log_dir else Path(LOGGING['log_dir'])

    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOGGING['format'],
        handlers=[
            logging.FileHandler(log_dir / LOGGING['log_file']),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)
