"""
Startup functions: logging and filesystem wiring.
"""

import logging
import sys

from bucketview.config import app_config


def configure_logging(log_level=None):
    """Send all logs to stdout, replacing any handlers already installed."""
    log_level = (log_level or app_config.LOG_LEVEL).upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)

    # Clear existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    # botocore logs every request at DEBUG
    for name in ('botocore', 'boto3', 'urllib3'):
        logging.getLogger(name).setLevel(logging.WARNING)


def initialize_filesystems():
    """Build the filesystem registry once at startup and log what it serves."""
    from bucketview.services.filesystem import get_filesystem_registry

    logger = logging.getLogger(__name__)
    registry = get_filesystem_registry()
    for root in registry.roots:
        logger.info(f"File system ready: {root or '(default)'}")
    return registry
