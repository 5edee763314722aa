# logging_config.py
import logging
import os
import sys


def configure_logger(level=None):
    """
    Configures the root logger for the service.

    Messages at LOG_LEVEL (INFO by default) and above go to standard output,
    where Cloud Run picks them up. Modules attach per-video context through
    ``extra={"extra_fields": {...}}``.
    """
    level = level or os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, stream=sys.stdout,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
