"""
Logging bootstrap. Importing this module configures the root logger once.
"""

import logging

from pharmaguard.core.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def setup_logging(level: str = None) -> None:
    """Configure root logging (only once per process)."""
    global _configured
    if _configured:
        return

    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

    # httpx logs every request at INFO; keep it quieter than our own pipeline logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True


setup_logging()
