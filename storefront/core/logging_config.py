# storefront/core/logging_config.py
"""
Centralized logging configuration for the service.

Application loggers follow LOG_LEVEL; the HTTP client stack used for the
EasyPost calls (requests/urllib3) is held at WARNING so a busy estimator
does not log a line per upstream connection.
"""

import logging
from typing import Optional

from storefront.core.settings import S

_configured = False


def configure_logging(log_level: Optional[str] = None) -> None:
    """Configure root logging once per process."""
    global _configured
    level_name = (log_level or S.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    if not _configured:
        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[logging.StreamHandler()]
        )
        _configured = True

    # Quiet noisy HTTP client loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    logging.getLogger("storefront").setLevel(level)
    logging.getLogger(__name__).debug("Logging configured at level: %s", level_name)
