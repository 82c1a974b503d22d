import logging
import sys

from market_intel.utils.logging_redaction import install_redaction_filter

_NOISY_LOGGERS = ("httpx", "apscheduler", "yfinance", "sqlalchemy.engine", "urllib3")


def setup_logging(level: str = "INFO") -> None:
    """
    Configure centralized application logging.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    install_redaction_filter()

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
