import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """Configure the root logger. Only the first call takes effect."""
    root = logging.getLogger()
    if getattr(root, "_campus_portal_configured", False):
        return
    root.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root._campus_portal_configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
