"""Process-wide logging setup."""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for API and worker processes."""

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # httpx logs every request at INFO; keep worker output readable.
    logging.getLogger("httpx").setLevel(logging.WARNING)
