import logging

from opsdesk.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install one stream handler on the root logger.

    Safe to call more than once; later calls only adjust the level.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if any(getattr(h, "_opsdesk", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._opsdesk = True
    root.addHandler(handler)
