import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "info") -> None:
    """Attach a single stream handler to the ``stockflow`` logger tree."""
    logger = logging.getLogger("stockflow")
    logger.setLevel(level.upper())
    if not any(getattr(handler, "_stockflow", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._stockflow = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
