import logging


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``snippet_vault`` logger."""
    logger = logging.getLogger("snippet_vault")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
