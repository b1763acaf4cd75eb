# pdf_locator/logging_config.py

import logging

from rich.logging import RichHandler

from pdf_locator.config import LOG_LEVEL


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Route all loggers through a single rich console handler."""
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    # Replace existing handlers so reloads don't duplicate output
    root_logger.handlers = [handler]
