"""Logging utilities for the aggregation proxy."""
import logging
import sys

from aggregate_exporter.core.config import ExporterConfig
from aggregate_exporter.core.request_context import get_request_id


def configure_logging(
    config: ExporterConfig, *,
    logger_name: str = "aggregate_exporter",
) -> logging.Logger:
    """Configure the root logger and return the application logger.

    Args:
        config: Resolved configuration carrying the log level.
        logger_name: Name of the logger to retrieve.

    Returns:
        Configured logger instance.
    """

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=(
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[%(filename)s:%(lineno)d] - request_id=%(request_id)s - %(message)s"
        ),
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    old_factory = logging.getLogRecordFactory()
    if not getattr(old_factory, "_stamps_request_id", False):

        def record_factory(*args, **kwargs) -> logging.LogRecord:
            record = old_factory(*args, **kwargs)
            record.request_id = get_request_id() or "system"
            return record

        record_factory._stamps_request_id = True
        logging.setLogRecordFactory(record_factory)

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # httpx logs every request at INFO; one line per target per scrape is noise.
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    logger.debug("Logging configured with level %s", logging.getLevelName(log_level))
    return logger
