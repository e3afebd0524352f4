"""
Logging setup and structured event helpers for import workflows.
"""
import json
import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str) -> None:
    """Install the root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level.upper())


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """
    Emit one lifecycle event as a compact JSON line.

    Args:
        logger: Module logger to write through
        level: Logging level (e.g. logging.INFO)
        event: Dotted event name, e.g. market.data.import.started
        **fields: Event payload; non-JSON values are stringified
    """
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
