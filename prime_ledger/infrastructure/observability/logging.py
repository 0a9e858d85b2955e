"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from prime_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_ledger_operation(
    operation: str,
    user_id: Optional[str],
    outcome: str,
    duration_ms: float,
    error: Optional[str] = None,
) -> None:
    """Log structured ledger command outcome for analysis"""
    extra = {
        "step": "ledger_command",
        "operation": operation,
        "user_id": user_id,
        "outcome": outcome,
        "duration_ms": duration_ms,
    }
    if error is None:
        logging.info("Ledger command completed", extra=extra)
    elif outcome == "persistence_error":
        logging.error("Ledger command failed: %s", error, extra=extra)
    else:
        logging.warning("Ledger command rejected: %s", error, extra=extra)
