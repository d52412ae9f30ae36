"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pythonjsonlogger import jsonlogger

from fine_service.config import settings


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


def log_fine_evaluated(
    request_id: str,
    operation: str,
    fine_id: Optional[int],
    rules_applied: List[str],
    status: str,
    duration_ms: float,
) -> None:
    """Log structured outcome of a business rule evaluation"""
    logging.info(
        "Fine evaluated",
        extra={
            "request_id": request_id,
            "operation": operation,
            "fine_id": fine_id,
            "step": "rules_applied",
            "rules_applied": rules_applied,
            "fine_status": status,
            "duration_ms": duration_ms,
        },
    )
