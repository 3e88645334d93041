"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

from payment_flow.config import settings


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: Optional[str] = None) -> None:
    """
    Route the root logger to a single JSON handler on stdout.

    ``level`` defaults to ``settings.log_level``. Called by the host process;
    importing the engine never configures logging.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.handlers[:] = [handler]


def log_calculation(
    request_id: str,
    amortization: str,
    is_valid: bool,
    financed_amount: float,
    minimum_condition: bool,
    duration_ms: float,
) -> None:
    """Log structured calculation outcome for analysis"""
    logging.info(
        "Payment plan computed",
        extra={
            "request_id": request_id,
            "step": "calculation_complete",
            "amortization": amortization,
            "validation_outcome": "valid" if is_valid else "invalid",
            "financed_amount": financed_amount,
            "minimum_condition": minimum_condition,
            "duration_ms": duration_ms,
        },
    )
