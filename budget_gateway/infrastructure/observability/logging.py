"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List
from pythonjsonlogger import jsonlogger

from budget_gateway.config import settings


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

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_sync(
    principal_id: str,
    accounts_total: int,
    failed_accounts: List[str],
    synced_count: int,
    duration_ms: float,
) -> None:
    """Log structured sync outcome"""
    logging.info(
        "Sync completed",
        extra={
            "principal_id": principal_id,
            "step": "sync_complete",
            "accounts_total": accounts_total,
            "failed_accounts": failed_accounts,
            "synced_count": synced_count,
            "duration_ms": duration_ms,
        },
    )


def log_classification_batch(
    principal_id: str,
    classified: int,
    failed_ids: List[int],
    skipped: int,
    duration_ms: float,
) -> None:
    """Log structured outcome of a classify-all pass"""
    logging.info(
        "Classification pass completed",
        extra={
            "principal_id": principal_id,
            "step": "classify_all_complete",
            "classified": classified,
            "failed_ids": failed_ids,
            "skipped": skipped,
            "duration_ms": duration_ms,
        },
    )
