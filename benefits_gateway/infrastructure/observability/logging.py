"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from benefits_gateway.config import settings

logger = logging.getLogger("benefits_gateway")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_subscription_created(subscription_id: str, employee_id: str, status: str, subscription_type: str) -> None:
    logger.info(
        "Subscription created",
        extra={
            "subscription_id": subscription_id,
            "employee_id": employee_id,
            "step": "subscription_created",
            "status": status,
            "subscription_type": subscription_type,
        },
    )


def log_step_result(subscription_id: str, step_type: str, outcome: str, status: str) -> None:
    """Log an onboarding step event; rejected ones at warning level"""
    level = logging.WARNING if outcome == "invalid_transition" else logging.INFO
    logger.log(
        level,
        "Onboarding step processed",
        extra={
            "subscription_id": subscription_id,
            "step": step_type,
            "outcome": outcome,
            "status": status,
        },
    )


def log_debit(
    subscription_id: Optional[str],
    employee_id: str,
    amount_cents: int,
    new_balance_cents: int,
    sufficient: bool,
) -> None:
    logger.info(
        "Wallet debited",
        extra={
            "subscription_id": subscription_id,
            "employee_id": employee_id,
            "step": "wallet_debit",
            "amount_cents": amount_cents,
            "new_balance_cents": new_balance_cents,
            "sufficient": sufficient,
        },
    )


def log_billing_cycle(cycle_date: str, debited: int, skipped: int, failed: int, duration_ms: float) -> None:
    logger.info(
        "Billing cycle completed",
        extra={
            "cycle_date": cycle_date,
            "step": "billing_cycle_complete",
            "debited": debited,
            "skipped": skipped,
            "failed": failed,
            "duration_ms": duration_ms,
        },
    )
