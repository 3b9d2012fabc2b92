from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

logger = structlog.get_logger(component="status")


class PaymentOutcome(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    DECLINED = "declined"
    CANCELED = "canceled"
    ERROR = "error"


_KNOWN = {
    "SUCCEEDED": PaymentOutcome.SUCCEEDED,
    "SUCCESS": PaymentOutcome.SUCCEEDED,
    "CAPTURED": PaymentOutcome.SUCCEEDED,
    "PAID": PaymentOutcome.SUCCEEDED,
    "REQUIRES_PAYMENT_METHOD": PaymentOutcome.PENDING,
    "REQUIRES_CUSTOMER_ACTION": PaymentOutcome.PENDING,
    "REQUIRES_ACTION": PaymentOutcome.PENDING,
    "REQUIRES_CONFIRMATION": PaymentOutcome.PENDING,
    "REQUIRES_CAPTURE": PaymentOutcome.PENDING,
    "PENDING": PaymentOutcome.PENDING,
    "PROCESSING": PaymentOutcome.PENDING,
    "AUTHORIZED": PaymentOutcome.PENDING,
    "FAILED": PaymentOutcome.DECLINED,
    "DECLINED": PaymentOutcome.DECLINED,
    "REJECTED": PaymentOutcome.DECLINED,
    "CANCELLED": PaymentOutcome.CANCELED,
    "CANCELED": PaymentOutcome.CANCELED,
    "EXPIRED": PaymentOutcome.CANCELED,
    "ERROR": PaymentOutcome.ERROR,
}


@dataclass(frozen=True)
class StatusResult:
    outcome: PaymentOutcome
    raw: Optional[str]
    known: bool = True

    @property
    def succeeded(self) -> bool:
        return self.outcome is PaymentOutcome.SUCCEEDED


def classify_status(raw: Optional[str]) -> StatusResult:
    key = (raw or "").strip().upper()
    outcome = _KNOWN.get(key)
    if outcome is None:
        # unrecognised strings never count as a success
        logger.warning("unknown_upstream_status", raw_status=raw)
        return StatusResult(PaymentOutcome.DECLINED, raw, known=False)
    return StatusResult(outcome, raw)
