"""
Payment Status Tracker

    pending ──> processed ──> paid
       │  └──────────────────> paid
       └──────> cancelled <── processed

``paid`` and ``cancelled`` are terminal. Requesting the status a record
already has is a no-op. Only this module writes ``payment_date``.
"""

import logging
from datetime import date
from typing import Optional, Union

from sqlalchemy.orm import Session

from app.core.exceptions import (
    InvalidTransitionError,
    PayrollValidationError,
    RecordNotFoundError,
    TerminalStateError,
)
from app.models.payroll import PayrollRecord, PaymentStatus
from app.services import payroll_store
from app.services.audit import AuditService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PROCESSED, PaymentStatus.PAID, PaymentStatus.CANCELLED},
    PaymentStatus.PROCESSED: {PaymentStatus.PAID, PaymentStatus.CANCELLED},
    PaymentStatus.PAID: set(),
    PaymentStatus.CANCELLED: set(),
}
TERMINAL_STATUSES = {PaymentStatus.PAID, PaymentStatus.CANCELLED}


def _today() -> date:
    return date.today()


def _parse_status(value: Union[str, PaymentStatus]) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise PayrollValidationError(
            f"Unknown payment status: {value}",
            details={"allowed": [s.value for s in PaymentStatus]}
        )


def check_transition(current: PaymentStatus, requested: PaymentStatus) -> None:
    """Raise if ``current -> requested`` is not a lifecycle edge. Same-status is allowed."""
    if current == requested:
        return
    if current in TERMINAL_STATUSES:
        raise TerminalStateError(current.value, requested.value)
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, requested.value)


@payroll_store.transient_retry
def advance(
    db: Session,
    organization_id: int,
    record_id: int,
    new_status: Union[str, PaymentStatus],
    payment_date: Optional[date] = None,
    actor: Optional[str] = None,
) -> PayrollRecord:
    """
    Move a payroll record to ``new_status``.

    Marking paid stamps ``payment_date`` (today unless given, never in the
    future); any other target clears it.
    """
    requested = _parse_status(new_status)
    if payment_date is not None and payment_date > _today():
        raise PayrollValidationError(
            "payment_date cannot be in the future",
            details={"payment_date": payment_date.isoformat()}
        )

    try:
        record = payroll_store.get_record(db, organization_id, record_id, for_update=True)
        if record is None:
            raise RecordNotFoundError(record_id)

        current = _parse_status(record.payment_status)
        check_transition(current, requested)
        if current == requested:
            db.rollback()
            return record

        before = {"payment_status": current.value, "payment_date": record.payment_date}
        record.payment_status = requested.value
        if requested == PaymentStatus.PAID:
            record.payment_date = payment_date or _today()
        else:
            record.payment_date = None

        AuditService.log(
            db,
            action="update_payment_status",
            entity_type="payroll_record",
            entity_id=record.id,
            actor=actor,
            organization_id=organization_id,
            before_state=before,
            after_state={"payment_status": record.payment_status, "payment_date": record.payment_date}
        )
        db.commit()
        db.refresh(record)
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Payroll record {record.id} moved {current.value} -> {requested.value}",
        extra={"org_id": organization_id}
    )
    return record
