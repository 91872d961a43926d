"""
Payroll Record Store

The only writer of payroll totals. Each write is a single
``INSERT ... ON CONFLICT`` statement against the
``(organization_id, staff_id, month, year)`` unique constraint, so there is
no read-then-write window in which two callers can both insert a record for
the same staff member and period.

Functions here execute statements in the caller's transaction; committing is
left to the service layer so the audit entry lands in the same transaction.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import settings
from app.core.exceptions import PeriodOutOfRangeError, RecordLockedError
from app.models.payroll import PayrollRecord, PaymentStatus
from app.schemas.payroll import PayrollTotals

logger = logging.getLogger(__name__)

PERIOD_KEY = ("organization_id", "staff_id", "month", "year")
LOCKED_STATUSES = (PaymentStatus.PAID.value, PaymentStatus.CANCELLED.value)

# Lock contention and serialization failures surface as OperationalError;
# the decorated unit of work must roll back before re-raising.
transient_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
    retry=retry_if_exception_type(OperationalError),
    reraise=True
)


def validate_period(month: Any, year: Any) -> None:
    """Reject a malformed payroll period before anything touches storage."""
    valid = (
        isinstance(month, int) and not isinstance(month, bool)
        and isinstance(year, int) and not isinstance(year, bool)
        and 1 <= month <= 12
        and settings.payroll.min_year <= year <= settings.payroll.max_year
    )
    if not valid:
        raise PeriodOutOfRangeError(month, year)


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Atomic payroll upsert is not supported on {dialect}")
    return insert


def _record_values(
    organization_id: int,
    staff_id: int,
    month: int,
    year: int,
    totals: PayrollTotals,
    payment_method: Optional[str],
    payment_status: Optional[str],
    notes: Optional[str],
) -> Dict[str, Any]:
    return {
        "organization_id": organization_id,
        "staff_id": staff_id,
        "month": month,
        "year": year,
        "basic_salary": totals.basic_salary,
        "earnings": {k: str(v) for k, v in totals.earnings_breakdown.items()},
        "deductions": {k: str(v) for k, v in totals.deductions_breakdown.items()},
        "gross_salary": totals.gross_salary,
        "total_deductions": totals.total_deductions,
        "net_salary": totals.net_salary,
        "payment_method": payment_method or settings.payroll.default_payment_method,
        "payment_status": payment_status or PaymentStatus.PENDING.value,
        "notes": notes,
    }


def _load(db: Session, record_id: int) -> PayrollRecord:
    # The row was written with a Core statement; refresh anything the identity map holds
    return db.get(PayrollRecord, record_id, populate_existing=True)


def upsert(
    db: Session,
    organization_id: int,
    staff_id: int,
    month: int,
    year: int,
    totals: PayrollTotals,
    payment_method: Optional[str] = None,
    payment_status: Optional[str] = None,
    notes: Optional[str] = None,
    created_by: Optional[str] = None,
) -> PayrollRecord:
    """
    Create the record for the period, or overwrite the existing one in place.

    On overwrite, totals, breakdowns, payment method, status and notes are
    replaced; the id, ``payment_date`` and creation stamps are kept. Records
    already paid or cancelled are not overwritten (``RecordLockedError``).
    """
    validate_period(month, year)
    insert = _insert_for(db)

    values = _record_values(
        organization_id, staff_id, month, year, totals,
        payment_method, payment_status, notes
    )
    table = PayrollRecord.__table__
    stmt = insert(table).values(created_by=created_by, **values)
    overwrite = {
        name: getattr(stmt.excluded, name)
        for name in values
        if name not in PERIOD_KEY
    }
    overwrite["updated_at"] = func.now()

    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c[name] for name in PERIOD_KEY],
        set_=overwrite,
        where=table.c.payment_status.not_in(LOCKED_STATUSES),
    ).returning(table.c.id)

    row = db.execute(stmt).first()
    if row is None:
        raise RecordLockedError(staff_id, month, year)

    record = _load(db, row.id)
    logger.info(
        f"Upserted payroll record {record.id} for staff {staff_id} ({month}/{year})",
        extra={"org_id": organization_id, "net_salary": str(record.net_salary)}
    )
    return record


def insert_if_absent(
    db: Session,
    organization_id: int,
    staff_id: int,
    month: int,
    year: int,
    totals: PayrollTotals,
    created_by: Optional[str] = None,
) -> Optional[PayrollRecord]:
    """Insert a pending record unless one exists for the period; ``None`` means it existed."""
    validate_period(month, year)
    insert = _insert_for(db)

    values = _record_values(
        organization_id, staff_id, month, year, totals,
        None, PaymentStatus.PENDING.value, None
    )
    table = PayrollRecord.__table__
    stmt = (
        insert(table)
        .values(created_by=created_by, **values)
        .on_conflict_do_nothing(index_elements=[table.c[name] for name in PERIOD_KEY])
        .returning(table.c.id)
    )

    row = db.execute(stmt).first()
    if row is None:
        return None
    return _load(db, row.id)


def get_record(db: Session, organization_id: int, record_id: int, for_update: bool = False) -> Optional[PayrollRecord]:
    query = db.query(PayrollRecord).filter(
        PayrollRecord.id == record_id,
        PayrollRecord.organization_id == organization_id
    )
    if for_update:
        query = query.with_for_update()
    return query.populate_existing().first()


def find_record(db: Session, organization_id: int, staff_id: int, month: int, year: int) -> Optional[PayrollRecord]:
    return db.query(PayrollRecord).filter(
        PayrollRecord.organization_id == organization_id,
        PayrollRecord.staff_id == staff_id,
        PayrollRecord.month == month,
        PayrollRecord.year == year
    ).first()
