"""
Payroll Service Layer

This module provides the business logic layer for payroll operations.
It encapsulates all database access, keeping the router focused on HTTP
request/response handling.

Architecture:
- Router -> Service (this module) -> Calculator / Record Store / Status Tracker
- Totals are derived only by ``payroll_calculator.compute``
- Records are written only through ``payroll_store``
- Status and payment date are changed only through ``payment_status.advance``
"""

from decimal import Decimal
from datetime import date
from typing import Any, Dict, List, Mapping, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.exceptions import (
    PayrollValidationError,
    RecordNotFoundError,
    UnknownComponentError,
)
from app.models.payroll import PayrollRecord, PaymentStatus
from app.models.salary_component import SalaryComponent, ComponentType
from app.schemas.payroll import PayrollTotals
from app.services import payroll_store
from app.services import payment_status as status_tracker
from app.services.audit import AuditService
from app.services.component_service import list_active_components
from app.services.payroll_calculator import CENT, ZERO, compute, seed_default_selections
from app.services.staff_directory import get_staff, list_active_staff

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = (PaymentStatus.PENDING.value, PaymentStatus.PROCESSED.value)


def _prepare_selections(
    components: List[SalaryComponent],
    basic_salary: Any,
    earnings: Optional[Mapping[Any, Any]],
    deductions: Optional[Mapping[Any, Any]],
):
    if settings.payroll.apply_component_defaults:
        return seed_default_selections(components, basic_salary, earnings, deductions)
    return earnings or {}, deductions or {}


def _check_selection_ids(
    components: List[SalaryComponent],
    earnings: Optional[Mapping[Any, Any]],
    deductions: Optional[Mapping[Any, Any]],
) -> None:
    """Every selected id must be an active component of the matching type."""
    by_type = {
        ComponentType.EARNING.value: {str(c.id) for c in components if c.component_type == ComponentType.EARNING.value},
        ComponentType.DEDUCTION.value: {str(c.id) for c in components if c.component_type == ComponentType.DEDUCTION.value},
    }
    unknown = {str(k) for k in (earnings or {}) if str(k) not in by_type[ComponentType.EARNING.value]}
    unknown |= {str(k) for k in (deductions or {}) if str(k) not in by_type[ComponentType.DEDUCTION.value]}
    if unknown:
        raise UnknownComponentError(unknown)


def preview_calculation(
    db: Session,
    organization_id: int,
    basic_salary: Any,
    earnings: Optional[Mapping[Any, Any]] = None,
    deductions: Optional[Mapping[Any, Any]] = None,
) -> PayrollTotals:
    """
    Compute totals without persisting anything.

    Args:
        db: Database session
        organization_id: Organization whose active components apply
        basic_salary: Basic salary for the period
        earnings: Mapping of earning component id to amount
        deductions: Mapping of deduction component id to amount

    Returns:
        PayrollTotals with gross, total deductions, net and breakdowns
    """
    components = list_active_components(db, organization_id)
    earnings, deductions = _prepare_selections(components, basic_salary, earnings, deductions)
    return compute(basic_salary, earnings, deductions, components)


@payroll_store.transient_retry
def _write_submission(
    db: Session,
    organization_id: int,
    staff_id: int,
    month: int,
    year: int,
    totals: PayrollTotals,
    payment_method: Optional[str],
    status: str,
    notes: Optional[str],
    actor: Optional[str],
) -> PayrollRecord:
    try:
        record = payroll_store.upsert(
            db, organization_id, staff_id, month, year, totals,
            payment_method=payment_method,
            payment_status=status,
            notes=notes,
            created_by=actor,
        )
        AuditService.log(
            db,
            action="submit_payroll",
            entity_type="payroll_record",
            entity_id=record.id,
            actor=actor,
            organization_id=organization_id,
            details={"staff_id": staff_id, "month": month, "year": year},
            after_state=totals.model_dump()
        )
        db.commit()
        db.refresh(record)
    except Exception:
        db.rollback()
        raise
    return record


def submit_payroll(
    db: Session,
    organization_id: int,
    staff_id: int,
    month: int,
    year: int,
    earnings: Optional[Mapping[Any, Any]] = None,
    deductions: Optional[Mapping[Any, Any]] = None,
    payment_method: Optional[str] = None,
    notes: Optional[str] = None,
    payment_status: str = PaymentStatus.PENDING.value,
    basic_salary: Any = None,
    actor: Optional[str] = None,
) -> PayrollRecord:
    """
    Compute and store the payroll of one staff member for a period.

    Re-submitting the same staff/month/year overwrites the existing record
    in place; it never creates a second one.

    Args:
        db: Database session
        organization_id: Organization scope of the caller
        staff_id: Staff directory id
        month: Payroll month (1-12)
        year: Payroll year
        earnings / deductions: Component id -> amount selections
        payment_method: How the salary will be paid
        notes: Free text
        payment_status: pending or processed
        basic_salary: Overrides the staff member's on-file base salary
        actor: Subject of the caller, recorded on the record and audit log

    Returns:
        The stored PayrollRecord
    """
    payroll_store.validate_period(month, year)
    if payment_status not in SUBMITTABLE_STATUSES:
        raise PayrollValidationError(
            f"Payroll can only be submitted as {' or '.join(SUBMITTABLE_STATUSES)}; "
            "use the payment status update for paid or cancelled",
            details={"payment_status": payment_status}
        )

    staff = get_staff(db, organization_id, staff_id)
    if basic_salary is None:
        basic_salary = staff.base_salary
    if basic_salary is None:
        raise PayrollValidationError(
            f"Staff member {staff_id} has no base salary on file; basic_salary is required",
            details={"staff_id": staff_id, "field": "basic_salary"}
        )

    components = list_active_components(db, organization_id)
    _check_selection_ids(components, earnings, deductions)
    earnings, deductions = _prepare_selections(components, basic_salary, earnings, deductions)
    totals = compute(basic_salary, earnings, deductions, components)

    if totals.negative_net:
        logger.warning(
            f"Negative net salary {totals.net_salary} for staff {staff_id} ({month}/{year}); flagged for review",
            extra={"org_id": organization_id}
        )

    return _write_submission(
        db, organization_id, staff_id, month, year, totals,
        payment_method, payment_status, notes, actor
    )


@payroll_store.transient_retry
def _insert_baseline(
    db: Session,
    organization_id: int,
    staff_id: int,
    month: int,
    year: int,
    totals: PayrollTotals,
    actor: Optional[str],
) -> Optional[PayrollRecord]:
    try:
        record = payroll_store.insert_if_absent(
            db, organization_id, staff_id, month, year, totals, created_by=actor
        )
        db.commit()
        if record is not None:
            db.refresh(record)
    except Exception:
        db.rollback()
        raise
    return record


def run_bulk_payroll(
    db: Session,
    organization_id: int,
    month: int,
    year: int,
    actor: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Generate baseline payroll records for the whole active roster.

    Additive only: staff who already have a record for the period are
    skipped, never overwritten. Each staff member is committed on its own,
    so an interrupted run can simply be repeated.

    Args:
        db: Database session
        organization_id: Organization ID for multi-tenancy
        month: Payroll month (1-12)
        year: Payroll year
        actor: Subject of the caller

    Returns:
        Dict with created records, skipped staff ids and excluded staff ids
    """
    payroll_store.validate_period(month, year)
    staff_members = list_active_staff(db, organization_id)
    skip_missing = settings.payroll.missing_salary_policy == "skip"

    created: List[PayrollRecord] = []
    skipped: List[int] = []
    excluded: List[int] = []

    for staff in staff_members:
        base_salary = staff.base_salary
        if base_salary is None:
            if skip_missing:
                excluded.append(staff.id)
                continue
            logger.warning(
                f"Staff {staff.id} has no base salary on file; generating a zero-salary record",
                extra={"org_id": organization_id}
            )
            base_salary = ZERO

        totals = compute(base_salary, {}, {}, [])
        record = _insert_baseline(db, organization_id, staff.id, month, year, totals, actor)
        if record is None:
            skipped.append(staff.id)
        else:
            created.append(record)

    try:
        AuditService.log(
            db,
            action="run_bulk_payroll",
            entity_type="payroll_period",
            entity_id=None,
            actor=actor,
            organization_id=organization_id,
            details={
                "month": month,
                "year": year,
                "created": [r.id for r in created],
                "skipped": skipped,
                "excluded": excluded,
            }
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Bulk payroll {month}/{year}: {len(created)} created, {len(skipped)} skipped, {len(excluded)} excluded",
        extra={"org_id": organization_id}
    )
    return {
        "month": month,
        "year": year,
        "created": created,
        "skipped": skipped,
        "excluded": excluded,
    }


def update_payment_status(
    db: Session,
    organization_id: int,
    record_id: int,
    new_status: str,
    payment_date: Optional[date] = None,
    actor: Optional[str] = None,
) -> PayrollRecord:
    return status_tracker.advance(
        db, organization_id, record_id, new_status,
        payment_date=payment_date, actor=actor
    )


def list_payroll_records(
    db: Session,
    organization_id: int,
    month: int,
    year: int,
    status: Optional[str] = None,
) -> List[PayrollRecord]:
    payroll_store.validate_period(month, year)
    query = db.query(PayrollRecord).options(selectinload(PayrollRecord.staff)).filter(
        PayrollRecord.organization_id == organization_id,
        PayrollRecord.month == month,
        PayrollRecord.year == year
    )
    if status:
        query = query.filter(PayrollRecord.payment_status == status)
    return query.order_by(PayrollRecord.created_at.desc(), PayrollRecord.id.desc()).all()


def get_payroll_details(db: Session, organization_id: int, record_id: int) -> PayrollRecord:
    record = payroll_store.get_record(db, organization_id, record_id)
    if record is None:
        raise RecordNotFoundError(record_id)
    return record


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT)


def get_payroll_summary(db: Session, organization_id: int, month: int, year: int) -> Dict[str, Any]:
    """
    Get aggregated payroll statistics for an organization and period.
    """
    payroll_store.validate_period(month, year)
    period = (
        PayrollRecord.organization_id == organization_id,
        PayrollRecord.month == month,
        PayrollRecord.year == year,
    )

    rows = db.query(
        PayrollRecord.payment_status,
        func.count(PayrollRecord.id),
        func.sum(PayrollRecord.net_salary)
    ).filter(*period).group_by(PayrollRecord.payment_status).all()

    count_by_status = {s.value: 0 for s in PaymentStatus}
    amount_by_status = {s.value: ZERO for s in PaymentStatus}
    for status, count, total in rows:
        count_by_status[status] = count
        amount_by_status[status] = _money(total)

    negative_net_count = db.query(func.count(PayrollRecord.id)).filter(
        *period, PayrollRecord.net_salary < 0
    ).scalar() or 0

    return {
        "month": month,
        "year": year,
        "total_payroll": sum(amount_by_status.values(), ZERO),
        "paid_amount": amount_by_status[PaymentStatus.PAID.value],
        "pending_amount": amount_by_status[PaymentStatus.PENDING.value],
        "paid_count": count_by_status[PaymentStatus.PAID.value],
        "total_count": sum(count_by_status.values()),
        "count_by_status": count_by_status,
        "negative_net_count": negative_net_count,
    }


def get_staff_payroll_history(
    db: Session,
    organization_id: int,
    staff_id: int,
    year: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Get payroll history for a staff member, newest period first, with totals.
    """
    get_staff(db, organization_id, staff_id)

    query = db.query(PayrollRecord).options(selectinload(PayrollRecord.staff)).filter(
        PayrollRecord.organization_id == organization_id,
        PayrollRecord.staff_id == staff_id
    )
    if year is not None:
        query = query.filter(PayrollRecord.year == year)
    records = query.order_by(PayrollRecord.year.desc(), PayrollRecord.month.desc()).all()

    summary = {
        "total_basic": sum((_money(r.basic_salary) for r in records), ZERO),
        "total_earnings": sum((_money(r.gross_salary) - _money(r.basic_salary) for r in records), ZERO),
        "total_deductions": sum((_money(r.total_deductions) for r in records), ZERO),
        "total_net": sum((_money(r.net_salary) for r in records), ZERO),
        "paid_months": sum(1 for r in records if r.payment_status == PaymentStatus.PAID.value),
    }
    return {"staff_id": staff_id, "year": year, "records": records, "summary": summary}
