"""
Payroll Router

Handles HTTP endpoints for payroll operations.
All business logic is delegated to the payroll service layer.
"""

from datetime import datetime
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.config import settings
from app.core.limiter import limiter
from app.database import get_db
from app.models.payroll import PaymentStatus
from app.routers.auth_deps import require_hr, get_current_user, get_current_org
from app.schemas.auth import Principal
from app.schemas.payroll import (
    BulkPayrollRequest,
    BulkPayrollResult,
    PaymentStatusUpdate,
    PayrollPreviewRequest,
    PayrollRecordResponse,
    PayrollSubmitRequest,
    PayrollSummary,
    PayrollTotals,
    StaffPayrollHistory,
)
from app.services import payroll_service


router = APIRouter(
    prefix="/payroll",
    tags=["payroll"],
    dependencies=[Depends(require_hr())]
)


@router.post("/preview", response_model=PayrollTotals)
def preview_payroll(
    request: PayrollPreviewRequest,
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    """
    Calculate gross, deductions and net without saving anything.
    """
    return payroll_service.preview_calculation(
        db, org_id, request.basic_salary, request.earnings, request.deductions
    )


@router.post("/records", response_model=PayrollRecordResponse)
def submit_payroll(
    request: PayrollSubmitRequest,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
    org_id: int = Depends(get_current_org)
):
    """
    Process payroll for a single staff member.
    Re-submitting the same staff and period overwrites the existing record.
    """
    return payroll_service.submit_payroll(
        db,
        org_id,
        request.staff_id,
        request.month,
        request.year,
        earnings=request.earnings,
        deductions=request.deductions,
        payment_method=request.payment_method.value if request.payment_method else None,
        notes=request.notes,
        payment_status=request.payment_status,
        basic_salary=request.basic_salary,
        actor=current_user.subject
    )


@router.post("/bulk", response_model=BulkPayrollResult)
@limiter.limit(settings.bulk_rate_limit)
def run_bulk_payroll(
    request: Request,
    payload: BulkPayrollRequest,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
    org_id: int = Depends(get_current_org)
):
    """
    Generate pending payroll records for every active staff member who has none for the period.
    """
    return payroll_service.run_bulk_payroll(
        db, org_id, payload.month, payload.year, actor=current_user.subject
    )


@router.get("/records", response_model=List[PayrollRecordResponse])
def list_payroll_records(
    month: int,
    year: int,
    status: Optional[PaymentStatus] = None,
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    """
    List payroll records of a period, newest first.
    """
    return payroll_service.list_payroll_records(
        db, org_id, month, year, status=status.value if status else None
    )


@router.get("/records/{record_id}", response_model=PayrollRecordResponse)
def get_payroll_details(
    record_id: int,
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    """
    Get a payroll record by ID.
    """
    return payroll_service.get_payroll_details(db, org_id, record_id)


@router.patch("/records/{record_id}/status", response_model=PayrollRecordResponse)
def update_payment_status(
    record_id: int,
    payload: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
    org_id: int = Depends(get_current_org)
):
    """
    Advance the payment status of a record. Marking paid stamps the payment date.
    """
    return payroll_service.update_payment_status(
        db,
        org_id,
        record_id,
        payload.status,
        payment_date=payload.payment_date,
        actor=current_user.subject
    )


@router.get("/summary", response_model=PayrollSummary)
def get_payroll_summary(
    month: Optional[int] = None,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    """
    Get payroll totals and counts by status, defaulting to the current month.
    """
    now = datetime.now()
    return payroll_service.get_payroll_summary(
        db, org_id,
        month if month is not None else now.month,
        year if year is not None else now.year
    )


@router.get("/staff/{staff_id}/history", response_model=StaffPayrollHistory)
def get_staff_payroll_history(
    staff_id: int,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    """
    Get payroll history for a staff member.
    """
    return payroll_service.get_staff_payroll_history(db, org_id, staff_id, year=year)
