from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from app.models.payroll import PaymentMethod, PaymentStatus
from app.schemas.staff import StaffSummary


class PayrollTotals(BaseModel):
    """Output of the calculator; also the body of a preview response."""
    basic_salary: Decimal
    gross_salary: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    earnings_breakdown: Dict[str, Decimal] = {}
    deductions_breakdown: Dict[str, Decimal] = {}
    negative_net: bool = False


class PayrollPreviewRequest(BaseModel):
    basic_salary: Decimal
    earnings: Dict[int, Decimal] = {}
    deductions: Dict[int, Decimal] = {}


class PayrollSubmitRequest(BaseModel):
    staff_id: int
    month: int
    year: int
    # Falls back to the staff member's on-file base salary when omitted
    basic_salary: Optional[Decimal] = None
    earnings: Dict[int, Decimal] = {}
    deductions: Dict[int, Decimal] = {}
    payment_method: Optional[PaymentMethod] = None
    # paid/cancelled are reached through the status endpoint only
    payment_status: Literal["pending", "processed"] = "pending"
    notes: Optional[str] = Field(None, max_length=2000)


class BulkPayrollRequest(BaseModel):
    month: int
    year: int


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    payment_date: Optional[date] = None


class PayrollRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    staff_id: int
    month: int
    year: int
    basic_salary: Decimal
    earnings: Dict[str, Decimal] = {}
    deductions: Dict[str, Decimal] = {}
    gross_salary: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    payment_method: Optional[str] = None
    payment_status: str
    payment_date: Optional[date] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    negative_net: bool = False
    staff: Optional[StaffSummary] = None


class BulkPayrollResult(BaseModel):
    month: int
    year: int
    created: List[PayrollRecordResponse] = []
    skipped: List[int] = []
    # Staff left out because they have no base salary on file (skip policy only)
    excluded: List[int] = []


class PayrollSummary(BaseModel):
    month: int
    year: int
    total_payroll: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    paid_count: int
    total_count: int
    count_by_status: Dict[str, int]
    negative_net_count: int


class StaffYearSummary(BaseModel):
    total_basic: Decimal
    total_earnings: Decimal
    total_deductions: Decimal
    total_net: Decimal
    paid_months: int


class StaffPayrollHistory(BaseModel):
    staff_id: int
    year: Optional[int] = None
    records: List[PayrollRecordResponse]
    summary: StaffYearSummary
