from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.models.staff import StaffStatus


class StaffBase(BaseModel):
    staff_code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1, max_length=150)
    name_bn: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    base_salary: Optional[Decimal] = Field(None, ge=0)


class StaffCreate(StaffBase):
    status: StaffStatus = StaffStatus.ACTIVE


class StaffResponse(StaffBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    status: str
    created_at: Optional[datetime] = None


class StaffSummary(BaseModel):
    """Directory fields shown next to a payroll record."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_code: str
    name: str
    name_bn: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
