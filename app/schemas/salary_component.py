from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.models.salary_component import CalculationMode, ComponentType


class SalaryComponentBase(BaseModel):
    """Base schema for salary component data."""
    name: str = Field(..., min_length=1, max_length=100)
    name_bn: Optional[str] = Field(None, max_length=100)
    component_type: ComponentType
    calculation_mode: CalculationMode = CalculationMode.FIXED
    default_amount: Optional[Decimal] = Field(None, ge=0)
    percentage_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    is_taxable: bool = True


class SalaryComponentCreate(SalaryComponentBase):
    """Schema for creating a new salary component."""

    @model_validator(mode="after")
    def check_mode_fields(self):
        if self.calculation_mode == CalculationMode.PERCENTAGE and self.percentage_rate is None:
            raise ValueError("percentage_rate is required for percentage components")
        return self


class SalaryComponentUpdate(BaseModel):
    """Schema for updating a salary component."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    name_bn: Optional[str] = Field(None, max_length=100)
    calculation_mode: Optional[CalculationMode] = None
    default_amount: Optional[Decimal] = Field(None, ge=0)
    percentage_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    is_taxable: Optional[bool] = None
    is_active: Optional[bool] = None


class SalaryComponentResponse(SalaryComponentBase):
    """Schema for salary component response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
