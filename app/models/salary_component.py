from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime
from sqlalchemy.sql import func
from app.database import Base
import enum

class ComponentType(str, enum.Enum):
    EARNING = "earning"
    DEDUCTION = "deduction"

class CalculationMode(str, enum.Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"

class SalaryComponent(Base):
    __tablename__ = "salary_components"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    name_bn = Column(String, nullable=True)
    component_type = Column(String, nullable=False)  # Store enum value as string
    calculation_mode = Column(String, default=CalculationMode.FIXED.value, nullable=False)
    default_amount = Column(Numeric(12, 2), nullable=True)  # Used when fixed
    percentage_rate = Column(Numeric(5, 2), nullable=True)  # Percent of basic salary
    is_taxable = Column(Boolean, default=True, nullable=False)
    # Components are deactivated, never deleted, so old records stay readable
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<SalaryComponent {self.id} {self.name} ({self.component_type})>"
