"""
Staff directory model.

The staff directory is owned by the school's HR records; payroll only reads
identity, organization scope and the on-file base salary from it.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, UniqueConstraint
from sqlalchemy.sql import func
import enum
from app.database import Base


class StaffStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Staff(Base):
    __tablename__ = "staff"
    __table_args__ = (
        UniqueConstraint("organization_id", "staff_code", name="uq_staff_org_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, nullable=False, index=True)
    staff_code = Column(String, nullable=False)  # School-issued id, e.g. "T-0042"
    name = Column(String, nullable=False)
    name_bn = Column(String, nullable=True)
    department = Column(String, nullable=True)
    designation = Column(String, nullable=True)
    # Absent salary means bulk processing cannot infer pay without manual input
    base_salary = Column(Numeric(12, 2), nullable=True)
    status = Column(String, default=StaffStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Staff {self.staff_code}: {self.name}>"

    @property
    def is_active(self) -> bool:
        return self.status == StaffStatus.ACTIVE.value
