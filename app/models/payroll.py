from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, JSON, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    PAID = "paid"
    CANCELLED = "cancelled"

class PaymentMethod(str, enum.Enum):
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    CHEQUE = "cheque"
    MOBILE_BANKING = "mobile_banking"

class PayrollRecord(Base):
    __tablename__ = "payroll_records"
    __table_args__ = (
        UniqueConstraint("organization_id", "staff_id", "month", "year", name="uq_payroll_record_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, nullable=False, index=True)
    staff_id = Column(Integer, nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    basic_salary = Column(Numeric(12, 2), nullable=False)
    earnings = Column(JSON, nullable=False, default=dict)  # component id -> amount
    deductions = Column(JSON, nullable=False, default=dict)  # component id -> amount
    gross_salary = Column(Numeric(12, 2), nullable=False)
    total_deductions = Column(Numeric(12, 2), nullable=False, default=0)
    net_salary = Column(Numeric(12, 2), nullable=False)

    payment_method = Column(String, nullable=True)
    payment_status = Column(String, default=PaymentStatus.PENDING.value, nullable=False, index=True)
    payment_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Read-only view of the directory entry; staff ids are checked against the org on write
    staff = relationship(
        "Staff",
        primaryjoin="foreign(PayrollRecord.staff_id) == Staff.id",
        viewonly=True
    )

    def __repr__(self):
        return f"<PayrollRecord staff={self.staff_id} {self.month}/{self.year} {self.payment_status}>"

    @property
    def negative_net(self) -> bool:
        """Deductions exceed gross; kept as-is for a human to review."""
        return self.net_salary is not None and self.net_salary < 0
