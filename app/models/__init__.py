# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import staff, salary_component, payroll, audit_log

# Explicit class exports for cleaner imports
from .staff import Staff, StaffStatus
from .salary_component import SalaryComponent, ComponentType, CalculationMode
from .payroll import PayrollRecord, PaymentStatus, PaymentMethod
from .audit_log import AuditLog

__all__ = [
    "Staff",
    "StaffStatus",
    "SalaryComponent",
    "ComponentType",
    "CalculationMode",
    "PayrollRecord",
    "PaymentStatus",
    "PaymentMethod",
    "AuditLog",
]
