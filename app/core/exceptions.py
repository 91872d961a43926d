from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class PayrollValidationError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=details
        )

class PeriodOutOfRangeError(AppException):
    def __init__(self, month: Any, year: Any):
        super().__init__(
            message=f"Payroll period {month}/{year} is out of range",
            status_code=422,
            error_code="PERIOD_OUT_OF_RANGE",
            details={"month": month, "year": year}
        )

class StaffNotFoundError(AppException):
    def __init__(self, staff_id: Any):
        super().__init__(
            message=f"Staff member {staff_id} not found",
            status_code=404,
            error_code="STAFF_NOT_FOUND",
            details={"staff_id": staff_id}
        )

class UnknownComponentError(AppException):
    """A selection references a component id that is not an active component of this organization."""
    def __init__(self, component_ids):
        ids = sorted(str(c) for c in component_ids)
        super().__init__(
            message=f"Unknown salary component(s): {', '.join(ids)}",
            status_code=422,
            error_code="UNKNOWN_COMPONENT",
            details={"component_ids": ids}
        )

class ComponentNotFoundError(AppException):
    def __init__(self, component_id: Any):
        super().__init__(
            message=f"Salary component {component_id} not found",
            status_code=404,
            error_code="COMPONENT_NOT_FOUND",
            details={"component_id": component_id}
        )

class RecordNotFoundError(AppException):
    def __init__(self, record_id: Any):
        super().__init__(
            message=f"Payroll record {record_id} not found",
            status_code=404,
            error_code="PAYROLL_RECORD_NOT_FOUND",
            details={"record_id": record_id}
        )

class TerminalStateError(AppException):
    def __init__(self, current: str, requested: str):
        super().__init__(
            message=f"Payroll record is {current}; it cannot move to {requested}",
            status_code=409,
            error_code="TERMINAL_STATE",
            details={"current": current, "requested": requested}
        )

class InvalidTransitionError(AppException):
    def __init__(self, current: str, requested: str):
        super().__init__(
            message=f"Transition from {current} to {requested} is not allowed",
            status_code=409,
            error_code="INVALID_TRANSITION",
            details={"current": current, "requested": requested}
        )

class RecordLockedError(AppException):
    def __init__(self, staff_id: Any, month: int, year: int):
        super().__init__(
            message=f"Payroll for staff {staff_id} in {month}/{year} is already paid or cancelled and cannot be resubmitted",
            status_code=409,
            error_code="PAYROLL_RECORD_LOCKED",
            details={"staff_id": staff_id, "month": month, "year": year}
        )
