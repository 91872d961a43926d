import enum
from pydantic import BaseModel
from typing import Optional


class UserRole(str, enum.Enum):
    """
    Roles carried in the access token.

    - SUPER_ADMIN: Platform-wide access (multi-school management)
    - HR_ADMIN: Full payroll access within the school, manages components
    - HR_STAFF: Processes payroll, cannot change the component catalog
    - TEACHER / STAFF: Self-service only
    """
    SUPER_ADMIN = "SUPER_ADMIN"
    HR_ADMIN = "HR_ADMIN"
    HR_STAFF = "HR_STAFF"
    TEACHER = "TEACHER"
    STAFF = "STAFF"


class TokenData(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = None


class Principal(BaseModel):
    """The authenticated caller and the organization scope it acts under."""
    subject: str
    role: UserRole
    org_id: int
