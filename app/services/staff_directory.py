"""
Staff Directory access.

Payroll consumes the directory through two reads: the active roster of an
organization, and a single staff lookup scoped to that organization.
"""
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AppException, StaffNotFoundError
from app.models.staff import Staff, StaffStatus
from app.schemas.staff import StaffCreate

logger = logging.getLogger(__name__)


def list_active_staff(db: Session, organization_id: int) -> List[Staff]:
    return db.query(Staff).filter(
        Staff.organization_id == organization_id,
        Staff.status == StaffStatus.ACTIVE.value
    ).order_by(Staff.name, Staff.id).all()


def get_staff(db: Session, organization_id: int, staff_id: int) -> Staff:
    """Resolve a staff member within the caller's organization or raise StaffNotFoundError."""
    staff = db.query(Staff).filter(
        Staff.id == staff_id,
        Staff.organization_id == organization_id
    ).first()
    if not staff:
        raise StaffNotFoundError(staff_id)
    return staff


def create_staff(db: Session, organization_id: int, payload: StaffCreate) -> Staff:
    staff = Staff(
        organization_id=organization_id,
        staff_code=payload.staff_code,
        name=payload.name,
        name_bn=payload.name_bn,
        department=payload.department,
        designation=payload.designation,
        base_salary=payload.base_salary,
        status=payload.status.value
    )
    db.add(staff)
    try:
        db.commit()
        db.refresh(staff)
    except IntegrityError:
        db.rollback()
        raise AppException(
            f"Staff code {payload.staff_code} is already registered",
            status_code=409,
            error_code="STAFF_CODE_TAKEN"
        )
    except Exception:
        db.rollback()
        raise
    logger.info(f"Registered staff {staff.staff_code} in org {organization_id}")
    return staff
