from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.routers.auth_deps import require_admin, require_hr, get_current_org
from app.schemas.staff import StaffCreate, StaffResponse
from app.services import staff_directory

router = APIRouter(
    prefix="/staff",
    tags=["staff"],
    dependencies=[Depends(require_hr())]
)


@router.get("", response_model=List[StaffResponse])
def list_active_staff(
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    return staff_directory.list_active_staff(db, org_id)


@router.post("", response_model=StaffResponse, status_code=201, dependencies=[Depends(require_admin())])
def create_staff(
    payload: StaffCreate,
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    return staff_directory.create_staff(db, org_id, payload)


@router.get("/{staff_id}", response_model=StaffResponse)
def get_staff(
    staff_id: int,
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    return staff_directory.get_staff(db, org_id, staff_id)
