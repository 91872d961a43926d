"""
Salary Component Router

Catalog of earnings and deductions. Reading is open to payroll staff;
changing the catalog is an HR admin task.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.routers.auth_deps import require_admin, require_hr, get_current_org
from app.schemas.auth import Principal
from app.schemas.salary_component import (
    SalaryComponentCreate,
    SalaryComponentResponse,
    SalaryComponentUpdate,
)
from app.services import component_service

router = APIRouter(
    prefix="/payroll/components",
    tags=["salary components"],
    dependencies=[Depends(require_hr())]
)


@router.get("", response_model=List[SalaryComponentResponse])
def list_components(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    org_id: int = Depends(get_current_org)
):
    return component_service.list_components(db, org_id, include_inactive=include_inactive)


@router.post("", response_model=SalaryComponentResponse, status_code=201)
def create_component(
    payload: SalaryComponentCreate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin()),
    org_id: int = Depends(get_current_org)
):
    return component_service.create_component(db, org_id, payload, actor=current_user.subject)


@router.patch("/{component_id}", response_model=SalaryComponentResponse)
def update_component(
    component_id: int,
    payload: SalaryComponentUpdate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin()),
    org_id: int = Depends(get_current_org)
):
    return component_service.update_component(
        db, org_id, component_id, payload, actor=current_user.subject
    )


@router.delete("/{component_id}", response_model=SalaryComponentResponse)
def deactivate_component(
    component_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin()),
    org_id: int = Depends(get_current_org)
):
    """
    Deactivate a component. It stays readable for existing payroll records.
    """
    return component_service.deactivate_component(db, org_id, component_id, actor=current_user.subject)
