"""
Salary Component Registry

CRUD over the catalog of earnings and deductions an organization pays with.
Components are soft-deactivated so historical payroll records keep pointing
at a readable definition.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ComponentNotFoundError, PayrollValidationError
from app.models.salary_component import SalaryComponent, CalculationMode
from app.schemas.salary_component import SalaryComponentCreate, SalaryComponentUpdate
from app.services.audit import AuditService

logger = logging.getLogger(__name__)


def list_active_components(db: Session, organization_id: int) -> List[SalaryComponent]:
    return list_components(db, organization_id)


def list_components(
    db: Session,
    organization_id: int,
    include_inactive: bool = False
) -> List[SalaryComponent]:
    query = db.query(SalaryComponent).filter(
        SalaryComponent.organization_id == organization_id
    )
    if not include_inactive:
        query = query.filter(SalaryComponent.is_active.is_(True))
    return query.order_by(SalaryComponent.component_type, SalaryComponent.name).all()


def get_component(db: Session, organization_id: int, component_id: int) -> SalaryComponent:
    component = db.query(SalaryComponent).filter(
        SalaryComponent.id == component_id,
        SalaryComponent.organization_id == organization_id
    ).first()
    if not component:
        raise ComponentNotFoundError(component_id)
    return component


def _snapshot(component: SalaryComponent) -> dict:
    return {
        "name": component.name,
        "component_type": component.component_type,
        "calculation_mode": component.calculation_mode,
        "default_amount": component.default_amount,
        "percentage_rate": component.percentage_rate,
        "is_taxable": component.is_taxable,
        "is_active": component.is_active,
    }


def create_component(
    db: Session,
    organization_id: int,
    payload: SalaryComponentCreate,
    actor: Optional[str] = None
) -> SalaryComponent:
    component = SalaryComponent(
        organization_id=organization_id,
        name=payload.name,
        name_bn=payload.name_bn,
        component_type=payload.component_type.value,
        calculation_mode=payload.calculation_mode.value,
        default_amount=payload.default_amount,
        percentage_rate=payload.percentage_rate,
        is_taxable=payload.is_taxable,
        is_active=True
    )
    db.add(component)
    try:
        db.flush()
        AuditService.log(
            db,
            action="create_salary_component",
            entity_type="salary_component",
            entity_id=component.id,
            actor=actor,
            organization_id=organization_id,
            after_state=_snapshot(component)
        )
        db.commit()
        db.refresh(component)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Created {component.component_type} component '{component.name}' ({component.id})")
    return component


def update_component(
    db: Session,
    organization_id: int,
    component_id: int,
    payload: SalaryComponentUpdate,
    actor: Optional[str] = None
) -> SalaryComponent:
    component = get_component(db, organization_id, component_id)
    before = _snapshot(component)

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("calculation_mode") is not None:
        changes["calculation_mode"] = changes["calculation_mode"].value

    mode = changes.get("calculation_mode") or component.calculation_mode
    rate = changes["percentage_rate"] if "percentage_rate" in changes else component.percentage_rate
    if mode == CalculationMode.PERCENTAGE.value and rate is None:
        raise PayrollValidationError(
            "percentage_rate is required for percentage components",
            details={"component_id": component_id}
        )

    for field, value in changes.items():
        if value is None and field in ("name", "calculation_mode", "is_taxable", "is_active"):
            continue
        setattr(component, field, value)

    try:
        AuditService.log(
            db,
            action="update_salary_component",
            entity_type="salary_component",
            entity_id=component.id,
            actor=actor,
            organization_id=organization_id,
            before_state=before,
            after_state=_snapshot(component)
        )
        db.commit()
        db.refresh(component)
    except Exception:
        db.rollback()
        raise
    return component


def deactivate_component(
    db: Session,
    organization_id: int,
    component_id: int,
    actor: Optional[str] = None
) -> SalaryComponent:
    return update_component(
        db, organization_id, component_id,
        SalaryComponentUpdate(is_active=False),
        actor=actor
    )
