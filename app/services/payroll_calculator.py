"""
Payroll Calculator

Pure computation of a staff member's monthly totals from the basic salary
and the component amounts selected for the period. No database access; safe
to call repeatedly to preview a payroll before it is submitted.

    gross_salary     = basic_salary + sum(selected active earnings)
    total_deductions = sum(selected active deductions)
    net_salary       = gross_salary - total_deductions

A negative net salary is returned as-is and flagged for review.
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from app.core.exceptions import PayrollValidationError
from app.models.salary_component import CalculationMode, ComponentType
from app.schemas.payroll import PayrollTotals

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value a Numeric(12, 2) money column holds
MAX_AMOUNT = Decimal("9999999999.99")


def to_money(value: Any, field: str = "amount") -> Decimal:
    """Coerce ``value`` to a finite, non-negative two-decimal amount."""
    if value is None:
        raise PayrollValidationError(f"{field} is required", details={"field": field})
    if isinstance(value, float) and not math.isfinite(value):
        raise PayrollValidationError(f"{field} must be a finite number", details={"field": field})
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise PayrollValidationError(f"{field} must be a number", details={"field": field})
    if not amount.is_finite():
        raise PayrollValidationError(f"{field} must be a finite number", details={"field": field})
    if amount < 0:
        raise PayrollValidationError(f"{field} cannot be negative", details={"field": field})
    if amount > MAX_AMOUNT:
        raise PayrollValidationError(
            f"{field} cannot exceed {MAX_AMOUNT}",
            details={"field": field, "max": str(MAX_AMOUNT)}
        )
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise PayrollValidationError(f"{field} is out of range", details={"field": field})


def _value(component: Any, name: str) -> Any:
    value = getattr(component, name)
    return value.value if hasattr(value, "value") else value


def _active_ids(components: Iterable[Any], component_type: ComponentType) -> set:
    return {
        str(c.id)
        for c in components
        if _value(c, "component_type") == component_type.value and getattr(c, "is_active", True)
    }


def _sum_selected(
    selections: Optional[Mapping[Any, Any]],
    allowed_ids: set,
    label: str,
) -> Tuple[Decimal, Dict[str, Decimal]]:
    breakdown: Dict[str, Decimal] = {}
    for component_id, raw in (selections or {}).items():
        key = str(component_id)
        amount = to_money(raw, f"{label}[{key}]")
        if key in allowed_ids:
            breakdown[key] = amount
    return sum(breakdown.values(), ZERO), breakdown


def compute(
    basic_salary: Any,
    earnings_selections: Optional[Mapping[Any, Any]],
    deductions_selections: Optional[Mapping[Any, Any]],
    active_components: Iterable[Any],
) -> PayrollTotals:
    """
    Derive gross, deductions and net from the selected component amounts.

    Only selections that match an active component of the right type count;
    anything else contributes zero and is left out of the breakdowns.
    Unselected components are not defaulted here, see
    :func:`seed_default_selections`.
    """
    basic = to_money(basic_salary, "basic_salary")
    components = list(active_components)

    earnings_sum, earnings_breakdown = _sum_selected(
        earnings_selections, _active_ids(components, ComponentType.EARNING), "earnings"
    )
    deductions_sum, deductions_breakdown = _sum_selected(
        deductions_selections, _active_ids(components, ComponentType.DEDUCTION), "deductions"
    )

    gross = basic + earnings_sum
    net = gross - deductions_sum
    for name, total in (("gross_salary", gross), ("total_deductions", deductions_sum)):
        if total > MAX_AMOUNT:
            raise PayrollValidationError(
                f"{name} cannot exceed {MAX_AMOUNT}",
                details={"field": name, "max": str(MAX_AMOUNT)}
            )

    return PayrollTotals(
        basic_salary=basic,
        gross_salary=gross,
        total_deductions=deductions_sum,
        net_salary=net,
        earnings_breakdown=earnings_breakdown,
        deductions_breakdown=deductions_breakdown,
        negative_net=net < 0,
    )


def component_default_amount(component: Any, basic_salary: Decimal) -> Decimal:
    """Default amount of one component: fixed amount, or a percentage of basic salary."""
    if _value(component, "calculation_mode") == CalculationMode.PERCENTAGE.value:
        rate = Decimal(str(component.percentage_rate or 0))
        return (basic_salary * rate / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
    return to_money(component.default_amount or 0, f"default_amount[{component.id}]")


def seed_default_selections(
    components: Iterable[Any],
    basic_salary: Any,
    earnings_selections: Optional[Mapping[Any, Any]] = None,
    deductions_selections: Optional[Mapping[Any, Any]] = None,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Fill every active component missing from the selections with its default.

    Explicit selections always win, including an explicit zero.
    """
    basic = to_money(basic_salary, "basic_salary")
    earnings = {str(k): v for k, v in (earnings_selections or {}).items()}
    deductions = {str(k): v for k, v in (deductions_selections or {}).items()}

    for component in components:
        if not getattr(component, "is_active", True):
            continue
        key = str(component.id)
        target = earnings if _value(component, "component_type") == ComponentType.EARNING.value else deductions
        if key not in target:
            target[key] = component_default_amount(component, basic)
    return earnings, deductions
