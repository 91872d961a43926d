import pytest
from decimal import Decimal

from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.dml import Insert

from app.core.config import settings
from app.core.exceptions import PayrollValidationError, UnknownComponentError
from app.models.audit_log import AuditLog
from app.models.payroll import PayrollRecord
from app.services import payroll_service

ORG_ID = 1


def test_submit_uses_on_file_base_salary(db_session, staff):
    record = payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 1, 2025)
    assert record.basic_salary == Decimal("30000")
    assert record.gross_salary == record.net_salary == Decimal("30000")


def test_unselected_components_count_as_zero(db_session, staff, house_rent, provident_fund):
    record = payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 1, 2025)
    assert record.earnings == {}
    assert record.total_deductions == Decimal("0")


def test_component_defaults_apply_when_enabled(db_session, staff, house_rent, provident_fund, make_component, monkeypatch):
    monkeypatch.setattr(settings.payroll, "apply_component_defaults", True)
    festival = make_component("Festival Bonus", "earning", calculation_mode="percentage", percentage_rate="10")

    record = payroll_service.submit_payroll(
        db_session, ORG_ID, staff.id, 1, 2025,
        deductions={provident_fund.id: Decimal("500")}
    )

    assert Decimal(record.earnings[str(house_rent.id)]) == Decimal("5000")
    assert Decimal(record.earnings[str(festival.id)]) == Decimal("3000")
    assert Decimal(record.deductions[str(provident_fund.id)]) == Decimal("500")
    assert record.net_salary == Decimal("37500")


def test_preview_matches_submission(db_session, staff, house_rent, provident_fund):
    selections = {"earnings": {house_rent.id: "1234.50"}, "deductions": {provident_fund.id: "234.25"}}
    preview = payroll_service.preview_calculation(db_session, ORG_ID, Decimal("30000"), **selections)
    record = payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 2, 2025, **selections)
    assert record.net_salary == preview.net_salary == Decimal("31000.25")


def test_submit_as_processed(db_session, staff):
    record = payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 1, 2025, payment_status="processed")
    assert record.payment_status == "processed"


def test_submit_refuses_terminal_status(db_session, staff):
    with pytest.raises(PayrollValidationError):
        payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 1, 2025, payment_status="paid")


def test_unknown_component_id(db_session, staff, house_rent):
    with pytest.raises(UnknownComponentError) as exc:
        payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 1, 2025, earnings={999: Decimal("1")})
    assert exc.value.details["component_ids"] == ["999"]


def test_submission_is_audited(db_session, staff):
    record = payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 1, 2025, actor="hr@school.edu")
    entry = db_session.query(AuditLog).filter_by(action="submit_payroll").one()
    assert entry.entity_id == record.id
    assert entry.actor == "hr@school.edu"
    assert entry.after_state["net_salary"] == "30000.00"


def _fail_inserts(db_session, monkeypatch, times):
    """Make the next ``times`` INSERT statements fail as a locked database would."""
    real_execute = db_session.execute
    calls = {"failed": 0}

    def execute(statement, *args, **kwargs):
        if isinstance(statement, Insert) and calls["failed"] < times:
            calls["failed"] += 1
            raise OperationalError("INSERT INTO payroll_records", {}, Exception("database is locked"))
        return real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", execute)
    return calls


def test_submission_retries_transient_lock(db_session, staff, monkeypatch):
    calls = _fail_inserts(db_session, monkeypatch, times=1)

    record = payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 1, 2025)

    assert calls["failed"] == 1
    assert record.net_salary == Decimal("30000")
    assert db_session.query(PayrollRecord).count() == 1
    assert db_session.query(AuditLog).filter_by(action="submit_payroll").count() == 1


def test_submission_gives_up_after_three_attempts(db_session, staff, monkeypatch):
    calls = _fail_inserts(db_session, monkeypatch, times=5)

    with pytest.raises(OperationalError):
        payroll_service.submit_payroll(db_session, ORG_ID, staff.id, 1, 2025)

    assert calls["failed"] == 3
    assert db_session.query(PayrollRecord).count() == 0
    assert db_session.query(AuditLog).count() == 0


def test_bulk_run_retries_transient_lock(db_session, make_staff, monkeypatch):
    make_staff(base_salary="20000")
    make_staff(base_salary="25000")
    calls = _fail_inserts(db_session, monkeypatch, times=1)

    result = payroll_service.run_bulk_payroll(db_session, ORG_ID, 2, 2025)

    assert calls["failed"] == 1
    assert len(result["created"]) == 2
    assert result["skipped"] == []
