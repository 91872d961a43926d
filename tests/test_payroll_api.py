import pytest
from datetime import date
from decimal import Decimal

from app.models.payroll import PayrollRecord


def _submit(client, headers, staff_id, month=5, year=2025, **body):
    payload = {"staff_id": staff_id, "month": month, "year": year}
    payload.update(body)
    return client.post("/api/payroll/records", headers=headers, json=payload)


def _error_code(response):
    body = response.json()
    assert body["success"] is False
    return body["errors"][0].get("code")


def test_preview_does_not_persist(client, auth_headers, db_session, house_rent, provident_fund):
    response = client.post(
        "/api/payroll/preview",
        headers=auth_headers(),
        json={
            "basic_salary": "30000",
            "earnings": {str(house_rent.id): "5000"},
            "deductions": {str(provident_fund.id): "2000"},
        }
    )
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["gross_salary"]) == Decimal("35000")
    assert Decimal(data["total_deductions"]) == Decimal("2000")
    assert Decimal(data["net_salary"]) == Decimal("33000")
    assert data["negative_net"] is False
    assert db_session.query(PayrollRecord).count() == 0


def test_preview_ignores_unknown_components(client, auth_headers, house_rent):
    response = client.post(
        "/api/payroll/preview",
        headers=auth_headers(),
        json={"basic_salary": "1000", "earnings": {"999": "50"}}
    )
    assert response.status_code == 200
    assert Decimal(response.json()["gross_salary"]) == Decimal("1000")


def test_submit_payroll(client, auth_headers, staff, house_rent, provident_fund):
    response = _submit(
        client, auth_headers(), staff.id,
        earnings={str(house_rent.id): "5000"},
        deductions={str(provident_fund.id): "2000"},
        payment_method="cash",
        notes="May salary"
    )
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["basic_salary"]) == Decimal("30000")
    assert Decimal(data["net_salary"]) == Decimal("33000")
    assert data["payment_status"] == "pending"
    assert data["payment_method"] == "cash"
    assert data["payment_date"] is None
    assert data["created_by"] == "hr.admin@school.edu"
    assert Decimal(data["earnings"][str(house_rent.id)]) == Decimal("5000")


def test_resubmission_overwrites_same_record(client, auth_headers, db_session, staff, house_rent):
    first = _submit(client, auth_headers(), staff.id, earnings={str(house_rent.id): "5000"}).json()
    second = _submit(client, auth_headers(), staff.id, basic_salary="31000").json()

    assert second["id"] == first["id"]
    assert Decimal(second["net_salary"]) == Decimal("31000")
    assert second["earnings"] == {}
    assert db_session.query(PayrollRecord).count() == 1


def test_negative_net_is_stored_and_flagged(client, auth_headers, staff, provident_fund):
    response = _submit(
        client, auth_headers(), staff.id,
        basic_salary="2000",
        deductions={str(provident_fund.id): "3000"}
    )
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["net_salary"]) == Decimal("-1000")
    assert data["negative_net"] is True

    fetched = client.get(f"/api/payroll/records/{data['id']}", headers=auth_headers()).json()
    assert Decimal(fetched["net_salary"]) == Decimal("-1000")


def test_submit_unknown_component_is_rejected(client, auth_headers, staff, provident_fund):
    # A deduction id offered as an earning does not match
    response = _submit(client, auth_headers(), staff.id, earnings={str(provident_fund.id): "10"})
    assert response.status_code == 422
    assert _error_code(response) == "UNKNOWN_COMPONENT"


def test_submit_unknown_staff(client, auth_headers):
    response = _submit(client, auth_headers(), 4242)
    assert response.status_code == 404
    assert _error_code(response) == "STAFF_NOT_FOUND"


def test_submit_staff_from_other_org_is_not_found(client, auth_headers, make_staff):
    outsider = make_staff(org_id=2)
    response = _submit(client, auth_headers(), outsider.id)
    assert response.status_code == 404


def test_submit_without_any_salary(client, auth_headers, make_staff):
    member = make_staff(base_salary=None)
    response = _submit(client, auth_headers(), member.id)
    assert response.status_code == 422
    assert _error_code(response) == "VALIDATION_ERROR"


@pytest.mark.parametrize("month,year", [(13, 2025), (0, 2025), (1, 1990)])
def test_submit_out_of_range_period(client, auth_headers, staff, month, year):
    response = _submit(client, auth_headers(), staff.id, month=month, year=year)
    assert response.status_code == 422
    assert _error_code(response) == "PERIOD_OUT_OF_RANGE"


def test_submit_negative_amount_is_rejected(client, auth_headers, staff, house_rent):
    response = _submit(client, auth_headers(), staff.id, earnings={str(house_rent.id): "-1"})
    assert response.status_code == 422


def test_submit_as_paid_is_not_accepted(client, auth_headers, staff):
    response = _submit(client, auth_headers(), staff.id, payment_status="paid")
    assert response.status_code == 422
    assert _error_code(response) == "VALIDATION_ERROR"


def test_resubmitting_paid_record_is_locked(client, auth_headers, staff):
    record = _submit(client, auth_headers(), staff.id).json()
    client.patch(f"/api/payroll/records/{record['id']}/status", headers=auth_headers(), json={"status": "paid"})

    response = _submit(client, auth_headers(), staff.id, basic_salary="50000")
    assert response.status_code == 409
    assert _error_code(response) == "PAYROLL_RECORD_LOCKED"


def test_status_endpoint(client, auth_headers, staff):
    record = _submit(client, auth_headers(), staff.id).json()

    response = client.patch(
        f"/api/payroll/records/{record['id']}/status",
        headers=auth_headers("HR_STAFF"),
        json={"status": "paid"}
    )
    assert response.status_code == 200
    assert response.json()["payment_status"] == "paid"
    assert response.json()["payment_date"] == date.today().isoformat()

    again = client.patch(
        f"/api/payroll/records/{record['id']}/status",
        headers=auth_headers(),
        json={"status": "pending"}
    )
    assert again.status_code == 409
    assert _error_code(again) == "TERMINAL_STATE"


def test_status_endpoint_unknown_record(client, auth_headers):
    response = client.patch("/api/payroll/records/999/status", headers=auth_headers(), json={"status": "paid"})
    assert response.status_code == 404
    assert _error_code(response) == "PAYROLL_RECORD_NOT_FOUND"


def test_bulk_endpoint(client, auth_headers, make_staff):
    make_staff(base_salary="20000")
    make_staff(base_salary="25000")

    first = client.post("/api/payroll/bulk", headers=auth_headers(), json={"month": 6, "year": 2025})
    assert first.status_code == 200
    assert len(first.json()["created"]) == 2

    second = client.post("/api/payroll/bulk", headers=auth_headers(), json={"month": 6, "year": 2025})
    assert second.json()["created"] == []
    assert len(second.json()["skipped"]) == 2


def test_list_records_by_period_and_status(client, auth_headers, make_staff):
    a = make_staff(base_salary="20000")
    b = make_staff(base_salary="25000")
    ra = _submit(client, auth_headers(), a.id, month=7).json()
    _submit(client, auth_headers(), b.id, month=7, payment_status="processed")
    _submit(client, auth_headers(), a.id, month=8)

    response = client.get("/api/payroll/records?month=7&year=2025", headers=auth_headers())
    assert response.status_code == 200
    assert len(response.json()) == 2

    processed = client.get("/api/payroll/records?month=7&year=2025&status=processed", headers=auth_headers()).json()
    assert [r["staff_id"] for r in processed] == [b.id]

    detail = client.get(f"/api/payroll/records/{ra['id']}", headers=auth_headers())
    assert detail.status_code == 200
    assert detail.json()["month"] == 7


def test_records_are_scoped_to_organization(client, auth_headers, staff):
    record = _submit(client, auth_headers(), staff.id).json()
    response = client.get(f"/api/payroll/records/{record['id']}", headers=auth_headers(org_id=2))
    assert response.status_code == 404

    listed = client.get("/api/payroll/records?month=5&year=2025", headers=auth_headers(org_id=2)).json()
    assert listed == []


def test_summary(client, auth_headers, make_staff, provident_fund):
    a = make_staff(base_salary="20000")
    b = make_staff(base_salary="25000")
    c = make_staff(base_salary="1000")
    ra = _submit(client, auth_headers(), a.id, month=9).json()
    _submit(client, auth_headers(), b.id, month=9)
    _submit(client, auth_headers(), c.id, month=9, deductions={str(provident_fund.id): "3000"})
    client.patch(f"/api/payroll/records/{ra['id']}/status", headers=auth_headers(), json={"status": "paid"})

    response = client.get("/api/payroll/summary?month=9&year=2025", headers=auth_headers())
    assert response.status_code == 200
    data = response.json()
    assert data["total_count"] == 3
    assert data["paid_count"] == 1
    assert Decimal(data["paid_amount"]) == Decimal("20000")
    assert Decimal(data["pending_amount"]) == Decimal("23000")
    assert Decimal(data["total_payroll"]) == Decimal("43000")
    assert data["count_by_status"] == {"pending": 2, "processed": 0, "paid": 1, "cancelled": 0}
    assert data["negative_net_count"] == 1


def test_summary_of_empty_period(client, auth_headers):
    data = client.get("/api/payroll/summary?month=1&year=2030", headers=auth_headers()).json()
    assert data["total_count"] == 0
    assert Decimal(data["total_payroll"]) == Decimal("0")


def test_staff_history(client, auth_headers, staff, house_rent):
    for month in (1, 2, 3):
        _submit(client, auth_headers(), staff.id, month=month, earnings={str(house_rent.id): "1000"})
    _submit(client, auth_headers(), staff.id, month=12, year=2024)

    response = client.get(f"/api/payroll/staff/{staff.id}/history?year=2025", headers=auth_headers())
    assert response.status_code == 200
    data = response.json()
    assert [r["month"] for r in data["records"]] == [3, 2, 1]
    assert Decimal(data["summary"]["total_basic"]) == Decimal("90000")
    assert Decimal(data["summary"]["total_earnings"]) == Decimal("3000")
    assert Decimal(data["summary"]["total_net"]) == Decimal("93000")
    assert data["summary"]["paid_months"] == 0

    everything = client.get(f"/api/payroll/staff/{staff.id}/history", headers=auth_headers()).json()
    assert len(everything["records"]) == 4
    assert everything["records"][0]["year"] == 2025


def test_unauthenticated_request_is_rejected(client):
    response = client.get("/api/payroll/records?month=1&year=2025")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_teacher_role_cannot_process_payroll(client, auth_headers, staff):
    response = _submit(client, auth_headers("TEACHER"), staff.id)
    assert response.status_code == 403


def test_token_without_org_is_rejected(client):
    from app.services.auth import create_access_token
    token = create_access_token(data={"sub": "hr@school.edu", "role": "HR_ADMIN"})
    response = client.get("/api/payroll/summary", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_garbage_token_is_rejected(client):
    response = client.get("/api/payroll/summary", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_preview_of_huge_salary_is_a_validation_error(client, auth_headers):
    response = client.post("/api/payroll/preview", headers=auth_headers(), json={"basic_salary": "1e30"})
    assert response.status_code == 422
    assert _error_code(response) == "VALIDATION_ERROR"


def test_salary_beyond_storable_range_is_not_stored(client, auth_headers, db_session, staff):
    response = _submit(client, auth_headers(), staff.id, basic_salary="99999999999999.99")
    assert response.status_code == 422
    assert _error_code(response) == "VALIDATION_ERROR"
    assert db_session.query(PayrollRecord).count() == 0


def test_records_carry_staff_details(client, auth_headers, make_staff):
    member = make_staff(name="Rahima Khatun", base_salary="30000")
    record = _submit(client, auth_headers(), member.id, month=10).json()
    assert record["staff"]["name"] == "Rahima Khatun"

    listed = client.get("/api/payroll/records?month=10&year=2025", headers=auth_headers()).json()
    assert listed[0]["staff"] == {
        "id": member.id,
        "staff_code": member.staff_code,
        "name": "Rahima Khatun",
        "name_bn": None,
        "department": None,
        "designation": "Assistant Teacher",
    }

    detail = client.get(f"/api/payroll/records/{record['id']}", headers=auth_headers()).json()
    assert detail["staff"]["staff_code"] == member.staff_code

    history = client.get(f"/api/payroll/staff/{member.id}/history", headers=auth_headers()).json()
    assert history["records"][0]["staff"]["designation"] == "Assistant Teacher"
