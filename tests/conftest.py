import pytest
import os
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENABLE_RATE_LIMITING"] = "false"

from app.database import Base, get_db
from app.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

ORG_ID = 1
OTHER_ORG_ID = 2


@pytest.fixture(scope="function")
def engine():
    """A fresh in-memory database per test; services commit on their own."""
    test_engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens with org_id."""
    from app.services.auth import create_access_token

    def _get_token(role="HR_ADMIN", org_id=ORG_ID, subject="hr.admin@school.edu"):
        return create_access_token(data={
            "sub": subject,
            "role": role,
            "org_id": org_id,
            "type": "access"
        })
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _headers(role="HR_ADMIN", org_id=ORG_ID):
        return {"Authorization": f"Bearer {get_token(role=role, org_id=org_id)}"}
    return _headers


@pytest.fixture(scope="function")
def make_staff(db_session):
    from app.models.staff import Staff, StaffStatus

    counter = {"n": 0}

    def _make(name=None, base_salary="30000", org_id=ORG_ID, status=StaffStatus.ACTIVE.value):
        counter["n"] += 1
        staff = Staff(
            organization_id=org_id,
            staff_code=f"T-{counter['n']:04d}",
            name=name or f"Teacher {counter['n']}",
            designation="Assistant Teacher",
            base_salary=Decimal(base_salary) if base_salary is not None else None,
            status=status
        )
        db_session.add(staff)
        db_session.commit()
        db_session.refresh(staff)
        return staff
    return _make


@pytest.fixture(scope="function")
def make_component(db_session):
    from app.models.salary_component import SalaryComponent, CalculationMode

    def _make(name, component_type, default_amount=None, percentage_rate=None,
              calculation_mode=CalculationMode.FIXED.value, org_id=ORG_ID, is_active=True):
        component = SalaryComponent(
            organization_id=org_id,
            name=name,
            component_type=component_type,
            calculation_mode=calculation_mode,
            default_amount=Decimal(default_amount) if default_amount is not None else None,
            percentage_rate=Decimal(percentage_rate) if percentage_rate is not None else None,
            is_active=is_active
        )
        db_session.add(component)
        db_session.commit()
        db_session.refresh(component)
        return component
    return _make


@pytest.fixture(scope="function")
def staff(make_staff):
    return make_staff(name="Rahima Khatun", base_salary="30000")


@pytest.fixture(scope="function")
def house_rent(make_component):
    return make_component("House Rent", "earning", default_amount="5000")


@pytest.fixture(scope="function")
def provident_fund(make_component):
    return make_component("Provident Fund", "deduction", default_amount="2000")
