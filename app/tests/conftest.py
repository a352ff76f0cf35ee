"""
Pytest configuration and fixtures
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_db

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    Employee,
    Role,
    AuditLog,
    ApprovalWorkflow,
    AttendanceSession,
    AttendanceEvent,
    CashAdvance,
    LeaveRequest,
    WorkSchedule,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_employee(db, emp_code: str, name: str, role: Role, active: bool = True) -> Employee:
    employee = Employee(emp_code=emp_code, name=name, role=role.value, active=active)
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def employee(db):
    """Regular employee"""
    return _make_employee(db, "EMP001", "Test Employee", Role.EMPLOYEE)


@pytest.fixture
def other_employee(db):
    return _make_employee(db, "EMP002", "Other Employee", Role.EMPLOYEE)


@pytest.fixture
def supervisor(db):
    """First-line reviewer"""
    return _make_employee(db, "SUP001", "Test Supervisor", Role.SUPERVISOR)


@pytest.fixture
def manager(db):
    """Second-line reviewer with reconciliation rights"""
    return _make_employee(db, "MGR001", "Test Manager", Role.MANAGER)


@pytest.fixture
def hr_user(db):
    return _make_employee(db, "HR001", "Test HR", Role.HR)


@pytest.fixture
def admin(db):
    return _make_employee(db, "ADM001", "Test Admin", Role.ADMIN)


@pytest.fixture
def inactive_employee(db):
    return _make_employee(db, "EMP099", "Inactive Employee", Role.EMPLOYEE, active=False)
