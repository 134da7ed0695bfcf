"""
conftest.py - Shared pytest fixtures for the Rateboard backend test suite.

No database server is required (test_finance_persistence.py runs the real
FinanceEngine on in-memory SQLite). Engine tests are pure unit tests; API
tests run the FastAPI app through TestClient with ``app.dependency_overrides`` swapping in:

  - ``FakeFinanceEngine``: the real FinanceEngine with its storage methods
    backed by dicts, so payload building and routing are exercised as-is.
  - ``FakeSession``: just enough of AsyncSession for the auth routes.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
from datetime import datetime, timedelta, timezone
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

# The limiter is shared by every request in the session; test_middleware.py
# exercises it on its own app.
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "text")

from app.models.orm_models import Company, Job, OverheadInput, PricingMatrix, User, gen_uuid  # noqa: E402
from app.services.finance_engine import FinanceEngine  # noqa: E402


# ---------------------------------------------------------------------------
# Sample inputs
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def overhead_inputs():
    """
    Two-truck shop with a technician and a helper.

    Overhead 100,000 → revenue target 200,000 over 2,000 hours = 100.00/h,
    tech 60,000 / 1,000 = 60.00/h, helper 30,000 / 1,000 = 30.00/h,
    final rate 190.00/h.
    """
    return {
        "owner_salary": 50000,
        "office_staff_1": 30000,
        "fuel": 10000,
        "liability_insurance": 5000,
        "shop_rent": 5000,
        "highest_tech_salary": 60000,
        "helper_salary": 30000,
        "num_trucks": 2,
        "working_days_per_year": 125,
        "avg_hours_per_day": 8,
        "total_revenue_last_year": 400000,
    }


@pytest.fixture(scope="session")
def fifty_dollar_overhead():
    """Overhead 25,000 over 1,000 hours, no technicians → 50.00/h."""
    return {
        "owner_salary": 25000,
        "num_trucks": 1,
        "working_days_per_year": 125,
        "avg_hours_per_day": 8,
    }


@pytest.fixture
def service_item():
    """100.00 of material at 25 % markup plus 2 labor hours."""
    return {
        "name": "AC tune-up",
        "category": "hvac",
        "description": "Seasonal maintenance",
        "material_cost": 100,
        "material_markup_pct": 25,
        "labor_hours": 2,
    }


@pytest.fixture
def line_item(service_item):
    """The same work as ``service_item``, three times over on a job."""
    return {**service_item, "quantity": 3}


# ---------------------------------------------------------------------------
# In-memory fakes
# ---------------------------------------------------------------------------

class FakeFinanceEngine(FinanceEngine):
    """FinanceEngine whose persistence lives in dicts instead of PostgreSQL."""

    def __init__(self):
        super().__init__(db=None)
        self.overheads = {}
        self.matrices = {}
        self.jobs = {}
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def get_overhead(self, user_id):
        return self.overheads.get(user_id)

    async def save_overhead(self, user, data):
        record = self.overheads.get(user.id) or OverheadInput(id=gen_uuid(), user_id=user.id)
        record.company_id = user.company_id
        for name, value in data.items():
            setattr(record, name, value)
        record.updated_at = self._tick()
        self.overheads[user.id] = record
        return record

    async def get_pricing_matrix(self, user_id):
        return self.matrices.get(user_id)

    async def save_pricing_matrix(self, user, services, default_markup_pct):
        matrix = self.matrices.get(user.id) or PricingMatrix(id=gen_uuid(), user_id=user.id)
        matrix.company_id = user.company_id
        matrix.services = services
        matrix.default_markup_pct = default_markup_pct
        matrix.updated_at = self._tick()
        self.matrices[user.id] = matrix
        return matrix

    async def create_job(self, user, data):
        now = self._tick()
        job = Job(id=gen_uuid(), user_id=user.id, company_id=user.company_id,
                  created_at=now, updated_at=now, **data)
        self.jobs[job.id] = job
        return job

    async def list_jobs(self, company_id):
        jobs = [j for j in self.jobs.values() if j.company_id == company_id]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    async def get_job(self, job_id, company_id):
        job = self.jobs.get(job_id)
        if job and job.company_id == company_id:
            return job
        return None

    async def update_job(self, job, data):
        for name, value in data.items():
            setattr(job, name, value)
        job.updated_at = self._tick()
        return job

    async def delete_job(self, job):
        self.jobs.pop(job.id, None)


class _FakeResult:
    def __init__(self, row):
        self._row = row

    def scalar_one_or_none(self):
        return self._row


class FakeSession:
    """
    Stand-in for AsyncSession covering what the auth routes and
    get_current_user do: look a user up by id or email, add, flush, get.
    """

    def __init__(self, users=(), companies=()):
        self.users = list(users)
        self.companies = {c.id: c for c in companies}
        self._pending = []

    async def execute(self, stmt):
        from sqlalchemy.dialects import postgresql
        wanted = set(stmt.compile(dialect=postgresql.dialect()).params.values())
        for user in self.users:
            if user.id in wanted or user.email in wanted:
                return _FakeResult(user)
        return _FakeResult(None)

    def add(self, obj):
        self._pending.append(obj)

    async def flush(self):
        for obj in self._pending:
            if obj.id is None:
                obj.id = gen_uuid()
            if isinstance(obj, Company):
                self.companies[obj.id] = obj
            elif isinstance(obj, User):
                self.users.append(obj)
        self._pending = []

    async def get(self, model, ident):
        if model is Company:
            return self.companies.get(ident)
        return None

    async def commit(self):
        pass

    async def rollback(self):
        pass

    async def close(self):
        pass


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def company():
    return Company(id="company-1", name="Cool Air LLC")


@pytest.fixture(scope="session")
def owner_password_hash():
    from app.api.auth_routes import pwd_context
    return pwd_context.hash("correct-horse")


@pytest.fixture
def owner(company, owner_password_hash):
    return User(
        id="user-1",
        company_id=company.id,
        name="Pat Owner",
        email="pat@example.com",
        hashed_password=owner_password_hash,
        role="owner",
        is_active=True,
    )


@pytest.fixture
def fake_finance():
    return FakeFinanceEngine()


@pytest.fixture
def fake_session(owner, company):
    return FakeSession(users=[owner], companies=[company])


@pytest.fixture
def client(owner, fake_finance):
    """Authenticated as ``owner``; finance storage in memory."""
    from fastapi.testclient import TestClient
    from app.main import app
    from app.api.deps import get_current_user, get_finance_engine

    app.dependency_overrides[get_current_user] = lambda: owner
    app.dependency_overrides[get_finance_engine] = lambda: fake_finance
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client(fake_session, fake_finance):
    """No auth override: requests go through get_current_user against FakeSession."""
    from fastapi.testclient import TestClient
    from app.main import app
    from app.db import get_db
    from app.api.deps import get_finance_engine

    async def _get_db():
        yield fake_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_finance_engine] = lambda: fake_finance
    yield TestClient(app)
    app.dependency_overrides.clear()
