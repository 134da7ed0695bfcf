"""
Request schemas for the overhead, pricing matrix and job costing endpoints.

Validation lives here, not in the engine: the engine coerces anything it is
given to a number, these models reject structurally invalid requests first.
"""
import uuid
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.services.finance_config import (
    MAX_DESCRIPTION_LEN,
    MAX_HOURS_PER_DAY,
    MAX_LABOR_HOURS,
    MAX_LINE_ITEMS,
    MAX_MARKUP_PCT,
    MAX_NAME_LEN,
    MAX_NOTES_LEN,
    MAX_QUANTITY,
    MAX_SERVICES,
    MAX_WORKING_DAYS,
)
from app.services.overhead_engine import snake_key

Category = Literal["hvac", "plumbing", "electrical", "general"]
JobStatus = Literal["draft", "sent", "accepted", "completed", "cancelled"]


def _money(description: str = "") -> Any:
    return Field(Decimal("0"), ge=0, decimal_places=2, description=description)


class OverheadSaveRequest(BaseModel):
    """Annual overhead inputs. Accepts snake_case or camelCase keys."""

    # Personnel
    owner_salary: Decimal = _money("Owner salary, annual")
    office_staff_1: Decimal = _money()
    office_staff_2: Decimal = _money()
    office_staff_3: Decimal = _money()
    # Vehicle & equipment
    fuel: Decimal = _money()
    vehicle_maintenance: Decimal = _money()
    truck_1: Decimal = _money("Truck 1 payment, annual")
    truck_2: Decimal = _money()
    truck_3: Decimal = _money()
    # Insurance & financial
    loan_payments: Decimal = _money()
    workers_comp: Decimal = _money()
    liability_insurance: Decimal = _money()
    merchant_fees: Decimal = _money()
    auto_insurance: Decimal = _money()
    # Facilities & operations
    shop_rent: Decimal = _money()
    cellular: Decimal = _money()
    accounting: Decimal = _money()
    software_subs: Decimal = _money()
    # Growth & maintenance
    marketing: Decimal = _money()
    training: Decimal = _money()
    uniforms: Decimal = _money()
    tools: Decimal = _money()
    payroll_processing: Decimal = _money()
    licenses: Decimal = _money()
    misc: Decimal = _money()
    # Technician costs
    highest_tech_salary: Decimal = _money("Highest paid technician, annual")
    helper_salary: Decimal = _money("Helper, annual; 0 when no helper is employed")
    # Operational settings
    num_trucks: int = Field(1, ge=1)
    working_days_per_year: int = Field(125, ge=1, le=MAX_WORKING_DAYS)
    avg_hours_per_day: Decimal = Field(Decimal("8"), ge=1, le=MAX_HOURS_PER_DAY, decimal_places=2)
    total_revenue_last_year: Decimal = _money()

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {snake_key(str(k)): v for k, v in data.items()}
        return data


class _ItemBase(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LEN)
    category: Category = "general"
    description: str = Field("", max_length=MAX_DESCRIPTION_LEN)
    material_cost: Decimal = Field(Decimal("0"), ge=0)
    material_markup_pct: Decimal = Field(Decimal("25"), ge=0, le=MAX_MARKUP_PCT)
    hourly_rate_override: Optional[Decimal] = Field(None, ge=0)

    model_config = {"extra": "ignore"}

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class ServiceItemIn(_ItemBase):
    """One pricing-matrix service. No quantity: a service is priced per job."""

    labor_hours: Decimal = Field(Decimal("1"), ge=0, le=MAX_LABOR_HOURS)


class LineItemIn(_ItemBase):
    """One job-costing line item."""

    labor_hours: Decimal = Field(Decimal("0"), ge=0, le=MAX_LABOR_HOURS)
    quantity: int = Field(1, ge=1, le=MAX_QUANTITY)


class PricingMatrixSaveRequest(BaseModel):
    services: List[ServiceItemIn] = Field(default_factory=list, max_length=MAX_SERVICES)
    default_markup_pct: Decimal = Field(Decimal("25"), ge=0, le=MAX_MARKUP_PCT, decimal_places=2)

    @model_validator(mode="before")
    @classmethod
    def _apply_default_markup(cls, data: Any) -> Any:
        """Services saved without a markup inherit the matrix default."""
        if not isinstance(data, dict):
            return data
        default = data.get("default_markup_pct")
        services = data.get("services")
        if default is None or not isinstance(services, list):
            return data
        patched = []
        for svc in services:
            if isinstance(svc, dict) and svc.get("material_markup_pct") is None:
                svc = {**svc, "material_markup_pct": default}
            patched.append(svc)
        return {**data, "services": patched}


class JobCreateRequest(BaseModel):
    job_name: str = Field(..., min_length=1, max_length=MAX_NAME_LEN)
    customer_name: str = Field("", max_length=MAX_NAME_LEN)
    status: JobStatus = "draft"
    line_items: List[LineItemIn] = Field(default_factory=list, max_length=MAX_LINE_ITEMS)
    notes: str = Field("", max_length=MAX_NOTES_LEN)

    @field_validator("job_name", "customer_name", "notes", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class JobUpdateRequest(BaseModel):
    """Partial update; at least one field must be supplied."""

    job_name: Optional[str] = Field(None, min_length=1, max_length=MAX_NAME_LEN)
    customer_name: Optional[str] = Field(None, max_length=MAX_NAME_LEN)
    status: Optional[JobStatus] = None
    line_items: Optional[List[LineItemIn]] = Field(None, max_length=MAX_LINE_ITEMS)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LEN)

    @model_validator(mode="after")
    def _at_least_one_field(self) -> "JobUpdateRequest":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


def dump_items(items: List[_ItemBase]) -> List[dict]:
    """JSON-safe dicts for a JSONB column (Decimals become strings), each with an id."""
    return [
        {**item.model_dump(mode="json"), "id": item.id or str(uuid.uuid4())}
        for item in items
    ]
