"""ORM Models for Rateboard - SQLAlchemy 2.0"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    String, Text, Boolean, Integer, Numeric, DateTime,
    ForeignKey, Index
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from app.db import Base


def gen_uuid():
    return str(uuid.uuid4())


def _money(default: str = "0.00"):
    return mapped_column(Numeric(14, 2), nullable=False, default=Decimal(default))


# ── COMPANIES ────────────────────────────────────────────────────────────────
class Company(Base):
    __tablename__ = "companies"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    users: Mapped[list["User"]] = relationship("User", back_populates="company")


# ── AUTH ──────────────────────────────────────────────────────────────────────
class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    company_id: Mapped[Optional[str]] = mapped_column(UUID(as_uuid=False), ForeignKey("companies.id"))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="owner")  # owner | admin | tech
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    company: Mapped[Optional["Company"]] = relationship("Company", back_populates="users")


# ── OVERHEAD INPUTS ───────────────────────────────────────────────────────────
class OverheadInput(Base):
    """
    One row per user. Saved wholesale on every POST /api/overhead/save.
    Calculated figures are never stored here; they are derived on read.
    """
    __tablename__ = "overhead_inputs"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("users.id"), unique=True, nullable=False)
    company_id: Mapped[Optional[str]] = mapped_column(UUID(as_uuid=False), ForeignKey("companies.id"))
    # Personnel
    owner_salary: Mapped[Decimal] = _money()
    office_staff_1: Mapped[Decimal] = _money()
    office_staff_2: Mapped[Decimal] = _money()
    office_staff_3: Mapped[Decimal] = _money()
    # Vehicle & equipment
    fuel: Mapped[Decimal] = _money()
    vehicle_maintenance: Mapped[Decimal] = _money()
    truck_1: Mapped[Decimal] = _money()
    truck_2: Mapped[Decimal] = _money()
    truck_3: Mapped[Decimal] = _money()
    # Insurance & financial
    loan_payments: Mapped[Decimal] = _money()
    workers_comp: Mapped[Decimal] = _money()
    liability_insurance: Mapped[Decimal] = _money()
    merchant_fees: Mapped[Decimal] = _money()
    auto_insurance: Mapped[Decimal] = _money()
    # Facilities & operations
    shop_rent: Mapped[Decimal] = _money()
    cellular: Mapped[Decimal] = _money()
    accounting: Mapped[Decimal] = _money()
    software_subs: Mapped[Decimal] = _money()
    # Growth & maintenance
    marketing: Mapped[Decimal] = _money()
    training: Mapped[Decimal] = _money()
    uniforms: Mapped[Decimal] = _money()
    tools: Mapped[Decimal] = _money()
    payroll_processing: Mapped[Decimal] = _money()
    licenses: Mapped[Decimal] = _money()
    misc: Mapped[Decimal] = _money()
    # Tech salaries (not included in overhead sum for hourly rate calc)
    highest_tech_salary: Mapped[Decimal] = _money()
    helper_salary: Mapped[Decimal] = _money()
    # Operational inputs
    num_trucks: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    working_days_per_year: Mapped[int] = mapped_column(Integer, nullable=False, default=125)
    avg_hours_per_day: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("8"))
    # For overhead % calculation
    total_revenue_last_year: Mapped[Decimal] = _money()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Fetch updated_at with the UPDATE so it is readable straight after a flush
    __mapper_args__ = {"eager_defaults": True}


# ── PRICING MATRIX ────────────────────────────────────────────────────────────
class PricingMatrix(Base):
    __tablename__ = "pricing_matrices"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("users.id"), unique=True, nullable=False)
    company_id: Mapped[Optional[str]] = mapped_column(UUID(as_uuid=False), ForeignKey("companies.id"))
    # [{name, category, description, material_cost, material_markup_pct, labor_hours, hourly_rate_override}]
    services: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    default_markup_pct: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("25"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"eager_defaults": True}


# ── JOBS ──────────────────────────────────────────────────────────────────────
class Job(Base):
    __tablename__ = "jobs"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=False)
    company_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("companies.id"), nullable=False)
    job_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(200), default="")
    # draft → sent → accepted → completed | cancelled
    status: Mapped[str] = mapped_column(String(20), default="draft")
    # Same item shape as PricingMatrix.services plus quantity
    line_items: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("ix_jobs_company_created", "company_id", "created_at"),)
    __mapper_args__ = {"eager_defaults": True}
