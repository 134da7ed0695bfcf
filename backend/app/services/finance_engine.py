from typing import Any, Dict, List, Optional
from decimal import Decimal
import logging

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.orm_models import Job, OverheadInput, PricingMatrix, User
from app.services.aggregation_engine import aggregate
from app.services.decimal_utils import ZERO, format_money, round_to_cents
from app.services.finance_config import OVERHEAD_FIELDS, TECH_SALARY_FIELDS
from app.services.overhead_engine import compute_overhead_results
from app.services.pricing_engine import price_items

logger = logging.getLogger("rateboard-api")

_MONEY_INPUT_FIELDS = OVERHEAD_FIELDS + TECH_SALARY_FIELDS + ("total_revenue_last_year",)
_OPERATIONAL_FIELDS = ("num_trucks", "working_days_per_year", "avg_hours_per_day")


class FinanceEngine:
    """
    Service layer between the routes and the pure calculation engines.

    Loads and saves the owner's records, and wires the hourly rate from the
    overhead record into pricing matrix and job costing. Nothing calculated
    is ever written back; every read recomputes from the stored inputs.
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Overhead ──────────────────────────────────────────────────────────────

    async def get_overhead(self, user_id: str) -> Optional[OverheadInput]:
        result = await self.db.execute(
            select(OverheadInput).where(OverheadInput.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_hourly_rate(self, user_id: str) -> Decimal:
        """
        The owner's current final billable hourly rate.
        Returns 0.00 when no overhead has been saved yet (never an error).
        """
        record = await self.get_overhead(user_id)
        if not record:
            logger.info("No overhead record for user; hourly rate defaults to 0.00",
                        extra={"user_id": user_id})
            return round_to_cents(ZERO)
        return compute_overhead_results(overhead_inputs_dict(record)).final_billable_hourly_rate

    async def save_overhead(self, user: User, data: Dict[str, Any]) -> OverheadInput:
        """Upsert by owner: the whole record is overwritten on every save."""
        record = await self.get_overhead(user.id)
        if not record:
            record = OverheadInput(user_id=user.id)
            self.db.add(record)
        record.company_id = user.company_id
        for name in _MONEY_INPUT_FIELDS + _OPERATIONAL_FIELDS:
            if name in data:
                setattr(record, name, data[name])
        await self.db.flush()
        logger.info("Overhead saved", extra={"user_id": user.id})
        return record

    # ── Pricing matrix ────────────────────────────────────────────────────────

    async def get_pricing_matrix(self, user_id: str) -> Optional[PricingMatrix]:
        result = await self.db.execute(
            select(PricingMatrix).where(PricingMatrix.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def save_pricing_matrix(
        self, user: User, services: List[Dict[str, Any]], default_markup_pct: Decimal
    ) -> PricingMatrix:
        matrix = await self.get_pricing_matrix(user.id)
        if not matrix:
            matrix = PricingMatrix(user_id=user.id)
            self.db.add(matrix)
        matrix.company_id = user.company_id
        matrix.services = services
        matrix.default_markup_pct = default_markup_pct
        await self.db.flush()
        logger.info("Pricing matrix saved", extra={"user_id": user.id})
        return matrix

    # ── Jobs ──────────────────────────────────────────────────────────────────

    async def create_job(self, user: User, data: Dict[str, Any]) -> Job:
        job = Job(user_id=user.id, company_id=user.company_id, **data)
        self.db.add(job)
        await self.db.flush()
        logger.info("Job created", extra={"user_id": user.id})
        return job

    async def list_jobs(self, company_id: str) -> List[Job]:
        result = await self.db.execute(
            select(Job).where(Job.company_id == company_id).order_by(desc(Job.created_at))
        )
        return list(result.scalars().all())

    async def get_job(self, job_id: str, company_id: str) -> Optional[Job]:
        result = await self.db.execute(
            select(Job).where(Job.id == job_id, Job.company_id == company_id)
        )
        return result.scalar_one_or_none()

    async def update_job(self, job: Job, data: Dict[str, Any]) -> Job:
        for name, value in data.items():
            setattr(job, name, value)
        await self.db.flush()
        return job

    async def delete_job(self, job: Job) -> None:
        await self.db.delete(job)
        await self.db.flush()


async def get_hourly_rate(db: AsyncSession, user_id: str) -> Decimal:
    """Final billable hourly rate for ``user_id``, 0.00 when no overhead is saved."""
    return await FinanceEngine(db).get_hourly_rate(user_id)


# ── Payload builders (pure) ──────────────────────────────────────────────────

def overhead_inputs_dict(record: OverheadInput) -> Dict[str, Any]:
    return {name: getattr(record, name) for name in _MONEY_INPUT_FIELDS + _OPERATIONAL_FIELDS}


def serialize_overhead_inputs(record: OverheadInput) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"id": record.id}
    for name in _MONEY_INPUT_FIELDS:
        payload[name] = format_money(getattr(record, name))
    payload["num_trucks"] = record.num_trucks
    payload["working_days_per_year"] = record.working_days_per_year
    payload["avg_hours_per_day"] = format_money(record.avg_hours_per_day)
    payload["updated_at"] = record.updated_at.isoformat() if record.updated_at else None
    return payload


def overhead_payload(record: Optional[OverheadInput]) -> Dict[str, Any]:
    if not record:
        return {"inputs": None, "calculations": None}
    results = compute_overhead_results(overhead_inputs_dict(record))
    return {"inputs": serialize_overhead_inputs(record), "calculations": results.to_dict()}


def pricing_payload(matrix: Optional[PricingMatrix], hourly_rate: Decimal) -> Dict[str, Any]:
    services = (matrix.services or []) if matrix else []
    priced = price_items(services, hourly_rate, with_quantity=False)
    calculations = [
        {"id": svc.get("id"), **result.to_dict()} for svc, result in zip(services, priced)
    ]
    inputs = None
    if matrix:
        inputs = {
            "id": matrix.id,
            "services": services,
            "default_markup_pct": format_money(matrix.default_markup_pct),
            "updated_at": matrix.updated_at.isoformat() if matrix.updated_at else None,
        }
    return {
        "inputs": inputs,
        "calculations": calculations,
        "totals": aggregate(priced).to_dict(),
        "hourly_rate": format_money(hourly_rate),
    }


def serialize_job(job: Job) -> Dict[str, Any]:
    return {
        "id": job.id,
        "job_name": job.job_name,
        "customer_name": job.customer_name or "",
        "status": job.status,
        "line_items": job.line_items or [],
        "notes": job.notes or "",
        "created_at": job.created_at.isoformat() if job.created_at else None,
        "updated_at": job.updated_at.isoformat() if job.updated_at else None,
    }


def job_payload(job: Job, hourly_rate: Decimal) -> Dict[str, Any]:
    line_items = job.line_items or []
    priced = price_items(line_items, hourly_rate, with_quantity=True)
    calculations = [
        {"id": item.get("id"), **result.to_dict()} for item, result in zip(line_items, priced)
    ]
    return {
        "job": serialize_job(job),
        "calculations": calculations,
        "totals": aggregate(priced).to_dict(),
        "hourly_rate": format_money(hourly_rate),
    }
