"""
overhead_engine.py - Break-even billable hourly rate from annual overhead.

Covers:
  - Total annual overhead (25 line items, technician salaries excluded)
  - Billable hour capacity (fleet-wide and per truck)
  - Revenue target at the fixed 50 % overhead-to-revenue policy
  - Overhead, technician and helper hourly components
  - Final billable hourly rate and the revenue targets derived from it
  - Overhead as a percentage of last year's revenue

Pure functions only: no DB access, no logging above DEBUG, never raises on
bad numeric input (see decimal_utils).
"""

import logging
import re
from dataclasses import asdict, dataclass, fields
from decimal import Decimal
from typing import Any, Dict, Mapping, Union

from app.services.decimal_utils import (
    ZERO,
    format_money,
    round_to_cents,
    safe_divide,
    sum_values,
    to_decimal,
    to_percentage,
)
from app.services.finance_config import (
    DEFAULT_AVG_HOURS_PER_DAY,
    DEFAULT_NUM_TRUCKS,
    DEFAULT_WORKING_DAYS_PER_YEAR,
    OVERHEAD_FIELDS,
    TARGET_MARGIN,
)

logger = logging.getLogger("rateboard-overhead")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z0-9])")


def snake_key(key: str) -> str:
    """officeStaff1 -> office_staff_1, numTrucks -> num_trucks; snake_case passes through."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _non_negative(value: Any) -> Decimal:
    d = to_decimal(value)
    return d if d > ZERO else ZERO


@dataclass(frozen=True)
class OverheadInputs:
    """Annual costs and operational settings for one owner. All money fields default to 0."""

    # Personnel
    owner_salary: Decimal = ZERO
    office_staff_1: Decimal = ZERO
    office_staff_2: Decimal = ZERO
    office_staff_3: Decimal = ZERO
    # Vehicle & equipment
    fuel: Decimal = ZERO
    vehicle_maintenance: Decimal = ZERO
    truck_1: Decimal = ZERO
    truck_2: Decimal = ZERO
    truck_3: Decimal = ZERO
    # Insurance & financial
    loan_payments: Decimal = ZERO
    workers_comp: Decimal = ZERO
    liability_insurance: Decimal = ZERO
    merchant_fees: Decimal = ZERO
    auto_insurance: Decimal = ZERO
    # Facilities & operations
    shop_rent: Decimal = ZERO
    cellular: Decimal = ZERO
    accounting: Decimal = ZERO
    software_subs: Decimal = ZERO
    # Growth & maintenance
    marketing: Decimal = ZERO
    training: Decimal = ZERO
    uniforms: Decimal = ZERO
    tools: Decimal = ZERO
    payroll_processing: Decimal = ZERO
    licenses: Decimal = ZERO
    misc: Decimal = ZERO
    # Technician costs (outside the overhead sum)
    highest_tech_salary: Decimal = ZERO
    helper_salary: Decimal = ZERO
    # Operational settings
    num_trucks: Decimal = Decimal(DEFAULT_NUM_TRUCKS)
    working_days_per_year: Decimal = Decimal(DEFAULT_WORKING_DAYS_PER_YEAR)
    avg_hours_per_day: Decimal = Decimal(DEFAULT_AVG_HOURS_PER_DAY)
    # Benchmark
    total_revenue_last_year: Decimal = ZERO

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OverheadInputs":
        """
        Build from a request body, ORM row dict or any mapping.

        Keys may be snake_case or camelCase; unknown keys are ignored. A key
        that is absent keeps its default, a key that is present but
        non-numeric (None, "", "abc") becomes 0.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Decimal] = {}
        for raw_key, raw_value in (data or {}).items():
            key = snake_key(str(raw_key))
            if key in known:
                values[key] = _non_negative(raw_value)
        return cls(**values)

    def overhead_line_items(self) -> Dict[str, Decimal]:
        return {name: getattr(self, name) for name in OVERHEAD_FIELDS}


@dataclass(frozen=True)
class OverheadResults:
    """Derived overhead figures. Never persisted; recomputed on every read."""

    total_annual_overhead: Decimal
    total_billable_hours: Decimal
    billable_hours_per_truck: Decimal
    revenue_target: Decimal
    overhead_hourly_rate: Decimal
    tech_hourly_addon: Decimal
    helper_hourly_addon: Decimal
    final_billable_hourly_rate: Decimal
    est_yearly_gross_revenue: Decimal
    annual_per_truck: Decimal
    daily_revenue_total: Decimal
    daily_revenue_per_truck: Decimal
    overhead_percent_of_last_year: Decimal

    def to_dict(self) -> Dict[str, str]:
        """Every figure as a fixed two-decimal string."""
        return {name: format_money(value) for name, value in asdict(self).items()}


def _coerce_inputs(inputs: Union[OverheadInputs, Mapping[str, Any], None]) -> OverheadInputs:
    if isinstance(inputs, OverheadInputs):
        return inputs
    return OverheadInputs.from_mapping(inputs or {})


def compute_overhead_results(
    inputs: Union[OverheadInputs, Mapping[str, Any], None],
) -> OverheadResults:
    """
    Turn one owner's overhead inputs into the billable hourly rate.

    Steps run strictly in dependency order; each uses only earlier results.
    Intermediate figures stay unrounded; only the final hourly rate and the
    gross revenue built on it are rounded before further use.
    """
    src = _coerce_inputs(inputs)

    num_trucks = _non_negative(src.num_trucks)
    working_days = _non_negative(src.working_days_per_year)
    avg_hours = _non_negative(src.avg_hours_per_day)
    highest_tech_salary = _non_negative(src.highest_tech_salary)
    helper_salary = _non_negative(src.helper_salary)
    revenue_last_year = _non_negative(src.total_revenue_last_year)

    # 1. Total annual overhead
    total_annual_overhead = sum_values(src.overhead_line_items().values())

    # 2-3. Billable hour capacity
    total_billable_hours = num_trucks * working_days * avg_hours
    billable_hours_per_truck = working_days * avg_hours

    # 4. Revenue target; zero capacity means nothing to recover it over
    if total_billable_hours.is_zero():
        revenue_target = ZERO
    else:
        revenue_target = safe_divide(total_annual_overhead, TARGET_MARGIN)

    # 5. Overhead hourly rate
    overhead_hourly_rate = safe_divide(revenue_target, total_billable_hours)

    # 6. Technician add-on; no fleet capacity means no billable hours at all
    if total_billable_hours.is_zero():
        tech_hourly_addon = ZERO
    else:
        tech_hourly_addon = safe_divide(highest_tech_salary, billable_hours_per_truck)

    # 7. Helper add-on, skipped outright when no helper is employed
    if helper_salary > ZERO and not total_billable_hours.is_zero():
        helper_hourly_addon = safe_divide(helper_salary, billable_hours_per_truck)
    else:
        helper_hourly_addon = ZERO

    # 8. The hourly rate
    final_billable_hourly_rate = round_to_cents(
        overhead_hourly_rate + tech_hourly_addon + helper_hourly_addon
    )

    # 9-12. Revenue targets built on the rounded rate
    est_yearly_gross_revenue = round_to_cents(final_billable_hourly_rate * total_billable_hours)
    annual_per_truck = round_to_cents(safe_divide(est_yearly_gross_revenue, num_trucks))
    daily_revenue_total = round_to_cents(safe_divide(est_yearly_gross_revenue, working_days))
    daily_revenue_per_truck = round_to_cents(safe_divide(daily_revenue_total, num_trucks))

    # 13. Benchmark against last year's revenue
    if revenue_last_year.is_zero():
        overhead_percent_of_last_year = ZERO
    else:
        overhead_percent_of_last_year = to_percentage(total_annual_overhead, revenue_last_year)

    results = OverheadResults(
        total_annual_overhead=round_to_cents(total_annual_overhead),
        total_billable_hours=round_to_cents(total_billable_hours),
        billable_hours_per_truck=round_to_cents(billable_hours_per_truck),
        revenue_target=round_to_cents(revenue_target),
        overhead_hourly_rate=round_to_cents(overhead_hourly_rate),
        tech_hourly_addon=round_to_cents(tech_hourly_addon),
        helper_hourly_addon=round_to_cents(helper_hourly_addon),
        final_billable_hourly_rate=final_billable_hourly_rate,
        est_yearly_gross_revenue=est_yearly_gross_revenue,
        annual_per_truck=annual_per_truck,
        daily_revenue_total=daily_revenue_total,
        daily_revenue_per_truck=daily_revenue_per_truck,
        overhead_percent_of_last_year=round_to_cents(overhead_percent_of_last_year),
    )
    logger.debug(
        "overhead computed",
        extra={"hourly_rate": str(final_billable_hourly_rate)},
    )
    return results
