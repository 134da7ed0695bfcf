"""
Financial engine configuration - single source of truth for policy constants,
default operational settings and validation limits.

Import from here in engines, schemas and routes rather than hardcoding values.
"""
from __future__ import annotations

from decimal import Decimal

# ── Overhead policy ────────────────────────────────────────────────────────────

# Revenue target = overhead ÷ TARGET_MARGIN (50 % of revenue covers overhead)
TARGET_MARGIN: Decimal = Decimal("0.50")

# Annual overhead line items that sum into total annual overhead.
# Technician salaries are deliberately absent: they feed the hourly add-ons.
OVERHEAD_FIELDS: tuple[str, ...] = (
    # Personnel
    "owner_salary", "office_staff_1", "office_staff_2", "office_staff_3",
    # Vehicle & equipment
    "fuel", "vehicle_maintenance", "truck_1", "truck_2", "truck_3",
    # Insurance & financial
    "loan_payments", "workers_comp", "liability_insurance", "merchant_fees", "auto_insurance",
    # Facilities & operations
    "shop_rent", "cellular", "accounting", "software_subs",
    # Growth & maintenance
    "marketing", "training", "uniforms", "tools", "payroll_processing", "licenses", "misc",
)

TECH_SALARY_FIELDS: tuple[str, ...] = ("highest_tech_salary", "helper_salary")

# Operational defaults applied when a field is absent from the input record
DEFAULT_NUM_TRUCKS: int = 1
DEFAULT_WORKING_DAYS_PER_YEAR: int = 125
DEFAULT_AVG_HOURS_PER_DAY: int = 8

# ── Item pricing ──────────────────────────────────────────────────────────────

DEFAULT_MARKUP_PCT: Decimal = Decimal("25")
DEFAULT_QUANTITY: int = 1
COPY_SUFFIX: str = " (Copy)"

ITEM_CATEGORIES: tuple[str, ...] = ("hvac", "plumbing", "electrical", "general")
JOB_STATUSES: tuple[str, ...] = ("draft", "sent", "accepted", "completed", "cancelled")

# Display precision
SERVICE_MARGIN_PLACES: int = 2      # pricing matrix margin, e.g. 55.56
LINE_MARGIN_PLACES: int = 1         # job costing margin, e.g. 55.6
TOTALS_MARGIN_PLACES: int = 2       # blended margin across a collection

# ── Validation limits (enforced by the API schemas, never by the engine) ─────

MAX_MARKUP_PCT: int = 500
MAX_LABOR_HOURS: int = 1000
MAX_QUANTITY: int = 999
MAX_NAME_LEN: int = 200
MAX_DESCRIPTION_LEN: int = 500
MAX_NOTES_LEN: int = 2000
MAX_SERVICES: int = 200
MAX_LINE_ITEMS: int = 100
MAX_WORKING_DAYS: int = 365
MAX_HOURS_PER_DAY: int = 24
