"""
pricing_engine.py - Per-item pricing shared by the pricing matrix and job costing.

Covers:
  - Hourly rate resolution (per-item override vs. the owner's billable rate)
  - Material price with markup, labor price, unit price
  - Pricing-matrix services: total price, gross profit, margin (2 dp)
  - Job-costing line items: quantity-extended total, cost, profit, margin (1 dp)
  - Item duplication for both collections

Pure functions only. Rounding is applied to exposed figures; the one value
rounded before reuse is the hourly rate, which is billed at cent precision.
"""

import copy
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from app.services.decimal_utils import (
    HUNDRED,
    ZERO,
    format_money,
    round_to,
    round_to_cents,
    safe_divide,
    to_decimal,
)
from app.services.finance_config import (
    COPY_SUFFIX,
    DEFAULT_MARKUP_PCT,
    DEFAULT_QUANTITY,
    ITEM_CATEGORIES,
    LINE_MARGIN_PLACES,
    SERVICE_MARGIN_PLACES,
)

logger = logging.getLogger("rateboard-pricing")

_ONE = Decimal("1")


@dataclass(frozen=True)
class PricingItem:
    """One service or job line item as the engine sees it."""

    name: str = ""
    category: str = "general"
    description: str = ""
    material_cost: Decimal = ZERO
    material_markup_pct: Decimal = DEFAULT_MARKUP_PCT
    labor_hours: Decimal = ZERO
    hourly_rate_override: Optional[Decimal] = None
    quantity: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PricingItem":
        """
        Build from a stored item dict. A missing markup falls back to the
        default; an explicit None override means "use the owner's rate".
        """
        markup = data.get("material_markup_pct")
        override = data.get("hourly_rate_override")
        quantity = data.get("quantity")
        category = data.get("category") or "general"
        return cls(
            name=str(data.get("name") or ""),
            category=category if category in ITEM_CATEGORIES else "general",
            description=str(data.get("description") or ""),
            material_cost=to_decimal(data.get("material_cost")),
            material_markup_pct=DEFAULT_MARKUP_PCT if markup is None else to_decimal(markup),
            labor_hours=to_decimal(data.get("labor_hours")),
            hourly_rate_override=None if override is None else to_decimal(override),
            quantity=None if "quantity" not in data else _coerce_quantity(quantity),
        )


def _coerce_quantity(value: Any) -> int:
    """Whole units, at least one. Fractions truncate; junk falls back to one."""
    qty = int(to_decimal(value))
    return qty if qty >= 1 else DEFAULT_QUANTITY


@dataclass(frozen=True)
class ServicePricing:
    """Pricing-matrix service (no quantity): unit price is the total price."""

    item: PricingItem
    hourly_rate_used: Decimal
    material_price: Decimal
    labor_price: Decimal
    unit_price: Decimal
    total_price: Decimal
    gross_profit: Decimal
    margin_pct: Decimal

    @property
    def revenue(self) -> Decimal:
        return self.total_price

    @property
    def cost(self) -> Decimal:
        return round_to_cents(self.item.material_cost)

    @property
    def profit(self) -> Decimal:
        return self.gross_profit

    @property
    def labor_hours(self) -> Decimal:
        return self.item.labor_hours

    def to_dict(self) -> Dict[str, Any]:
        return {
            **_echo_inputs(self.item),
            "hourly_rate_used": format_money(self.hourly_rate_used),
            "material_price": format_money(self.material_price),
            "labor_price": format_money(self.labor_price),
            "unit_price": format_money(self.unit_price),
            "total_price": format_money(self.total_price),
            "gross_profit": format_money(self.gross_profit),
            "margin_pct": format_money(self.margin_pct),
        }


@dataclass(frozen=True)
class LineItemPricing:
    """Job-costing line item: unit figures extended by quantity."""

    item: PricingItem
    quantity: int
    hourly_rate_used: Decimal
    material_price: Decimal
    labor_price: Decimal
    unit_price: Decimal
    line_total: Decimal
    line_cost: Decimal
    line_profit: Decimal
    line_labor_hours: Decimal
    margin_pct: Decimal

    @property
    def revenue(self) -> Decimal:
        return self.line_total

    @property
    def cost(self) -> Decimal:
        return self.line_cost

    @property
    def profit(self) -> Decimal:
        return self.line_profit

    @property
    def labor_hours(self) -> Decimal:
        return self.line_labor_hours

    def to_dict(self) -> Dict[str, Any]:
        return {
            **_echo_inputs(self.item),
            "quantity": self.quantity,
            "hourly_rate_used": format_money(self.hourly_rate_used),
            "material_price": format_money(self.material_price),
            "labor_price": format_money(self.labor_price),
            "unit_price": format_money(self.unit_price),
            "line_total": format_money(self.line_total),
            "line_cost": format_money(self.line_cost),
            "line_profit": format_money(self.line_profit),
            "line_labor_hours": format_money(self.line_labor_hours),
            # One fractional digit by convention for job margins
            "margin_pct": f"{self.margin_pct:.{LINE_MARGIN_PLACES}f}",
        }


PricingResult = Union[ServicePricing, LineItemPricing]


def _echo_inputs(item: PricingItem) -> Dict[str, Any]:
    return {
        "name": item.name,
        "category": item.category,
        "description": item.description,
        "material_cost": format_money(item.material_cost),
        "material_markup_pct": format_money(item.material_markup_pct),
        "labor_hours": format_money(item.labor_hours),
        "hourly_rate_override": (
            None if item.hourly_rate_override is None else format_money(item.hourly_rate_override)
        ),
    }


def _margin(profit: Decimal, revenue: Decimal, places: int) -> Decimal:
    if revenue.is_zero():
        return round_to(ZERO, places)
    return round_to(safe_divide(profit, revenue) * HUNDRED, places)


def compute_pricing_result(
    item: Union[PricingItem, Mapping[str, Any]],
    fallback_hourly_rate: Any,
    with_quantity: Optional[bool] = None,
) -> PricingResult:
    """
    Price one item against the owner's billable hourly rate.

    ``with_quantity`` selects the job-costing shape; when left as None the
    shape follows the item (a quantity present means a job line item).
    """
    if not isinstance(item, PricingItem):
        item = PricingItem.from_mapping(item or {})
    if with_quantity is None:
        with_quantity = item.quantity is not None

    material_cost = to_decimal(item.material_cost)
    markup_pct = to_decimal(item.material_markup_pct)
    labor_hours = to_decimal(item.labor_hours)

    if item.hourly_rate_override is not None:
        rate = to_decimal(item.hourly_rate_override)
    else:
        rate = to_decimal(fallback_hourly_rate)
    hourly_rate_used = round_to_cents(rate)

    material_price = material_cost * (_ONE + markup_pct / HUNDRED)
    labor_price = labor_hours * hourly_rate_used
    unit_price = material_price + labor_price

    if not with_quantity:
        total_price = unit_price
        gross_profit = total_price - material_cost
        return ServicePricing(
            item=item,
            hourly_rate_used=hourly_rate_used,
            material_price=round_to_cents(material_price),
            labor_price=round_to_cents(labor_price),
            unit_price=round_to_cents(unit_price),
            total_price=round_to_cents(total_price),
            gross_profit=round_to_cents(gross_profit),
            margin_pct=_margin(gross_profit, total_price, SERVICE_MARGIN_PLACES),
        )

    quantity = item.quantity if item.quantity is not None else DEFAULT_QUANTITY
    qty = Decimal(quantity)
    line_total = unit_price * qty
    line_cost = material_cost * qty
    line_profit = line_total - line_cost
    return LineItemPricing(
        item=item,
        quantity=quantity,
        hourly_rate_used=hourly_rate_used,
        material_price=round_to_cents(material_price),
        labor_price=round_to_cents(labor_price),
        unit_price=round_to_cents(unit_price),
        line_total=round_to_cents(line_total),
        line_cost=round_to_cents(line_cost),
        line_profit=round_to_cents(line_profit),
        line_labor_hours=round_to_cents(labor_hours * qty),
        margin_pct=_margin(line_profit, line_total, LINE_MARGIN_PLACES),
    )


def price_items(
    items: Sequence[Union[PricingItem, Mapping[str, Any]]],
    fallback_hourly_rate: Any,
    with_quantity: bool = False,
) -> List[PricingResult]:
    """Price a whole collection against one hourly rate, preserving order."""
    return [compute_pricing_result(item, fallback_hourly_rate, with_quantity) for item in items]


def duplicate_item(items: Sequence[Mapping[str, Any]], index: int) -> List[Dict[str, Any]]:
    """
    Return a new list with a copy of ``items[index]`` inserted right after it.

    The copy gets " (Copy)" appended to its name and loses any stored identity.
    Raises IndexError for an index outside the collection.
    """
    if index < 0 or index >= len(items):
        raise IndexError(f"Item index {index} out of range")
    clone = copy.deepcopy(dict(items[index]))
    clone.pop("id", None)
    clone.pop("_id", None)
    clone["name"] = f"{clone.get('name', '')}{COPY_SUFFIX}"
    result = [dict(existing) for existing in items]
    result.insert(index + 1, clone)
    return result
