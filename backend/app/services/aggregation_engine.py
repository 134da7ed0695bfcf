"""
aggregation_engine.py - Collection-level totals for a pricing matrix or a job.

One deterministic pass over the already-priced items, summing the cent-level
revenue/cost/profit figures each result exposes.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable

from app.services.decimal_utils import (
    HUNDRED,
    ZERO,
    format_money,
    round_to,
    round_to_cents,
    safe_divide,
)
from app.services.finance_config import TOTALS_MARGIN_PLACES
from app.services.pricing_engine import PricingResult


@dataclass(frozen=True)
class Totals:
    total_cost: Decimal
    total_revenue: Decimal
    total_profit: Decimal
    total_material_price: Decimal
    total_labor_price: Decimal
    total_labor_hours: Decimal
    overall_margin_pct: Decimal
    item_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_materials": format_money(self.total_cost),
            "total_revenue": format_money(self.total_revenue),
            "total_profit": format_money(self.total_profit),
            "total_material_price": format_money(self.total_material_price),
            "total_labor_price": format_money(self.total_labor_price),
            "total_labor_hours": format_money(self.total_labor_hours),
            "overall_margin_pct": format_money(self.overall_margin_pct),
            "item_count": self.item_count,
        }


def aggregate(results: Iterable[PricingResult]) -> Totals:
    """
    Fold priced items into totals.

    Material and labor price are per unit on each result, so they are
    extended by quantity where the item carries one.
    """
    cost = revenue = profit = material_price = labor_price = labor_hours = ZERO
    count = 0
    for result in results:
        qty = Decimal(getattr(result, "quantity", 1))
        cost += result.cost
        revenue += result.revenue
        profit += result.profit
        material_price += result.material_price * qty
        labor_price += result.labor_price * qty
        labor_hours += result.labor_hours
        count += 1

    if revenue.is_zero():
        overall_margin = round_to(ZERO, TOTALS_MARGIN_PLACES)
    else:
        overall_margin = round_to(safe_divide(profit, revenue) * HUNDRED, TOTALS_MARGIN_PLACES)

    return Totals(
        total_cost=round_to_cents(cost),
        total_revenue=round_to_cents(revenue),
        total_profit=round_to_cents(profit),
        total_material_price=round_to_cents(material_price),
        total_labor_price=round_to_cents(labor_price),
        total_labor_hours=round_to_cents(labor_hours),
        overall_margin_pct=overall_margin,
        item_count=count,
    )
