# Overview: Aggregation engine for daily, monthly, weekly and calendar sales statistics.

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Optional

from flask import current_app

from .. import repository
from ..errors import ValidationError
from ..models import Sale, SaleItem
from ..time_utils import DayLike, as_utc_date, day_bounds, month_bounds, utcnow
from .concurrency import run_with_retry
"""
Aggregation invariants

- Pure reads: nothing here mutates the ledger or the inventory.
- Refunded sales never contribute to any total.
- Every window is a UTC calendar window, half-open: [start 00:00:00Z, next 00:00:00Z).
- Months are 1-based (1 = January).
- Week-of-month is ceil((day + offset) / 7) with offset = weekday of day 1,
  Sunday = 0. Weeks run 1..5 or 1..6 and are local to the month (not ISO).
- Revenue per item is (price_snapshot - cost) * quantity, with cost taken from
  the REVENUE_COST_BASIS setting:
    "current"  -> the product's cost price now; a deleted product earns 0
    "snapshot" -> the cost price captured on the sale item
"""

COST_BASIS_CURRENT = "current"
COST_BASIS_SNAPSHOT = "snapshot"
COST_BASES = {COST_BASIS_CURRENT, COST_BASIS_SNAPSHOT}

CostResolver = Callable[[SaleItem], Optional[int]]


@dataclass
class Totals:
    total_sales_cents: int = 0
    item_count: int = 0
    revenue_cents: int = 0
    sale_count: int = 0

    def add_sale(self, sale: Sale, cost_of: CostResolver) -> None:
        self.total_sales_cents += sale.total_cents
        self.sale_count += 1
        for item in sale.items:
            self.item_count += item.quantity
            self.revenue_cents += item_revenue_cents(item, cost_of)

    def to_dict(self) -> dict:
        return {
            "total_sales_cents": self.total_sales_cents,
            "item_count": self.item_count,
            "revenue_cents": self.revenue_cents,
            "sale_count": self.sale_count,
        }


# =============================================================================
# PURE AGGREGATION
# =============================================================================

def item_revenue_cents(item: SaleItem, cost_of: CostResolver) -> int:
    cost = cost_of(item)
    if cost is None:
        return 0
    return (item.price_snapshot_cents - cost) * item.quantity


def snapshot_cost(item: SaleItem) -> Optional[int]:
    return item.cost_price_snapshot_cents


def current_cost_resolver(costs_by_product_id: dict[str, int]) -> CostResolver:
    def _cost(item: SaleItem) -> Optional[int]:
        return costs_by_product_id.get(item.product_id)
    return _cost


def summarize(sales: Iterable[Sale], cost_of: CostResolver) -> Totals:
    totals = Totals()
    for sale in sales:
        if sale.refunded:
            continue
        totals.add_sale(sale, cost_of)
    return totals


def first_weekday_offset(year: int, month: int) -> int:
    """Weekday of day 1 of the month, Sunday = 0."""
    return (date(year, month, 1).weekday() + 1) % 7


def week_of_month(day: date) -> int:
    offset = first_weekday_offset(day.year, day.month)
    # ceil((day + offset) / 7) in integer arithmetic
    return (day.day + offset + 6) // 7


def weeks_in_month(year: int, month: int) -> int:
    last_day = calendar.monthrange(year, month)[1]
    return week_of_month(date(year, month, last_day))


def bucket_by_week(sales: Iterable[Sale], year: int, month: int, cost_of: CostResolver) -> list[dict]:
    days_in_month = calendar.monthrange(year, month)[1]
    buckets: dict[int, dict] = {}
    for day_num in range(1, days_in_month + 1):
        d = date(year, month, day_num)
        week = week_of_month(d)
        bucket = buckets.setdefault(week, {"week": week, "start_date": d, "end_date": d, "totals": Totals()})
        bucket["end_date"] = d

    for sale in sales:
        if sale.refunded:
            continue
        d = sale.date.date()
        if d.year != year or d.month != month:
            continue
        buckets[week_of_month(d)]["totals"].add_sale(sale, cost_of)

    return [
        {
            "week": b["week"],
            "start_date": b["start_date"].isoformat(),
            "end_date": b["end_date"].isoformat(),
            **b["totals"].to_dict(),
        }
        for b in sorted(buckets.values(), key=lambda b: b["week"])
    ]


def bucket_by_day(sales: Iterable[Sale], year: int, month: int, cost_of: CostResolver) -> list[dict]:
    days_in_month = calendar.monthrange(year, month)[1]
    per_day = {day_num: Totals() for day_num in range(1, days_in_month + 1)}
    for sale in sales:
        if sale.refunded:
            continue
        d = sale.date.date()
        if d.year == year and d.month == month:
            per_day[d.day].add_sale(sale, cost_of)

    rows = []
    for day_num, totals in per_day.items():
        d = date(year, month, day_num)
        rows.append({
            "date": d.isoformat(),
            "weekday": (d.weekday() + 1) % 7,
            "week": week_of_month(d),
            **totals.to_dict(),
        })
    return rows


# =============================================================================
# LEDGER-BACKED QUERIES
# =============================================================================

def _cost_basis() -> str:
    basis = current_app.config.get("REVENUE_COST_BASIS", COST_BASIS_CURRENT)
    if basis not in COST_BASES:
        raise ValueError(f"REVENUE_COST_BASIS must be one of {sorted(COST_BASES)}, got {basis!r}")
    return basis


def _cost_resolver_for(sales: list[Sale]) -> CostResolver:
    if _cost_basis() == COST_BASIS_SNAPSHOT:
        return snapshot_cost
    product_ids = {item.product_id for sale in sales for item in sale.items}
    products = repository.get_products_by_ids(product_ids)
    return current_cost_resolver({pid: p.cost_price_cents for pid, p in products.items()})


def _load_window(start, end) -> tuple[list[Sale], CostResolver]:
    def _op():
        sales = repository.get_sales(start, end, end_exclusive=True, include_refunded=False)
        return sales, _cost_resolver_for(sales)
    return run_with_retry(_op)


def _resolve_day(day: DayLike) -> date:
    try:
        return as_utc_date(day)
    except (TypeError, ValueError):
        raise ValidationError("date must be YYYY-MM-DD or an ISO-8601 datetime", details={"date": str(day)})


def _check_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12", details={"month": month})
    if not 1 <= year <= 9998:
        raise ValidationError("year out of range", details={"year": year})


def daily_stats(day: DayLike) -> dict:
    d = _resolve_day(day)
    start, end = day_bounds(d)
    sales, cost_of = _load_window(start, end)
    return {"date": d.isoformat(), **summarize(sales, cost_of).to_dict()}


def monthly_stats(year: int, month: int) -> dict:
    _check_month(year, month)
    start, end = month_bounds(year, month)
    sales, cost_of = _load_window(start, end)
    return {"year": year, "month": month, **summarize(sales, cost_of).to_dict()}


def weekly_buckets(year: int, month: int) -> dict:
    _check_month(year, month)
    start, end = month_bounds(year, month)
    sales, cost_of = _load_window(start, end)
    return {
        "year": year,
        "month": month,
        "first_weekday_offset": first_weekday_offset(year, month),
        "weeks": bucket_by_week(sales, year, month, cost_of),
    }


def calendar_month(year: int, month: int) -> dict:
    _check_month(year, month)
    start, end = month_bounds(year, month)
    sales, cost_of = _load_window(start, end)
    days = bucket_by_day(sales, year, month, cost_of)
    return {
        "year": year,
        "month": month,
        "first_weekday_offset": first_weekday_offset(year, month),
        "weeks": weeks_in_month(year, month),
        "days": days,
        "totals": summarize(sales, cost_of).to_dict(),
    }


def dashboard_summary(today: DayLike | None = None) -> dict:
    d = _resolve_day(today) if today is not None else utcnow().date()
    limit = current_app.config.get("RECENT_SALES_LIMIT", 5)

    def _op():
        all_sales = repository.get_sales(include_refunded=False)
        start, end = day_bounds(d)
        today_sales = [s for s in all_sales if start <= s.date < end]
        return {
            "date": d.isoformat(),
            "total_sales_cents": sum(s.total_cents for s in all_sales),
            "items_sold_today": sum(s.item_count for s in today_sales),
            "sales_today": len(today_sales),
            "product_count": repository.count_products(),
            "recent_sales": [s.to_dict(include_items=False) for s in repository.get_recent_sales(limit)],
        }

    return run_with_retry(_op)

