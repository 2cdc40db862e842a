# Overview: Service-layer operations for analytics; aggregates receipts into sales/profit summaries.

from __future__ import annotations

from datetime import date, timedelta

from ..extensions import db
from ..models import Receipt, Shop
from .stock_service import name_key, stock_index
from ..validation import round_cents
from shopdesk.time_utils import get_zone, local_day_bounds, to_local


UNCATEGORIZED = "Uncategorized"
GROUP_BY_OPTIONS = ("day", "month")


class AnalyticsError(Exception):
    """Raised when an analytics window is invalid."""
    pass


def profit_margin(profit_cents: int, sales_cents: int) -> float:
    if not sales_cents:
        return 0.0
    return round(profit_cents / sales_cents * 100, 2)


def _empty_bucket() -> dict:
    return {
        "sales_cents": 0,
        "cost_cents": 0,
        "profit_cents": 0,
        "total_items": 0.0,
        "transaction_count": 0,
    }


def _finish(bucket: dict) -> dict:
    bucket["profit_margin"] = profit_margin(bucket["profit_cents"], bucket["sales_cents"])
    bucket["total_items"] = round(bucket["total_items"], 3)
    return bucket


def receipt_figures(receipt: Receipt) -> tuple[int, int, float]:
    """
    (sales_cents, cost_cents, items) for one receipt, net of returns.

    sales = total - return_total
    cost  = sum(cost_price * (quantity - returned))
    """
    lines = receipt.net_items()
    sales = receipt.total_amount_cents - receipt.return_total_cents
    cost = round_cents(sum((i.get("cost_price_cents") or 0) * i["quantity"] for i in lines))
    items = sum(i["quantity"] for i in lines)
    return sales, cost, items


def _receipts_between(shop_id: int, start, end) -> list[Receipt]:
    return (
        db.session.query(Receipt)
        .filter(Receipt.shop_id == shop_id, Receipt.timestamp >= start, Receipt.timestamp < end)
        .order_by(Receipt.timestamp.asc())
        .all()
    )


def _categories(receipts: list[Receipt], categories_by_name: dict[str, str]) -> dict[str, dict]:
    """Per-category line figures; a line takes the category of the stock item with its name."""
    data: dict[str, dict] = {}
    for receipt in receipts:
        for line in receipt.net_items():
            if line["quantity"] <= 0:
                continue
            category = categories_by_name.get(name_key(line["name"])) or UNCATEGORIZED
            entry = data.setdefault(category, {"sales_cents": 0, "profit_cents": 0, "items": 0.0})
            sales = round_cents(line["price_cents"] * line["quantity"])
            cost = round_cents((line.get("cost_price_cents") or 0) * line["quantity"])
            entry["sales_cents"] += sales
            entry["profit_cents"] += sales - cost
            entry["items"] += line["quantity"]

    for entry in data.values():
        entry["profit_margin"] = profit_margin(entry["profit_cents"], entry["sales_cents"])
        entry["items"] = round(entry["items"], 3)
    return data


def _summarize(shop: Shop, start, end, group_by: str | None = None) -> dict:
    """
    Aggregate receipts in [start, end) (UTC-naive) into totals, category data
    and, optionally, per-day or per-month buckets in the shop's timezone.
    """
    zone = get_zone(shop.timezone)
    receipts = _receipts_between(shop.id, start, end)
    categories_by_name = {key: item.category for key, item in stock_index(shop.id).items()}

    totals = _empty_bucket()
    buckets: dict[str, dict] = {}

    for receipt in receipts:
        sales, cost, items = receipt_figures(receipt)
        targets = [totals]

        if group_by:
            local_day = to_local(receipt.timestamp, zone).date()
            key = local_day.isoformat() if group_by == "day" else local_day.strftime("%Y-%m")
            targets.append(buckets.setdefault(key, _empty_bucket()))

        for bucket in targets:
            bucket["sales_cents"] += sales
            bucket["cost_cents"] += cost
            bucket["profit_cents"] += sales - cost
            bucket["total_items"] += items
            bucket["transaction_count"] += 1

    result = _finish(totals)
    result["category_data"] = _categories(receipts, categories_by_name)
    result["timezone"] = zone.key

    if group_by:
        label = "date" if group_by == "day" else "month"
        result["daily_data" if group_by == "day" else "monthly_data"] = [
            {label: key, **_finish(bucket)}
            for key, bucket in sorted(buckets.items())
            if bucket["sales_cents"] or bucket["transaction_count"]
        ]

    return result


def _window(shop: Shop, first_day: date, last_day: date):
    zone = get_zone(shop.timezone)
    try:
        start, _ = local_day_bounds(first_day, zone)
        _, end = local_day_bounds(last_day, zone)
    except OverflowError:
        raise AnalyticsError("date is outside the supported range")
    return start, end


def _month_end(day: date) -> date:
    following = date(day.year + (day.month == 12), day.month % 12 + 1, 1)
    return following - timedelta(days=1)


def daily(shop: Shop, day: date) -> dict:
    start, end = _window(shop, day, day)
    result = _summarize(shop, start, end)
    result["date"] = day.isoformat()
    return result


def monthly(shop: Shop, day: date) -> dict:
    first = day.replace(day=1)
    start, end = _window(shop, first, _month_end(first))
    result = _summarize(shop, start, end, group_by="day")
    result["month"] = first.strftime("%Y-%m")
    return result


def yearly(shop: Shop, day: date) -> dict:
    start, end = _window(shop, date(day.year, 1, 1), date(day.year, 12, 31))
    result = _summarize(shop, start, end, group_by="month")
    result["year"] = day.year
    return result


def range_summary(shop: Shop, start_day: date, end_day: date, group_by: str = "day") -> dict:
    """Inclusive local-date range."""
    if group_by not in GROUP_BY_OPTIONS:
        raise AnalyticsError(f"group_by must be one of: {', '.join(GROUP_BY_OPTIONS)}")
    if end_day < start_day:
        raise AnalyticsError("end date must not be before start date")

    start, end = _window(shop, start_day, end_day)
    result = _summarize(shop, start, end, group_by=group_by)
    result["start_date"] = start_day.isoformat()
    result["end_date"] = end_day.isoformat()
    return result
