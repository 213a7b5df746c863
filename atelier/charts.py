"""
Chart-ready views derived from enriched sales.

Every view is a pure function of the sales it is given and returns None
when there is nothing to plot, so callers can show an empty state instead
of a chart with a single zero point.

Positive prices count as revenue, negative prices as refunds (tracked as
absolute amounts).
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence

from atelier.config import config
from atelier.models import (
    DailyPoint,
    EnrichedSale,
    MonthlyPoint,
    RankedRevenue,
    WeekdayPoint,
)
from atelier.observability import Timer, get_logger

logger = get_logger(__name__)


class _Split(NamedTuple):
    """A sale with its price split into revenue and refund parts."""
    sale: EnrichedSale
    revenue: float
    refund: float


def _split(sales: Iterable[EnrichedSale]) -> List[_Split]:
    splits = []
    for sale in sales:
        if sale.sale_price > 0:
            splits.append(_Split(sale, sale.sale_price, 0.0))
        else:
            splits.append(_Split(sale, 0.0, abs(sale.sale_price)))
    return splits


def refund_rate(refunds: float, revenue: float) -> float:
    """Refunds as a percentage of gross revenue (one decimal); 0 without revenue."""
    if revenue <= 0:
        return 0.0
    return round(refunds / revenue * 100, 1)


def _day_label(day: date) -> str:
    return f"{day:%b} {day.day}"


def _month_label(month_key: str) -> str:
    year, month = month_key.split("-")
    return f"{date(int(year), int(month), 1):%b %Y}"


def filter_by_date_range(
    sales: Sequence[EnrichedSale],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Sequence[EnrichedSale]:
    """Keep sales dated within [start, end]; either bound may be open."""
    if start is None and end is None:
        return sales
    return [
        sale for sale in sales
        if (start is None or sale.sale_date >= start)
        and (end is None or sale.sale_date <= end)
    ]


# ─── Daily trend ──────────────────────────────────────────────────────────────

def _daily(
    splits: List[_Split],
    start: Optional[date],
    end: Optional[date],
    fill_gaps: bool,
) -> Optional[List[DailyPoint]]:
    if not splits:
        return None

    buckets: Dict[date, DailyPoint] = {}
    for item in splits:
        day = item.sale.sale_date
        point = buckets.get(day)
        if point is None:
            point = buckets[day] = DailyPoint(date=day, label=_day_label(day))
        point.revenue += item.revenue
        point.refunds += item.refund
        if item.revenue > 0:
            point.count += 1

    if fill_gaps:
        first = start or min(buckets)
        last = end or max(buckets)
        span = (last - first).days + 1
        if span > config.charts.max_gap_fill_days:
            logger.warning(
                f"Skipping gap fill: {span} days exceeds {config.charts.max_gap_fill_days}",
                extra={"start": first.isoformat(), "end": last.isoformat()},
            )
        else:
            for offset in range(span):
                day = first + timedelta(days=offset)
                if day not in buckets:
                    buckets[day] = DailyPoint(date=day, label=_day_label(day))

    return [buckets[day] for day in sorted(buckets)]


def daily_trend(
    sales: Sequence[EnrichedSale],
    start: Optional[date] = None,
    end: Optional[date] = None,
    fill_gaps: bool = False,
) -> Optional[List[DailyPoint]]:
    """
    Revenue per calendar day, oldest first.

    Args:
        sales: Enriched sales
        start: First day of the axis when fill_gaps is set
        end: Last day of the axis when fill_gaps is set
        fill_gaps: Synthesize zero points for days without sales so the
            axis is continuous (bounds default to the data's own range).
            Ranges wider than ChartConfig.max_gap_fill_days are left sparse.

    Returns:
        Daily points, or None when there are no sales.
    """
    return _daily(_split(sales), start, end, fill_gaps)


# ─── Weekday totals ───────────────────────────────────────────────────────────

def _weekday_index(day: date) -> int:
    # date.weekday() is Monday=0; charts use Sunday=0
    return (day.weekday() + 1) % 7


def _weekday(splits: List[_Split]) -> Optional[List[WeekdayPoint]]:
    if not splits:
        return None

    points = [
        WeekdayPoint(day_index=idx, day=name)
        for idx, name in enumerate(config.charts.weekday_names)
    ]
    for item in splits:
        point = points[_weekday_index(item.sale.sale_date)]
        point.revenue += item.revenue
        point.refunds += item.refund
        if item.revenue > 0:
            point.count += 1
    return points


def weekday_totals(sales: Sequence[EnrichedSale]) -> Optional[List[WeekdayPoint]]:
    """Revenue summed per weekday: always seven buckets, Sunday first."""
    return _weekday(_split(sales))


# ─── Monthly comparison ───────────────────────────────────────────────────────

def _monthly(splits: List[_Split], window: int) -> Optional[List[MonthlyPoint]]:
    if not splits:
        return None

    buckets: Dict[str, MonthlyPoint] = {}
    for item in splits:
        key = f"{item.sale.sale_date:%Y-%m}"
        point = buckets.get(key)
        if point is None:
            point = buckets[key] = MonthlyPoint(month_key=key, label=_month_label(key))
        point.revenue += item.revenue
        point.refunds += item.refund
        if item.revenue > 0:
            point.count += 1

    recent = [buckets[key] for key in sorted(buckets)][-window:]
    for point in recent:
        point.refund_rate = refund_rate(point.refunds, point.revenue)
    return recent


def monthly_comparison(
    sales: Sequence[EnrichedSale],
    window: Optional[int] = None,
) -> Optional[List[MonthlyPoint]]:
    """
    Revenue, refunds and refund rate per month, oldest first.

    Only the most recent `window` months that have data are kept; recency
    is judged by the months themselves, not by today's date.
    """
    return _monthly(_split(sales), window or config.charts.monthly_window)


# ─── Top categories ───────────────────────────────────────────────────────────

def _ranked(
    splits: List[_Split],
    key_fn: Callable[[EnrichedSale], Optional[str]],
    limit: int,
) -> Optional[List[RankedRevenue]]:
    buckets: Dict[str, RankedRevenue] = {}
    for item in splits:
        name = key_fn(item.sale)
        if name is None:
            continue
        bucket = buckets.get(name)
        if bucket is None:
            bucket = buckets[name] = RankedRevenue(name=name)
        bucket.revenue += item.revenue
        bucket.refunds += item.refund
        if item.revenue > 0:
            bucket.count += 1

    if not buckets:
        return None

    for bucket in buckets.values():
        bucket.refund_rate = refund_rate(bucket.refunds, bucket.revenue)

    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(buckets.values(), key=lambda b: b.revenue, reverse=True)
    return ranked[:limit]


def _instrument_type(sale: EnrichedSale) -> Optional[str]:
    if sale.instrument is None:
        return None
    return sale.instrument.type or config.charts.missing_type_label


def _instrument_maker(sale: EnrichedSale) -> Optional[str]:
    if sale.instrument is None:
        return None
    return sale.instrument.maker or None


def top_instrument_types(
    sales: Sequence[EnrichedSale],
    limit: Optional[int] = None,
) -> Optional[List[RankedRevenue]]:
    """
    Instrument types ranked by revenue.

    Sales without an instrument are left out; instruments with no type are
    grouped under a "missing info" label.
    """
    return _ranked(_split(sales), _instrument_type, limit or config.charts.top_limit)


def top_makers(
    sales: Sequence[EnrichedSale],
    limit: Optional[int] = None,
) -> Optional[List[RankedRevenue]]:
    """Makers ranked by revenue; sales without a known maker are left out."""
    return _ranked(_split(sales), _instrument_maker, limit or config.charts.top_limit)


# ─── Summary ratio ────────────────────────────────────────────────────────────

def overall_refund_rate(sales: Iterable[EnrichedSale]) -> Optional[float]:
    """
    Refund rate across all sales.

    None when there is not a single refund, so the UI hides the figure
    instead of showing 0%.
    """
    splits = _split(sales)
    refunds = sum(item.refund for item in splits)
    if refunds <= 0:
        return None
    revenue = sum(item.revenue for item in splits)
    return refund_rate(refunds, revenue)


# ─── Bundle ───────────────────────────────────────────────────────────────────

@dataclass
class SalesCharts:
    """All chart views for one filtered set of sales."""
    daily: Optional[List[DailyPoint]]
    weekday: Optional[List[WeekdayPoint]]
    monthly: Optional[List[MonthlyPoint]]
    instrument_types: Optional[List[RankedRevenue]]
    makers: Optional[List[RankedRevenue]]
    refund_rate: Optional[float]

    @property
    def has_data(self) -> bool:
        return self.daily is not None

    def to_dict(self):
        def dump(points):
            return [p.to_dict() for p in points] if points is not None else None

        return {
            "daily": dump(self.daily),
            "weekday": dump(self.weekday),
            "monthly": dump(self.monthly),
            "instrumentTypes": dump(self.instrument_types),
            "makers": dump(self.makers),
            "refundRate": self.refund_rate,
        }


def build_sales_charts(
    sales: Sequence[EnrichedSale],
    start: Optional[date] = None,
    end: Optional[date] = None,
    fill_gaps: bool = False,
    top_limit: Optional[int] = None,
    monthly_window: Optional[int] = None,
) -> SalesCharts:
    """
    Compute every chart view from one revenue/refund split.

    Sales outside [start, end] are ignored. Each view matches what its
    standalone function returns for the same input.
    """
    with Timer("build_sales_charts", logger):
        splits = _split(filter_by_date_range(sales, start, end))
        limit = top_limit or config.charts.top_limit
        total_refunds = sum(item.refund for item in splits)

        return SalesCharts(
            daily=_daily(splits, start, end, fill_gaps),
            weekday=_weekday(splits),
            monthly=_monthly(splits, monthly_window or config.charts.monthly_window),
            instrument_types=_ranked(splits, _instrument_type, limit),
            makers=_ranked(splits, _instrument_maker, limit),
            refund_rate=(
                refund_rate(total_refunds, sum(item.revenue for item in splits))
                if total_refunds > 0 else None
            ),
        )
