"""
KPI totals, data-quality warnings, week-over-week alerts, period
comparison and CSV export for the sales page.

Everything here is a pure function of the sales it is given. Functions
that depend on "now" take `today` so callers and tests can pin it.
"""
import csv
import io
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from atelier.charts import filter_by_date_range, overall_refund_rate
from atelier.filters import utc_today
from atelier.models import (
    ClientSalesSummary,
    DataQuality,
    EnrichedSale,
    GrowthDrivers,
    PeriodComparison,
    PeriodGrowth,
    PeriodMetrics,
    Sale,
    SalesAlert,
    SalesTotals,
    SalesTrend,
)

# Below this many sales the charts are flagged as thin
MIN_SALES_FOR_TRENDS = 20

CSV_HEADERS = [
    "Date",
    "Sale ID",
    "Client Name",
    "Client Email",
    "Instrument",
    "Amount",
    "Status",
    "Notes",
]


def calculate_totals(sales: Sequence[EnrichedSale]) -> SalesTotals:
    """
    Headline numbers for the summary cards.

    count includes refunds. avg_ticket averages positive sales only.
    """
    positive = [sale.sale_price for sale in sales if sale.sale_price > 0]
    revenue = sum(positive)
    refund = sum(abs(sale.sale_price) for sale in sales if sale.sale_price < 0)
    avg_ticket = revenue / len(positive) if positive else 0.0

    return SalesTotals(
        revenue=revenue,
        refund=refund,
        avg_ticket=avg_ticket,
        count=len(sales),
        refund_rate=overall_refund_rate(sales),
    )


def check_data_quality(
    sales: Sequence[EnrichedSale],
    total_count: Optional[int] = None,
) -> DataQuality:
    """
    Flag datasets whose charts may mislead.

    Args:
        sales: Sales that were loaded (possibly one page of a larger set)
        total_count: Size of the full result set when sales is a page

    Thresholds are looser for a page than for the full dataset: a page is a
    sample, so outliers need to be 20x the mean instead of 10x.
    """
    positive = [sale for sale in sales if sale.sale_price > 0]

    effective_count = total_count if total_count is not None else len(positive)
    is_full_dataset = total_count is None or len(sales) == total_count

    quality = DataQuality(has_insufficient_data=effective_count < MIN_SALES_FOR_TRENDS)

    if not positive:
        return quality

    avg = sum(sale.sale_price for sale in positive) / len(positive)
    enough_for_outliers = (
        len(positive) >= 10 if is_full_dataset else effective_count >= MIN_SALES_FOR_TRENDS
    )
    if avg > 0 and enough_for_outliers:
        threshold = 10 if is_full_dataset else 20
        quality.has_outliers = any(
            abs(sale.sale_price - avg) > avg * threshold for sale in positive
        )

    dates = sorted({sale.sale_date for sale in positive})
    if len(dates) < 2:
        quality.has_sparse_dates = True
    else:
        days = (dates[-1] - dates[0]).days
        sparse_ratio = 0.03 if is_full_dataset else 0.05
        min_count_for_sparse = 50 if is_full_dataset else 100
        quality.has_sparse_dates = (
            effective_count < min_count_for_sparse
            and days > 0
            and len(dates) / days < sparse_ratio
        )

    return quality


def export_sales_csv(sales: Sequence[EnrichedSale]) -> str:
    """Render sales as CSV text (amounts are absolute; refunds marked in Status)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for sale in sales:
        client = sale.client
        instrument = sale.instrument
        writer.writerow([
            sale.sale_date.isoformat(),
            sale.id,
            (client.full_name or "N/A") if client else "N/A",
            (client.email or "N/A") if client else "N/A",
            (instrument.label or "N/A") if instrument else "N/A",
            f"{abs(sale.sale_price):.2f}",
            "Refunded" if sale.sale_price < 0 else "Paid",
            sale.notes or "",
        ])

    return buffer.getvalue()


# ─── Week-over-week alerts ────────────────────────────────────────────────────

ALERT_WINDOW_DAYS = 7

# Percent thresholds
REVENUE_DROP_WARNING = 15
REVENUE_DROP_ERROR = 30
REVENUE_DROP_HIGH = 50
REFUND_SPIKE_ERROR = 50
REFUND_SPIKE_HIGH = 100
MAKER_REFUND_SPIKE = 100
WEEKDAY_ORDER_DROP = 50

# A maker spike needs this much refunded before and this much more now
MAKER_REFUND_MIN_BASELINE = 200.0
MAKER_REFUND_MIN_DELTA = 200.0

_DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def _currency(amount: float) -> str:
    return f"${amount:,.2f}"


def _percent_change(new: float, old: float) -> float:
    return (new - old) / old * 100


def _alert_windows(
    sales: Sequence[EnrichedSale],
    today: date,
) -> Tuple[List[EnrichedSale], List[EnrichedSale]]:
    """
    Sales in the last seven days and in the seven days before that.

    The recent window starts seven days before `today` and is open-ended;
    the previous window ends the day before it starts.
    """
    recent_start = today - timedelta(days=ALERT_WINDOW_DAYS)
    previous_start = today - timedelta(days=ALERT_WINDOW_DAYS * 2)

    recent, previous = [], []
    for sale in sales:
        if sale.sale_date >= recent_start:
            recent.append(sale)
        elif sale.sale_date >= previous_start:
            previous.append(sale)
    return recent, previous


def _revenue_alert(recent: float, previous: float) -> Optional[SalesAlert]:
    if previous <= 0:
        return None

    drop = -_percent_change(recent, previous)
    if drop > REVENUE_DROP_ERROR:
        return SalesAlert(
            kind="error",
            title="Revenue dropped",
            message=(
                f"Revenue for the last 7 days is down {round(drop)}% on the previous 7 days "
                f"({_currency(recent)} vs {_currency(previous)})."
            ),
            severity="high" if drop > REVENUE_DROP_HIGH else "medium",
        )
    if drop > REVENUE_DROP_WARNING:
        return SalesAlert(
            kind="warning",
            title="Revenue slipping",
            message=f"Revenue for the last 7 days is down {round(drop)}% on the previous 7 days.",
            severity="low",
        )
    return None


def _refund_alert(recent: float, previous: float) -> Optional[SalesAlert]:
    if previous > 0:
        increase = _percent_change(recent, previous)
        if increase > REFUND_SPIKE_ERROR:
            return SalesAlert(
                kind="error",
                title="Refunds up",
                message=(
                    f"Refunds for the last 7 days are up {round(increase)}% on the previous 7 days "
                    f"({_currency(recent)} vs {_currency(previous)})."
                ),
                severity="high" if increase > REFUND_SPIKE_HIGH else "medium",
            )
        return None

    if recent > 0:
        return SalesAlert(
            kind="warning",
            title="Refunds issued",
            message=f"{_currency(recent)} was refunded in the last 7 days.",
            severity="low",
        )
    return None


def _maker_refund_alerts(
    recent: Sequence[EnrichedSale],
    previous: Sequence[EnrichedSale],
) -> List[SalesAlert]:
    # maker -> [recent amount, previous amount], first-seen order
    amounts: Dict[str, List[float]] = {}
    for slot, sales in ((0, recent), (1, previous)):
        for sale in sales:
            if sale.sale_price >= 0 or sale.instrument is None or not sale.instrument.maker:
                continue
            amounts.setdefault(sale.instrument.maker, [0.0, 0.0])[slot] += abs(sale.sale_price)

    alerts = []
    for maker, (now, before) in amounts.items():
        if before > 0:
            increase = _percent_change(now, before)
            if (
                before >= MAKER_REFUND_MIN_BASELINE
                and increase > MAKER_REFUND_SPIKE
                and now - before >= MAKER_REFUND_MIN_DELTA
            ):
                alerts.append(SalesAlert(
                    kind="error",
                    title=f"{maker} refunds up",
                    message=f"Refunds on {maker} instruments are up {round(increase)}% on the previous 7 days.",
                    severity="high",
                ))
        elif now > 0:
            alerts.append(SalesAlert(
                kind="warning",
                title=f"{maker} refunds issued",
                message=f"{_currency(now)} was refunded on {maker} instruments.",
                severity="medium",
            ))
    return alerts


def _weekday_alerts(
    recent: Sequence[EnrichedSale],
    previous: Sequence[EnrichedSale],
) -> List[SalesAlert]:
    # Sunday=0, counts of positive sales
    recent_counts = [0] * 7
    previous_counts = [0] * 7
    for counts, sales in ((recent_counts, recent), (previous_counts, previous)):
        for sale in sales:
            if sale.sale_price > 0:
                counts[(sale.sale_date.weekday() + 1) % 7] += 1

    alerts = []
    for index, name in enumerate(_DAY_NAMES):
        now, before = recent_counts[index], previous_counts[index]
        if before == 0:
            continue
        drop = -_percent_change(now, before)
        if drop > WEEKDAY_ORDER_DROP:
            alerts.append(SalesAlert(
                kind="warning",
                title=f"{name} orders dropped",
                message=(
                    f"{name} orders are down {round(drop)}% on the previous 7 days "
                    f"({now} vs {before})."
                ),
                severity="medium",
            ))
    return alerts


def sales_alerts(
    sales: Sequence[EnrichedSale],
    today: Optional[date] = None,
) -> List[SalesAlert]:
    """
    Week-over-week warnings: the last 7 days against the 7 before.

    Checks, in this order:
        - revenue drop (warning above 15%, error above 30%)
        - refund spike (error above 50%, or a warning for first refunds)
        - per-maker refund spike, ignoring makers under a $200 baseline
          or a rise smaller than $200
        - per-weekday order count drop above 50%

    Returns an empty list when there are no sales.
    """
    if not sales:
        return []

    recent, previous = _alert_windows(sales, today or utc_today())

    def revenue(window):
        return sum(sale.sale_price for sale in window if sale.sale_price > 0)

    def refunds(window):
        return sum(abs(sale.sale_price) for sale in window if sale.sale_price < 0)

    alerts = []
    for alert in (
        _revenue_alert(revenue(recent), revenue(previous)),
        _refund_alert(refunds(recent), refunds(previous)),
    ):
        if alert is not None:
            alerts.append(alert)

    alerts.extend(_maker_refund_alerts(recent, previous))
    alerts.extend(_weekday_alerts(recent, previous))
    return alerts


# ─── Period comparison ────────────────────────────────────────────────────────

# Orders on each side of the recent-vs-previous trend
TREND_SAMPLE = 7


def period_metrics(sales: Sequence[EnrichedSale]) -> PeriodMetrics:
    """Revenue, refunds, order count and distinct clients of `sales`."""
    positive = [sale for sale in sales if sale.sale_price > 0]
    return PeriodMetrics(
        revenue=sum(sale.sale_price for sale in positive),
        refunds=sum(abs(sale.sale_price) for sale in sales if sale.sale_price < 0),
        order_count=len(positive),
        unique_clients=len({sale.client_id for sale in positive if sale.client_id}),
    )


def previous_period(start: date, end: date) -> Optional[Tuple[date, date]]:
    """
    The equal-length window ending the day before `start`.

    None when that window would begin before the first representable date.
    """
    days = (end - start).days + 1
    if (start - date.min).days < days:
        return None
    previous_end = start - timedelta(days=1)
    return previous_end - timedelta(days=days - 1), previous_end


def _growth(current: PeriodMetrics, previous: PeriodMetrics) -> Optional[PeriodGrowth]:
    if previous.revenue == 0:
        return None

    def change(new, old):
        return round(_percent_change(new, old), 1) if old > 0 else None

    return PeriodGrowth(
        revenue=round(_percent_change(current.revenue, previous.revenue), 1),
        orders=change(current.order_count, previous.order_count),
        clients=change(current.unique_clients, previous.unique_clients),
    )


def _drivers(current: PeriodMetrics, previous: PeriodMetrics) -> GrowthDrivers:
    client_change = current.unique_clients - previous.unique_clients
    ticket_change = current.avg_ticket - previous.avg_ticket
    return GrowthDrivers(
        client_change=client_change,
        ticket_change=ticket_change,
        revenue_change=current.revenue - previous.revenue,
        client_contribution=client_change * previous.avg_ticket,
        ticket_contribution=ticket_change * current.unique_clients,
        interaction=client_change * ticket_change,
    )


def compare_periods(
    sales: Sequence[EnrichedSale],
    start: date,
    end: date,
) -> Optional[PeriodComparison]:
    """
    Compare [start, end] with the equal-length window just before it.

    Args:
        sales: Sales covering both windows; anything outside them is ignored
        start: First day of the selected period
        end: Last day of the selected period (inclusive)

    Returns:
        The comparison, or None when the previous window is not
        representable. growth is None when the previous window had no
        revenue.
    """
    window = previous_period(start, end)
    if window is None:
        return None
    previous_start, previous_end = window

    current = period_metrics(filter_by_date_range(sales, start, end))
    previous = period_metrics(filter_by_date_range(sales, previous_start, previous_end))

    return PeriodComparison(
        start=start,
        end=end,
        previous_start=previous_start,
        previous_end=previous_end,
        current=current,
        previous=previous,
        growth=_growth(current, previous),
        drivers=_drivers(current, previous),
    )


def sales_trend(sales: Sequence[EnrichedSale]) -> Optional[SalesTrend]:
    """
    Revenue of the latest 7 sales against the 7 before them.

    Sales are ordered by date (stable for same-day sales). None with fewer
    than 14 sales or when the earlier 7 had no revenue.
    """
    if len(sales) < TREND_SAMPLE * 2:
        return None

    ordered = sorted(sales, key=lambda sale: sale.sale_date)
    recent = sum(s.sale_price for s in ordered[-TREND_SAMPLE:] if s.sale_price > 0)
    previous = sum(
        s.sale_price for s in ordered[-TREND_SAMPLE * 2:-TREND_SAMPLE] if s.sale_price > 0
    )
    if previous == 0:
        return None

    value = round(_percent_change(recent, previous), 1)
    if value > 0:
        direction = "up"
    elif value < 0:
        direction = "down"
    else:
        direction = "stable"
    return SalesTrend(value=value, direction=direction)


# ─── Per-client summary ───────────────────────────────────────────────────────

def summarize_by_client(sales: Sequence[Sale]) -> List[ClientSalesSummary]:
    """
    Spend per client, highest first (ties by client id).

    Refunds count against total_spend and as purchases. Sales without a
    client are left out.
    """
    summaries: Dict[str, ClientSalesSummary] = {}
    for sale in sales:
        if not sale.client_id:
            continue
        summary = summaries.get(sale.client_id)
        if summary is None:
            summary = summaries[sale.client_id] = ClientSalesSummary(
                client_id=sale.client_id,
                first_purchase_date=sale.sale_date,
                last_purchase_date=sale.sale_date,
            )
        summary.total_spend += sale.sale_price
        summary.purchase_count += 1
        summary.first_purchase_date = min(summary.first_purchase_date, sale.sale_date)
        summary.last_purchase_date = max(summary.last_purchase_date, sale.sale_date)

    return sorted(summaries.values(), key=lambda s: (-s.total_spend, s.client_id))
