"""
Domain models for the workshop's sales data.

Provides dataclasses for Sales, Clients, Instruments and client/instrument
connections, plus the result types produced by the chart and insight
functions. Raw rows (dicts from the store) are parsed with `from_row`;
results are serialized with `to_dict`.
"""
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Dict, Any


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class RelationshipType(str, Enum):
    """How a client relates to an instrument, in tab display order."""
    INTERESTED = "Interested"
    BOOKED = "Booked"
    SOLD = "Sold"
    OWNED = "Owned"


# ═══════════════════════════════════════════════════════════════════════════════
# PARSING HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def parse_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD string (or pass through a date)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp, tolerating a trailing Z."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


# ═══════════════════════════════════════════════════════════════════════════════
# ROW MODELS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class Client:
    """Workshop client."""
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    interest: Optional[str] = None
    note: Optional[str] = None
    client_number: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "Client":
        """Create Client from a store row."""
        return cls(
            id=str(data["id"]),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            contact_number=data.get("contact_number"),
            tags=list(data.get("tags") or []),
            interest=data.get("interest"),
            note=data.get("note"),
            client_number=data.get("client_number"),
            created_at=parse_datetime(data.get("created_at")),
        )

    @property
    def full_name(self) -> str:
        """First and last name joined, empty when both are missing."""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def display_name(self) -> str:
        """Name shown in lists; falls back to email."""
        return self.full_name or self.email or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "tags": list(self.tags),
            "client_number": self.client_number,
        }


@dataclass
class Instrument:
    """Instrument (or bow) in inventory."""
    id: str
    maker: Optional[str] = None
    type: Optional[str] = None
    subtype: Optional[str] = None
    serial_number: Optional[str] = None
    year: Optional[int] = None
    price: Optional[float] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "Instrument":
        """Create Instrument from a store row."""
        year = data.get("year")
        return cls(
            id=str(data["id"]),
            maker=data.get("maker"),
            type=data.get("type"),
            subtype=data.get("subtype"),
            serial_number=data.get("serial_number"),
            year=int(year) if year is not None else None,
            price=_optional_float(data.get("price")),
            status=data.get("status"),
            created_at=parse_datetime(data.get("created_at")),
        )

    @property
    def label(self) -> str:
        """Maker, type and subtype joined for display."""
        return " ".join(p for p in (self.maker, self.type, self.subtype) if p)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "maker": self.maker,
            "type": self.type,
            "subtype": self.subtype,
            "serial_number": self.serial_number,
            "price": self.price,
            "status": self.status,
        }


@dataclass
class Sale:
    """Sale record. A negative sale_price is a refund."""
    id: str
    sale_price: float
    sale_date: date
    client_id: Optional[str] = None
    instrument_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "Sale":
        """Create Sale from a store row."""
        client_id = data.get("client_id")
        instrument_id = data.get("instrument_id")
        return cls(
            id=str(data["id"]),
            sale_price=float(data.get("sale_price") or 0),
            sale_date=parse_date(data["sale_date"]),
            client_id=str(client_id) if client_id is not None else None,
            instrument_id=str(instrument_id) if instrument_id is not None else None,
            notes=data.get("notes"),
            created_at=parse_datetime(data.get("created_at")),
        )

    @property
    def is_refund(self) -> bool:
        return self.sale_price < 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "instrument_id": self.instrument_id,
            "sale_price": self.sale_price,
            "sale_date": self.sale_date.isoformat(),
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class EnrichedSale(Sale):
    """Sale with its client and instrument attached (either may be absent)."""
    client: Optional[Client] = None
    instrument: Optional[Instrument] = None

    @classmethod
    def from_sale(
        cls,
        sale: Sale,
        client: Optional[Client] = None,
        instrument: Optional[Instrument] = None,
    ) -> "EnrichedSale":
        """Copy a Sale's fields and attach related records."""
        values = {f.name: getattr(sale, f.name) for f in fields(Sale)}
        return cls(**values, client=client, instrument=instrument)

    @property
    def client_name(self) -> str:
        return self.client.display_name if self.client else ""

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["client"] = self.client.to_dict() if self.client else None
        data["instrument"] = self.instrument.to_dict() if self.instrument else None
        return data


@dataclass
class ClientInstrument:
    """Connection between a client and an instrument."""
    id: str
    client_id: str
    instrument_id: str
    relationship_type: str
    notes: Optional[str] = None
    display_order: Optional[int] = None
    created_at: Optional[datetime] = None
    client: Optional[Client] = None
    instrument: Optional[Instrument] = None

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "ClientInstrument":
        """Create ClientInstrument from a store row."""
        display_order = data.get("display_order")
        return cls(
            id=str(data["id"]),
            client_id=str(data["client_id"]),
            instrument_id=str(data["instrument_id"]),
            relationship_type=data["relationship_type"],
            notes=data.get("notes"),
            display_order=int(display_order) if display_order is not None else None,
            created_at=parse_datetime(data.get("created_at")),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# AGGREGATION RESULTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class TypeCount:
    """Number of records for one group key."""
    type: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "count": self.count}


@dataclass
class DailyPoint:
    """Revenue for one calendar day."""
    date: date
    label: str
    revenue: float = 0.0
    refunds: float = 0.0
    count: int = 0

    @property
    def net(self) -> float:
        return self.revenue - self.refunds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "label": self.label,
            "revenue": round(self.revenue, 2),
            "refunds": round(self.refunds, 2),
            "net": round(self.net, 2),
            "count": self.count,
        }


@dataclass
class WeekdayPoint:
    """Revenue summed for one day of the week (Sunday=0)."""
    day_index: int
    day: str
    revenue: float = 0.0
    refunds: float = 0.0
    count: int = 0

    @property
    def net(self) -> float:
        return self.revenue - self.refunds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "dayIndex": self.day_index,
            "revenue": round(self.revenue, 2),
            "refunds": round(self.refunds, 2),
            "net": round(self.net, 2),
            "count": self.count,
        }


@dataclass
class MonthlyPoint:
    """Revenue, refunds and refund rate for one calendar month."""
    month_key: str
    label: str
    revenue: float = 0.0
    refunds: float = 0.0
    count: int = 0
    refund_rate: float = 0.0

    @property
    def net(self) -> float:
        return self.revenue - self.refunds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.label,
            "monthKey": self.month_key,
            "revenue": round(self.revenue, 2),
            "refunds": round(self.refunds, 2),
            "net": round(self.net, 2),
            "count": self.count,
            "refundRate": self.refund_rate,
        }


@dataclass
class RankedRevenue:
    """Revenue for one category (instrument type or maker)."""
    name: str
    revenue: float = 0.0
    refunds: float = 0.0
    count: int = 0
    refund_rate: float = 0.0

    @property
    def net(self) -> float:
        return self.revenue - self.refunds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "revenue": round(self.revenue, 2),
            "refunds": round(self.refunds, 2),
            "net": round(self.net, 2),
            "count": self.count,
            "refundRate": self.refund_rate,
        }


@dataclass
class SalesTotals:
    """
    Headline KPIs for a set of sales.

    count includes refunds; avg_ticket only averages positive sales.
    refund_rate is None when there were no refunds at all.
    """
    revenue: float
    refund: float
    avg_ticket: float
    count: int
    refund_rate: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revenue": round(self.revenue, 2),
            "refund": round(self.refund, 2),
            "avgTicket": round(self.avg_ticket, 2),
            "count": self.count,
            "refundRate": self.refund_rate,
        }


@dataclass
class DataQuality:
    """Warnings about how trustworthy the charts are."""
    has_insufficient_data: bool = False
    has_outliers: bool = False
    has_sparse_dates: bool = False

    @property
    def is_low_quality(self) -> bool:
        return self.has_insufficient_data or self.has_outliers or self.has_sparse_dates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasInsufficientData": self.has_insufficient_data,
            "hasOutliers": self.has_outliers,
            "hasSparseDates": self.has_sparse_dates,
            "isLowQuality": self.is_low_quality,
        }


@dataclass
class SalesAlert:
    """One week-over-week warning for the alerts banner."""
    kind: str  # "error" or "warning"
    title: str
    message: str
    severity: str  # "low", "medium" or "high"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "title": self.title,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass
class PeriodMetrics:
    """Revenue, orders and clients for one date window."""
    revenue: float = 0.0
    refunds: float = 0.0
    order_count: int = 0
    unique_clients: int = 0

    @property
    def net_revenue(self) -> float:
        return self.revenue - self.refunds

    @property
    def avg_ticket(self) -> float:
        return self.revenue / self.order_count if self.order_count else 0.0

    @property
    def avg_per_client(self) -> float:
        return self.revenue / self.unique_clients if self.unique_clients else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revenue": round(self.revenue, 2),
            "refunds": round(self.refunds, 2),
            "netRevenue": round(self.net_revenue, 2),
            "orderCount": self.order_count,
            "uniqueClients": self.unique_clients,
            "avgTicket": round(self.avg_ticket, 2),
            "avgPerClient": round(self.avg_per_client, 2),
        }


@dataclass
class PeriodGrowth:
    """Percent change against the previous window; None where it had zero."""
    revenue: float
    orders: Optional[float] = None
    clients: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"revenue": self.revenue, "orders": self.orders, "clients": self.clients}


@dataclass
class GrowthDrivers:
    """Revenue change attributed to client count versus ticket size."""
    client_change: int
    ticket_change: float
    revenue_change: float
    client_contribution: float
    ticket_contribution: float
    interaction: float

    @property
    def primary_driver(self) -> str:
        if abs(self.client_contribution) > abs(self.ticket_contribution):
            return "clients"
        return "ticket"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clientChange": self.client_change,
            "ticketChange": round(self.ticket_change, 2),
            "revenueChange": round(self.revenue_change, 2),
            "clientContribution": round(self.client_contribution, 2),
            "ticketContribution": round(self.ticket_contribution, 2),
            "interaction": round(self.interaction, 2),
            "primaryDriver": self.primary_driver,
        }


@dataclass
class PeriodComparison:
    """A date window against the equal-length window just before it."""
    start: date
    end: date
    previous_start: date
    previous_end: date
    current: PeriodMetrics
    previous: PeriodMetrics
    growth: Optional[PeriodGrowth]
    drivers: GrowthDrivers

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.start.isoformat(),
            "to": self.end.isoformat(),
            "previousFrom": self.previous_start.isoformat(),
            "previousTo": self.previous_end.isoformat(),
            "current": self.current.to_dict(),
            "previous": self.previous.to_dict(),
            "growth": self.growth.to_dict() if self.growth else None,
            "drivers": self.drivers.to_dict(),
        }


@dataclass
class SalesTrend:
    """Revenue of the latest orders against the ones before them."""
    value: float
    direction: str  # "up", "down" or "stable"

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "direction": self.direction}


@dataclass
class ClientSalesSummary:
    """Spend and purchase dates for one client."""
    client_id: str
    total_spend: float = 0.0
    purchase_count: int = 0
    first_purchase_date: Optional[date] = None
    last_purchase_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "client_id": self.client_id,
            "total_spend": round(self.total_spend, 2),
            "purchase_count": self.purchase_count,
            "first_purchase_date": (
                self.first_purchase_date.isoformat() if self.first_purchase_date else None
            ),
            "last_purchase_date": (
                self.last_purchase_date.isoformat() if self.last_purchase_date else None
            ),
        }
