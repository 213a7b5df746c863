"""
Pydantic response models for API endpoints.

Provides type-safe response models with automatic validation and documentation.
"""
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


# ═══════════════════════════════════════════════════════════════════════════════
# HEALTH CHECK
# ═══════════════════════════════════════════════════════════════════════════════

class StoreStats(BaseModel):
    """DuckDB store status."""
    status: str
    latency_ms: Optional[float] = None
    sales: Optional[int] = None
    total_queries: Optional[int] = None
    db_path: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(description="Service status: healthy or degraded")
    version: str = Field(description="Application version")
    uptime_seconds: int = Field(description="Uptime in seconds")
    correlation_id: Optional[str] = Field(None, description="Request correlation ID")
    store: StoreStats


# ═══════════════════════════════════════════════════════════════════════════════
# SALES
# ═══════════════════════════════════════════════════════════════════════════════

class ClientSummary(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    tags: List[str] = []
    client_number: Optional[str] = None


class InstrumentSummary(BaseModel):
    id: str
    maker: Optional[str] = None
    type: Optional[str] = None
    subtype: Optional[str] = None
    serial_number: Optional[str] = None
    price: Optional[float] = None
    status: Optional[str] = None


class SaleResponse(BaseModel):
    """Sale with its client and instrument attached (null when unresolved)."""
    id: str
    client_id: Optional[str] = None
    instrument_id: Optional[str] = None
    sale_price: float = Field(description="Negative for refunds")
    sale_date: str = Field(description="Sale date (ISO format)")
    notes: Optional[str] = None
    created_at: Optional[str] = None
    client: Optional[ClientSummary] = None
    instrument: Optional[InstrumentSummary] = None


class SalesPageResponse(BaseModel):
    """One page of filtered, sorted sales."""
    items: List[SaleResponse]
    total: int = Field(description="Sales matching the filters")
    limit: int
    offset: int
    hasMore: bool
    query: Dict[str, str] = Field(description="Canonical query string parameters for these filters")


class SalesTotalsResponse(BaseModel):
    """Headline KPIs."""
    revenue: float = Field(description="Sum of positive sales")
    refund: float = Field(description="Sum of refunds (absolute value)")
    avgTicket: float = Field(description="Average positive sale")
    count: int = Field(description="Number of sales including refunds")
    refundRate: Optional[float] = Field(None, description="Refunds / revenue in percent, null without refunds")


class DataQualityResponse(BaseModel):
    hasInsufficientData: bool
    hasOutliers: bool
    hasSparseDates: bool
    isLowQuality: bool


class SalesAlertResponse(BaseModel):
    type: str = Field(description="error or warning")
    title: str
    message: str
    severity: str = Field(description="low, medium or high")


class PeriodMetricsResponse(BaseModel):
    revenue: float
    refunds: float
    netRevenue: float
    orderCount: int
    uniqueClients: int
    avgTicket: float
    avgPerClient: float


class PeriodGrowthResponse(BaseModel):
    """Percent change; null where the previous window had zero."""
    revenue: float
    orders: Optional[float] = None
    clients: Optional[float] = None


class GrowthDriversResponse(BaseModel):
    clientChange: int
    ticketChange: float
    revenueChange: float
    clientContribution: float
    ticketContribution: float
    interaction: float
    primaryDriver: str = Field(description="clients or ticket")


class PeriodComparisonResponse(BaseModel):
    """Selected range against the equal-length range before it."""
    from_: str = Field(alias="from")
    to: str
    previousFrom: str
    previousTo: str
    current: PeriodMetricsResponse
    previous: PeriodMetricsResponse
    growth: Optional[PeriodGrowthResponse] = None
    drivers: GrowthDriversResponse


class SalesTrendResponse(BaseModel):
    value: float = Field(description="Percent change of the latest 7 sales over the 7 before")
    direction: str = Field(description="up, down or stable")


class SalesSummaryResponse(BaseModel):
    """Totals, data-quality flags and insights for the filtered sales."""
    totals: SalesTotalsResponse
    dataQuality: DataQualityResponse
    period: str = Field(description="Human-readable description of the date range")
    isFiltered: bool
    alerts: List[SalesAlertResponse] = []
    comparison: Optional[PeriodComparisonResponse] = Field(None, description="Only when from and to are both set")
    trend: Optional[SalesTrendResponse] = None


class ClientSpendResponse(BaseModel):
    client_id: str
    total_spend: float = Field(description="Net of refunds")
    purchase_count: int
    first_purchase_date: Optional[str] = None
    last_purchase_date: Optional[str] = None


class ClientSpendListResponse(BaseModel):
    """Spend per client, highest first."""
    data: List[ClientSpendResponse]
    count: int
    totalSales: int


# ═══════════════════════════════════════════════════════════════════════════════
# CHARTS
# ═══════════════════════════════════════════════════════════════════════════════

class DailyPointResponse(BaseModel):
    date: str
    label: str
    revenue: float
    refunds: float
    net: float
    count: int


class WeekdayPointResponse(BaseModel):
    day: str
    dayIndex: int = Field(description="0 = Sunday")
    revenue: float
    refunds: float
    net: float
    count: int


class MonthlyPointResponse(BaseModel):
    month: str
    monthKey: str = Field(description="YYYY-MM")
    revenue: float
    refunds: float
    net: float
    count: int
    refundRate: float


class RankedRevenueResponse(BaseModel):
    name: str
    revenue: float
    refunds: float
    net: float
    count: int
    refundRate: float


class SalesChartsResponse(BaseModel):
    """Chart views; each is null when there is nothing to plot."""
    daily: Optional[List[DailyPointResponse]] = None
    weekday: Optional[List[WeekdayPointResponse]] = None
    monthly: Optional[List[MonthlyPointResponse]] = None
    instrumentTypes: Optional[List[RankedRevenueResponse]] = None
    makers: Optional[List[RankedRevenueResponse]] = None
    refundRate: Optional[float] = None


# ═══════════════════════════════════════════════════════════════════════════════
# CONNECTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class TypeCountResponse(BaseModel):
    type: str
    count: int


class ConnectionCountsResponse(BaseModel):
    """Connection counts per relationship type, in display order."""
    counts: List[TypeCountResponse]
    total: int


class ConnectionResponse(BaseModel):
    id: str
    client_id: str
    instrument_id: str
    relationship_type: str
    notes: Optional[str] = None
    client: Optional[ClientSummary] = None
    instrument: Optional[InstrumentSummary] = None


class ConnectionsResponse(BaseModel):
    """Connections for one relationship tab (or all of them)."""
    items: List[ConnectionResponse]
    total: int


# ═══════════════════════════════════════════════════════════════════════════════
# IDENTIFIERS
# ═══════════════════════════════════════════════════════════════════════════════

class NextIdentifierResponse(BaseModel):
    kind: str = Field(description="instrument or client")
    identifier: str = Field(description="Next free identifier, e.g. VI004")


class IdentifierValidateRequest(BaseModel):
    number: Optional[str] = Field(None, description="Candidate identifier; blank is valid")
    kind: str = Field("instrument", description="instrument or client")
    current: Optional[str] = Field(None, description="Identifier the edited record already holds")


class IdentifierCheckResponse(BaseModel):
    valid: bool
    error: Optional[str] = None
