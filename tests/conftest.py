"""
Pytest configuration and shared fixtures.
"""
import pytest
from datetime import date, datetime
from typing import Callable, Dict, List, Any, Optional

from atelier.enrichment import create_lookups, enrich_sales
from atelier.models import Client, ClientInstrument, EnrichedSale, Instrument, Sale


def make_sale(
    sale_id: str,
    price: float,
    day: date,
    client_id: Optional[str] = None,
    instrument_id: Optional[str] = None,
) -> Sale:
    """Build a Sale with only the fields the pipeline reads."""
    return Sale(
        id=sale_id,
        sale_price=price,
        sale_date=day,
        client_id=client_id,
        instrument_id=instrument_id,
    )


def make_enriched(
    sale_id: str,
    price: float,
    day: date,
    client: Optional[Client] = None,
    instrument: Optional[Instrument] = None,
) -> EnrichedSale:
    """Build an EnrichedSale with the given attachments."""
    return EnrichedSale.from_sale(
        make_sale(
            sale_id, price, day,
            client.id if client else None,
            instrument.id if instrument else None,
        ),
        client=client,
        instrument=instrument,
    )


class ManualScheduler:
    """
    Fake clock for Debouncer tests.

    schedule() records timers; advance() moves time forward and fires the
    ones that came due, in due order.
    """

    class Handle:
        def __init__(self, due: float, fn: Callable[[], None]):
            self.due = due
            self.fn = fn
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.now = 0.0
        self.timers: List["ManualScheduler.Handle"] = []

    def __call__(self, delay: float, fn: Callable[[], None]) -> "ManualScheduler.Handle":
        handle = self.Handle(self.now + delay, fn)
        self.timers.append(handle)
        return handle

    @property
    def active(self) -> List["ManualScheduler.Handle"]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.due <= self.now),
            key=lambda t: t.due,
        )
        for timer in due:
            self.timers.remove(timer)
            timer.fn()


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Manually advanced timer source."""
    return ManualScheduler()


@pytest.fixture
def sample_clients() -> List[Client]:
    """Clients: two named, one known only by email."""
    return [
        Client(id="c1", first_name="John", last_name="Doe", email="john@example.com", client_number="CL001"),
        Client(id="c2", first_name="Jane", last_name="Smith", email="jane@example.com", client_number="CL002"),
        Client(id="c3", email="zoe@example.com"),
    ]


@pytest.fixture
def sample_instruments() -> List[Instrument]:
    """A violin, a cello and a bow."""
    return [
        Instrument(id="i1", maker="Stradivari", type="Violin", serial_number="VI001", price=1000.0),
        Instrument(id="i2", maker="Guarneri", type="Cello", serial_number="CE001", price=2000.0),
        Instrument(id="i3", maker="Sartory", type="Bow", serial_number="BO001", price=300.0),
    ]


@pytest.fixture
def sample_sales() -> List[Sale]:
    """
    Five sales in January/February 2026.

    s3 is a refund; s4 has no client; s5 points at an instrument that
    does not exist.
    """
    return [
        make_sale("s1", 1000.0, date(2026, 1, 5), "c1", "i1"),   # Monday
        make_sale("s2", 2000.0, date(2026, 1, 6), "c2", "i2"),   # Tuesday
        make_sale("s3", -500.0, date(2026, 1, 6), "c1", "i1"),   # Tuesday refund
        make_sale("s4", 300.0, date(2026, 1, 10), None, "i3"),   # Saturday
        make_sale("s5", 1500.0, date(2026, 2, 2), "c3", "i-missing"),  # Monday
    ]


@pytest.fixture
def enriched_sales(sample_sales, sample_clients, sample_instruments) -> List[EnrichedSale]:
    """sample_sales joined to the sample clients and instruments."""
    client_lookup, instrument_lookup = create_lookups(sample_clients, sample_instruments)
    return enrich_sales(sample_sales, client_lookup, instrument_lookup)


@pytest.fixture
def sample_connections() -> List[ClientInstrument]:
    """Connections in scan order Interested, Sold, Interested, Booked."""
    return [
        ClientInstrument(id="ci1", client_id="c1", instrument_id="i1", relationship_type="Interested"),
        ClientInstrument(id="ci2", client_id="c2", instrument_id="i2", relationship_type="Sold"),
        ClientInstrument(id="ci3", client_id="c2", instrument_id="i3", relationship_type="Interested"),
        ClientInstrument(id="ci4", client_id="c3", instrument_id="i1", relationship_type="Booked"),
    ]


@pytest.fixture
def store_rows() -> Dict[str, List[Dict[str, Any]]]:
    """Raw rows for seeding a SalesStore."""
    return {
        "clients": [
            {"id": "c1", "first_name": "John", "last_name": "Doe", "email": "john@example.com",
             "tags": ["Musician"], "client_number": "CL001", "created_at": datetime(2025, 12, 1)},
            {"id": "c2", "first_name": "Jane", "last_name": "Smith", "email": "jane@example.com",
             "tags": [], "client_number": "CL002", "created_at": datetime(2025, 12, 2)},
        ],
        "instruments": [
            {"id": "i1", "maker": "Stradivari", "type": "Violin", "serial_number": "VI001",
             "price": 1000.0, "status": "Sold"},
            {"id": "i2", "maker": "Guarneri", "type": "Cello", "serial_number": "CE001",
             "price": 2000.0, "status": "Sold"},
            {"id": "i3", "maker": "Sartory", "type": "Bow", "serial_number": "BO001",
             "price": 300.0, "status": "Available"},
        ],
        "sales": [
            {"id": "s1", "client_id": "c1", "instrument_id": "i1", "sale_price": 1000.0,
             "sale_date": date(2026, 1, 5)},
            {"id": "s2", "client_id": "c2", "instrument_id": "i2", "sale_price": 2000.0,
             "sale_date": date(2026, 1, 6)},
            {"id": "s3", "client_id": "c1", "instrument_id": "i1", "sale_price": -500.0,
             "sale_date": date(2026, 1, 6)},
            {"id": "s4", "client_id": None, "instrument_id": "i3", "sale_price": 300.0,
             "sale_date": date(2026, 1, 10)},
        ],
        "connections": [
            {"id": "ci1", "client_id": "c1", "instrument_id": "i1", "relationship_type": "Interested"},
            {"id": "ci2", "client_id": "c2", "instrument_id": "i2", "relationship_type": "Sold"},
            {"id": "ci3", "client_id": "c2", "instrument_id": "i3", "relationship_type": "Interested"},
            {"id": "ci4", "client_id": "c1", "instrument_id": "i3", "relationship_type": "Booked"},
        ],
    }


@pytest.fixture
def sale_factory() -> Callable[..., Sale]:
    """make_sale as a fixture."""
    return make_sale


@pytest.fixture
def enriched_factory() -> Callable[..., EnrichedSale]:
    """make_enriched as a fixture."""
    return make_enriched
