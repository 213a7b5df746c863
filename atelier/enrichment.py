"""
Sales enrichment: attach clients and instruments to sale rows.

The lookups are built once per distinct pair of client/instrument
collections and enrichment results are memoized on the identity of their
inputs, so re-rendering the same snapshot is free.
"""
from typing import Dict, Generic, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from atelier.config import config
from atelier.models import Client, EnrichedSale, Instrument, Sale
from atelier.observability import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Lookup(Generic[T]):
    """
    Read-only id → record container.

    get() returns None for unknown ids and for a None id, so a sale with a
    dangling or empty foreign key simply gets no attachment.
    """

    def __init__(self, records: Iterable[T] = (), key: str = "id"):
        self._items: Dict[str, T] = {getattr(record, key): record for record in records}

    def get(self, record_id: Optional[str]) -> Optional[T]:
        if record_id is None:
            return None
        return self._items.get(record_id)

    def __contains__(self, record_id: object) -> bool:
        return record_id is not None and record_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items.values())


def create_lookups(
    clients: Iterable[Client],
    instruments: Iterable[Instrument],
) -> Tuple[Lookup[Client], Lookup[Instrument]]:
    """Build the client and instrument lookups."""
    return Lookup(clients), Lookup(instruments)


def enrich_sales(
    sales: Iterable[Sale],
    client_lookup: Lookup[Client],
    instrument_lookup: Lookup[Instrument],
) -> List[EnrichedSale]:
    """
    Attach the referenced client and instrument to each sale.

    Output has the same length and order as the input. Attached objects are
    the lookup's own records, never copies.
    """
    return [
        EnrichedSale.from_sale(
            sale,
            client=client_lookup.get(sale.client_id),
            instrument=instrument_lookup.get(sale.instrument_id),
        )
        for sale in sales
    ]


class SalesEnricher:
    """
    Memoizing front for enrich_sales.

    Lookups are rebuilt only when the clients or instruments collection is a
    different object; the enriched list is reused while all three inputs
    are the same objects. Inputs are treated as immutable snapshots.
    """

    def __init__(self):
        self._lookup_sources: Optional[Tuple[object, object]] = None
        self._lookups: Optional[Tuple[Lookup[Client], Lookup[Instrument]]] = None
        self._result_sources: Optional[Tuple[object, object, object]] = None
        self._result: Optional[List[EnrichedSale]] = None

    def lookups(
        self,
        clients: Sequence[Client],
        instruments: Sequence[Instrument],
    ) -> Tuple[Lookup[Client], Lookup[Instrument]]:
        sources = self._lookup_sources
        if sources is None or sources[0] is not clients or sources[1] is not instruments:
            self._lookups = create_lookups(clients, instruments)
            self._lookup_sources = (clients, instruments)
            logger.debug(
                "Rebuilt lookups",
                extra={"clients": len(self._lookups[0]), "instruments": len(self._lookups[1])},
            )
        return self._lookups

    def enrich(
        self,
        sales: Sequence[Sale],
        clients: Sequence[Client],
        instruments: Sequence[Instrument],
    ) -> List[EnrichedSale]:
        sources = self._result_sources
        if (
            sources is not None
            and sources[0] is sales
            and sources[1] is clients
            and sources[2] is instruments
        ):
            return self._result

        client_lookup, instrument_lookup = self.lookups(clients, instruments)
        self._result = enrich_sales(sales, client_lookup, instrument_lookup)
        self._result_sources = (sales, clients, instruments)
        return self._result


def sort_by_client_name(sales: Sequence[EnrichedSale], direction: str = "asc") -> List[EnrichedSale]:
    """
    Stable sort by client display name ("First Last", else email).

    Sales without a client sort as an empty name. Returns a new list.
    """
    return sorted(sales, key=lambda sale: sale.client_name, reverse=(direction == "desc"))


def apply_local_sort(
    sales: Sequence[EnrichedSale],
    sort_column: str,
    direction: str,
) -> Sequence[EnrichedSale]:
    """
    Sort on columns the store cannot order by.

    Only derived columns (the client name) are sorted here. For any other
    column the store already ordered the rows and the input is returned
    as-is.
    """
    if sort_column in config.filters.derived_sort_columns:
        return sort_by_client_name(sales, direction)
    return sales


def filter_sales_by_search(sales: Sequence[EnrichedSale], search: str) -> List[EnrichedSale]:
    """
    Case-insensitive text search over client and instrument fields.

    Matches client name, client email, and instrument maker, type, subtype
    and serial number.
    """
    if not search:
        return list(sales)

    needle = search.lower()

    def haystack(sale: EnrichedSale) -> str:
        parts = []
        if sale.client:
            parts.append(sale.client.full_name)
            parts.append(sale.client.email or "")
        if sale.instrument:
            instrument = sale.instrument
            parts.extend([
                instrument.maker or "",
                instrument.type or "",
                instrument.subtype or "",
                instrument.serial_number or "",
            ])
        return " ".join(parts).lower()

    return [sale for sale in sales if needle in haystack(sale)]
