"""
Grouping helpers for client/instrument connections.

Shared by the connections API and the relationship counters shown on the
dashboard tabs.
"""
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar

from atelier.config import config
from atelier.models import ClientInstrument, TypeCount

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

# Unknown relationship types sort after every known one
_UNKNOWN_ORDER = 999


def group_by_type(records: Iterable[T], key_fn: Callable[[T], K]) -> Dict[K, List[T]]:
    """
    Bucket records by a key.

    Keys appear in first-seen order and each bucket keeps the input order.
    """
    grouped: Dict[K, List[T]] = {}
    for record in records:
        grouped.setdefault(key_fn(record), []).append(record)
    return grouped


def counts_in_fixed_order(
    grouped: Dict[K, List[T]],
    canonical_order: Sequence[K],
    include_unlisted: bool = False,
) -> List[TypeCount]:
    """
    Per-key counts laid out in a fixed display order.

    Args:
        grouped: Output of group_by_type
        canonical_order: Keys in the order they should be displayed
        include_unlisted: Append keys missing from canonical_order (in their
            first-seen order) instead of dropping them

    Returns:
        One TypeCount per present key. Keys with no records are skipped,
        never emitted as zero.
    """
    counts = [
        TypeCount(type=key, count=len(grouped[key]))
        for key in canonical_order
        if grouped.get(key)
    ]

    if include_unlisted:
        listed = set(canonical_order)
        counts.extend(
            TypeCount(type=key, count=len(items))
            for key, items in grouped.items()
            if key not in listed and items
        )

    return counts


def group_connections_by_type(
    connections: Iterable[ClientInstrument],
) -> Dict[str, List[ClientInstrument]]:
    """Connections bucketed by relationship type."""
    return group_by_type(connections, lambda c: c.relationship_type)


def group_connections_by_client(
    connections: Iterable[ClientInstrument],
) -> Dict[str, List[ClientInstrument]]:
    """Connections bucketed by client id (one card per client)."""
    return group_by_type(connections, lambda c: c.client_id)


def relationship_type_counts(
    connections: Iterable[ClientInstrument],
    include_unlisted: bool = False,
) -> List[TypeCount]:
    """Tab counters: Interested → Booked → Sold → Owned."""
    return counts_in_fixed_order(
        group_connections_by_type(connections),
        config.connections.relationship_types,
        include_unlisted=include_unlisted,
    )


def _relationship_rank(relationship_type: Optional[str]) -> int:
    return config.connections.order.get(relationship_type, _UNKNOWN_ORDER)


def sort_connections_for_all_tab(
    connections: Iterable[ClientInstrument],
) -> List[ClientInstrument]:
    """
    Order connections for the "All" tab.

    Priority: relationship type, client last name, client first name,
    instrument maker, instrument type. Returns a new list.
    """
    def sort_key(connection: ClientInstrument):
        client = connection.client
        instrument = connection.instrument
        return (
            _relationship_rank(connection.relationship_type),
            (client.last_name or "") if client else "",
            (client.first_name or "") if client else "",
            (instrument.maker or "") if instrument else "",
            (instrument.type or "") if instrument else "",
        )

    return sorted(connections, key=sort_key)
