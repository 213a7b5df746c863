"""
Sales filter state mirrored to the page's query string.

The controller owns the filter fields, resolves their initial values once
(query string, then caller defaults, then built-in fallbacks) and writes
every change back to an injected QueryStore. Search text goes through a
Debouncer so typing produces one write, not one per keystroke. Fields at
their default value are removed from the query string.

The controller does no I/O of its own: the data-fetching side reads
`controller.filters` and decides what to request.
"""
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional, Protocol
from urllib.parse import parse_qsl, urlencode

from atelier.config import config
from atelier.debounce import Debouncer, Scheduler, thread_scheduler
from atelier.filters import date_range_from_preset, utc_today
from atelier.observability import get_logger

logger = get_logger(__name__)

QUERY_KEYS = config.filters.query_keys


def _parse_has_client(value: Optional[str]) -> Optional[bool]:
    if value == "true":
        return True
    if value == "false":
        return False
    return None


@dataclass
class SalesFilters:
    """
    Snapshot of the sales filter fields.

    instrument_id narrows the list to one instrument's history. It is set
    per request and is not mirrored to the page URL.
    """
    from_date: str = ""
    to_date: str = ""
    search: str = ""
    has_client: Optional[bool] = None
    sort_column: str = config.filters.default_sort_column
    sort_direction: str = config.filters.default_sort_direction
    instrument_id: Optional[str] = None

    @classmethod
    def from_query(
        cls,
        params: Mapping[str, str],
        initial: Optional[Mapping[str, Any]] = None,
    ) -> "SalesFilters":
        """
        Resolve each field: query value, else `initial`, else the fallback.

        Args:
            params: Query parameters (from, to, search, hasClient,
                sortColumn, sortDirection); empty values count as absent
            initial: Caller defaults keyed by field name
        """
        initial = initial or {}

        def pick(param: str, field_name: str, fallback: Any) -> Any:
            value = params.get(param)
            if value:
                return value
            return initial.get(field_name) or fallback

        if params.get("hasClient"):
            has_client = _parse_has_client(params["hasClient"])
        else:
            has_client = initial.get("has_client")

        return cls(
            from_date=pick("from", "from_date", ""),
            to_date=pick("to", "to_date", ""),
            search=pick("search", "search", ""),
            has_client=has_client,
            sort_column=pick("sortColumn", "sort_column", config.filters.default_sort_column),
            sort_direction=pick("sortDirection", "sort_direction", config.filters.default_sort_direction),
        )

    @classmethod
    def from_query_string(cls, query: str) -> "SalesFilters":
        return cls.from_query(dict(parse_qsl(query.lstrip("?"))))

    def to_query(self) -> Dict[str, Optional[str]]:
        """
        Query parameters for this snapshot.

        Default-valued fields map to None, meaning "remove from the URL".
        """
        return {
            "from": self.from_date or None,
            "to": self.to_date or None,
            "search": self.search or None,
            "hasClient": str(self.has_client).lower() if self.has_client is not None else None,
            "sortColumn": (
                self.sort_column
                if self.sort_column != config.filters.default_sort_column else None
            ),
            "sortDirection": (
                self.sort_direction
                if self.sort_direction != config.filters.default_sort_direction else None
            ),
        }

    def to_query_string(self) -> str:
        return urlencode({k: v for k, v in self.to_query().items() if v is not None})

    @property
    def is_filtered(self) -> bool:
        """True when any narrowing filter (not sort) is set."""
        return bool(
            self.from_date or self.to_date or self.search
            or self.has_client is not None or self.instrument_id
        )


class QueryStore(Protocol):
    """Read/write access to the page's query string."""

    def get_all(self) -> Mapping[str, str]: ...

    def update(self, updates: Mapping[str, Optional[str]]) -> None: ...


class DictQueryStore:
    """
    In-memory QueryStore.

    None or empty values delete the parameter. Every update() is recorded
    in `writes` so callers can see exactly what was pushed.
    """

    def __init__(self, params: Optional[Mapping[str, str]] = None):
        self.params: Dict[str, str] = dict(params or {})
        self.writes: List[Dict[str, Optional[str]]] = []

    @classmethod
    def from_query_string(cls, query: str) -> "DictQueryStore":
        return cls(dict(parse_qsl(query.lstrip("?"))))

    def get_all(self) -> Mapping[str, str]:
        return dict(self.params)

    def update(self, updates: Mapping[str, Optional[str]]) -> None:
        self.writes.append(dict(updates))
        for key, value in updates.items():
            if value is None or value == "":
                self.params.pop(key, None)
            else:
                self.params[key] = value

    @property
    def query_string(self) -> str:
        return urlencode(self.params)


class SalesFilterController:
    """
    Owns the sales filters and keeps the query string in step.

    Args:
        query_store: Where the filters are mirrored
        initial: Caller defaults keyed by SalesFilters field name
        scheduler: Timer source for the search debounce
        session_storage: Per-session key/value store for the scroll offset
        scroll_position: Returns the current vertical scroll offset
        today: Returns the date presets are computed from
    """

    def __init__(
        self,
        query_store: QueryStore,
        initial: Optional[Mapping[str, Any]] = None,
        scheduler: Scheduler = thread_scheduler,
        session_storage: Optional[MutableMapping[str, str]] = None,
        scroll_position: Optional[Callable[[], float]] = None,
        today: Callable[[], date] = utc_today,
    ):
        self._store = query_store
        self._session_storage = session_storage
        self._scroll_position = scroll_position
        self._today = today
        self._closed = False

        url_state = {
            key: value for key, value in query_store.get_all().items() if key in QUERY_KEYS
        }
        self._state = SalesFilters.from_query(url_state, initial)
        self._propagated_search = self._state.search

        self._debouncer: Debouncer[str] = Debouncer(
            config.filters.search_debounce_ms,
            self._propagate_search,
            scheduler,
        )

    # ─── Reads ────────────────────────────────────────────────────────────────

    @property
    def filters(self) -> SalesFilters:
        """Current snapshot (a copy; mutating it does not affect the controller)."""
        return replace(self._state)

    @property
    def from_date(self) -> str:
        return self._state.from_date

    @property
    def to_date(self) -> str:
        return self._state.to_date

    @property
    def search(self) -> str:
        return self._state.search

    @property
    def has_client(self) -> Optional[bool]:
        return self._state.has_client

    @property
    def sort_column(self) -> str:
        return self._state.sort_column

    @property
    def sort_direction(self) -> str:
        return self._state.sort_direction

    # ─── Writes ───────────────────────────────────────────────────────────────

    def set_search(self, value: str) -> None:
        """Update the search text; the URL follows after the debounce delay."""
        self._state.search = value
        self._debouncer.call(value)

    def set_from(self, value: str) -> None:
        self._state.from_date = value
        self._sync()

    def set_to(self, value: str) -> None:
        self._state.to_date = value
        self._sync()

    def set_has_client(self, value: Optional[bool]) -> None:
        self._state.has_client = value
        self._sync()

    def set_sort_column(self, value: str) -> None:
        self._state.sort_column = value
        self._sync()

    def set_sort_direction(self, value: str) -> None:
        self._state.sort_direction = value
        self._sync()

    def toggle_sort(self, column: str) -> None:
        """Flip direction when re-selecting the active column, else sort it descending."""
        if self._state.sort_column == column:
            self._state.sort_direction = "asc" if self._state.sort_direction == "desc" else "desc"
        else:
            self._state.sort_column = column
            self._state.sort_direction = config.filters.default_sort_direction
        self._sync()

    def handle_date_preset(self, preset: str) -> None:
        """
        Apply a date preset.

        The scroll offset is saved first (when the page is scrolled) so the
        page can restore it after the filters re-render the list.
        """
        if self._session_storage is not None and self._scroll_position is not None:
            offset = self._scroll_position()
            if offset > 0:
                self._session_storage[config.filters.scroll_storage_key] = str(offset)

        date_range = date_range_from_preset(preset, self._today())
        self._state.from_date, self._state.to_date = date_range.as_str_tuple()
        self._sync()

    def clear_filters(self) -> None:
        """Reset search, dates and the client filter. Sort is kept."""
        self._debouncer.cancel()
        self._state.search = ""
        self._state.from_date = ""
        self._state.to_date = ""
        self._state.has_client = None
        self._propagated_search = ""
        self._sync()

    def close(self) -> None:
        """Stop mirroring; a pending search write is dropped."""
        self._debouncer.close()
        self._closed = True

    def __enter__(self) -> "SalesFilterController":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # ─── Mirroring ────────────────────────────────────────────────────────────

    def _propagate_search(self, value: str) -> None:
        self._propagated_search = value
        self._sync()

    def _sync(self) -> None:
        if self._closed:
            return
        mirrored = replace(self._state, search=self._propagated_search)
        self._store.update(mirrored.to_query())
        logger.debug("Filters mirrored to query", extra={"query": mirrored.to_query_string()})
