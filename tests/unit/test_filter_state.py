"""
Tests for atelier.filter_state module.
"""
from datetime import date

import pytest

from atelier.filter_state import DictQueryStore, SalesFilterController, SalesFilters


@pytest.fixture
def query_store():
    return DictQueryStore()


@pytest.fixture
def controller(query_store, scheduler):
    with SalesFilterController(query_store, scheduler=scheduler, today=lambda: date(2026, 3, 15)) as ctrl:
        yield ctrl


class TestSalesFilters:
    """Tests for the SalesFilters snapshot."""

    def test_defaults(self):
        filters = SalesFilters()
        assert filters.sort_column == "sale_date"
        assert filters.sort_direction == "desc"
        assert filters.has_client is None
        assert not filters.is_filtered

    def test_instrument_filter_not_mirrored(self):
        """instrument_id narrows results but never reaches the URL."""
        filters = SalesFilters(instrument_id="i1")
        assert filters.is_filtered
        assert filters.to_query_string() == ""

    def test_default_fields_omitted_from_query(self):
        """Default sort column is not written to the query string."""
        assert SalesFilters(sort_column="sale_date").to_query()["sortColumn"] is None
        assert SalesFilters().to_query_string() == ""

    def test_non_default_fields_included(self):
        query = SalesFilters(sort_column="sale_price", has_client=False).to_query()
        assert query["sortColumn"] == "sale_price"
        assert query["hasClient"] == "false"

    def test_round_trip(self):
        """Serializing and re-parsing gives back the same snapshot."""
        filters = SalesFilters(
            from_date="2026-01-01",
            to_date="2026-01-31",
            search="jane smith",
            has_client=True,
            sort_column="client_name",
            sort_direction="asc",
        )
        assert SalesFilters.from_query_string(filters.to_query_string()) == filters

    def test_round_trip_defaults(self):
        assert SalesFilters.from_query_string(SalesFilters().to_query_string()) == SalesFilters()

    def test_from_query_priority(self):
        """Query value beats initial value, which beats the fallback."""
        filters = SalesFilters.from_query(
            {"search": "violin"},
            initial={"search": "cello", "sort_column": "sale_price"},
        )
        assert filters.search == "violin"
        assert filters.sort_column == "sale_price"
        assert filters.sort_direction == "desc"

    def test_empty_query_value_counts_as_absent(self):
        filters = SalesFilters.from_query({"search": ""}, initial={"search": "cello"})
        assert filters.search == "cello"

    def test_has_client_parsing(self):
        assert SalesFilters.from_query({"hasClient": "true"}).has_client is True
        assert SalesFilters.from_query({"hasClient": "false"}).has_client is False
        assert SalesFilters.from_query({"hasClient": "maybe"}).has_client is None
        assert SalesFilters.from_query({}, initial={"has_client": False}).has_client is False


class TestDictQueryStore:
    """Tests for the in-memory query store."""

    def test_none_removes_key(self):
        store = DictQueryStore({"search": "x", "page": "2"})
        store.update({"search": None})
        assert store.params == {"page": "2"}
        assert store.writes == [{"search": None}]

    def test_query_string(self):
        store = DictQueryStore.from_query_string("?from=2026-01-01&search=a+b")
        assert store.get_all() == {"from": "2026-01-01", "search": "a b"}
        assert store.query_string == "from=2026-01-01&search=a+b"


class TestControllerInit:
    """Tests for controller construction."""

    def test_reads_query_once(self, scheduler):
        store = DictQueryStore({"from": "2026-01-01", "sortColumn": "sale_price", "page": "3"})
        ctrl = SalesFilterController(store, initial={"to_date": "2026-01-31"}, scheduler=scheduler)

        assert ctrl.from_date == "2026-01-01"
        assert ctrl.to_date == "2026-01-31"
        assert ctrl.sort_column == "sale_price"
        assert ctrl.search == ""
        ctrl.close()

    def test_no_write_at_construction(self, query_store, controller):
        assert query_store.writes == []

    def test_filters_property_is_copy(self, controller):
        snapshot = controller.filters
        snapshot.search = "changed"
        assert controller.search == ""


class TestControllerWrites:
    """Tests for mirroring changes to the query string."""

    def test_immediate_fields(self, query_store, controller):
        controller.set_from("2026-01-01")
        assert query_store.params == {"from": "2026-01-01"}
        assert len(query_store.writes) == 1

        controller.set_has_client(True)
        assert query_store.params == {"from": "2026-01-01", "hasClient": "true"}

    def test_search_debounced_latest_wins(self, query_store, controller, scheduler):
        """Typing a, ab, abc quickly yields exactly one write with abc."""
        controller.set_search("a")
        scheduler.advance(0.1)
        controller.set_search("ab")
        scheduler.advance(0.1)
        controller.set_search("abc")

        assert controller.search == "abc"
        assert query_store.writes == []

        scheduler.advance(0.5)
        assert len(query_store.writes) == 1
        assert query_store.writes[0]["search"] == "abc"
        assert query_store.params == {"search": "abc"}

    def test_other_fields_use_last_propagated_search(self, query_store, controller, scheduler):
        """A date change mid-typing does not leak the unsettled search text."""
        controller.set_search("vio")
        controller.set_from("2026-01-01")

        assert query_store.params == {"from": "2026-01-01"}

        scheduler.advance(0.5)
        assert query_store.params == {"from": "2026-01-01", "search": "vio"}

    def test_default_sort_column_removed(self, query_store, controller):
        controller.set_sort_column("sale_price")
        assert query_store.params["sortColumn"] == "sale_price"

        controller.set_sort_column("sale_date")
        assert "sortColumn" not in query_store.params

    def test_toggle_sort(self, query_store, controller):
        controller.toggle_sort("sale_date")
        assert controller.sort_direction == "asc"
        assert query_store.params == {"sortDirection": "asc"}

        controller.toggle_sort("client_name")
        assert controller.sort_column == "client_name"
        assert controller.sort_direction == "desc"
        assert query_store.params == {"sortColumn": "client_name"}

    def test_set_sort_direction(self, query_store, controller):
        controller.set_sort_direction("asc")
        assert query_store.params == {"sortDirection": "asc"}

    def test_set_to(self, query_store, controller):
        controller.set_to("2026-02-01")
        assert query_store.params == {"to": "2026-02-01"}


class TestDatePresets:
    """Tests for handle_date_preset."""

    def test_applies_range(self, query_store, controller):
        controller.handle_date_preset("lastMonth")
        assert controller.from_date == "2026-02-01"
        assert controller.to_date == "2026-02-28"
        assert query_store.params == {"from": "2026-02-01", "to": "2026-02-28"}

    def test_saves_scroll_position(self, query_store, scheduler):
        storage = {}
        ctrl = SalesFilterController(
            query_store,
            scheduler=scheduler,
            session_storage=storage,
            scroll_position=lambda: 120.0,
            today=lambda: date(2026, 3, 15),
        )
        ctrl.handle_date_preset("last7")
        assert storage == {"salesScrollPosition": "120.0"}
        ctrl.close()

    def test_top_of_page_not_saved(self, query_store, scheduler):
        storage = {}
        ctrl = SalesFilterController(
            query_store,
            scheduler=scheduler,
            session_storage=storage,
            scroll_position=lambda: 0,
        )
        ctrl.handle_date_preset("thisMonth")
        assert storage == {}
        ctrl.close()

    def test_unknown_preset(self, controller):
        with pytest.raises(ValueError):
            controller.handle_date_preset("forever")


class TestClearAndClose:
    """Tests for clear_filters and close."""

    def test_clear_filters_keeps_sort(self, query_store, controller, scheduler):
        controller.set_from("2026-01-01")
        controller.set_has_client(False)
        controller.set_sort_column("sale_price")
        controller.set_search("pending")

        controller.clear_filters()
        scheduler.advance(1.0)

        assert controller.search == ""
        assert controller.from_date == ""
        assert controller.has_client is None
        assert query_store.params == {"sortColumn": "sale_price"}
        assert all(write.get("search") is None for write in query_store.writes)

    def test_close_drops_pending_search(self, query_store, controller, scheduler):
        controller.set_search("abc")
        controller.close()
        scheduler.advance(1.0)
        assert query_store.writes == []

    def test_no_writes_after_close(self, query_store, controller):
        controller.close()
        controller.set_from("2026-01-01")
        assert query_store.writes == []
