"""
Tests for atelier.enrichment module.
"""
from datetime import date

from atelier.enrichment import (
    Lookup,
    SalesEnricher,
    apply_local_sort,
    create_lookups,
    enrich_sales,
    filter_sales_by_search,
    sort_by_client_name,
)
from atelier.models import Client


class TestLookup:
    """Tests for Lookup container."""

    def test_get_known_id(self, sample_clients):
        lookup = Lookup(sample_clients)
        assert lookup.get("c2") is sample_clients[1]

    def test_get_unknown_and_none(self, sample_clients):
        """Unknown and None ids resolve to None instead of raising."""
        lookup = Lookup(sample_clients)
        assert lookup.get("nope") is None
        assert lookup.get(None) is None

    def test_contains_and_len(self, sample_clients):
        lookup = Lookup(sample_clients)
        assert "c1" in lookup
        assert None not in lookup
        assert len(lookup) == 3
        assert list(lookup) == sample_clients


class TestEnrichSales:
    """Tests for enrich_sales function."""

    def test_same_length_and_order(self, sample_sales, enriched_sales):
        """Output lines up one-to-one with the input."""
        assert [s.id for s in enriched_sales] == [s.id for s in sample_sales]

    def test_attachment_iff_reference_resolves(self, sample_sales, enriched_sales, sample_clients, sample_instruments):
        """client/instrument present exactly when the id exists in the lookup."""
        client_ids = {c.id for c in sample_clients}
        instrument_ids = {i.id for i in sample_instruments}

        for sale, enriched in zip(sample_sales, enriched_sales):
            assert (enriched.client is not None) == (sale.client_id in client_ids)
            assert (enriched.instrument is not None) == (sale.instrument_id in instrument_ids)

    def test_dangling_instrument(self, enriched_sales):
        """s5 points at a missing instrument but keeps its client."""
        s5 = enriched_sales[4]
        assert s5.instrument is None
        assert s5.client is not None
        assert s5.instrument_id == "i-missing"

    def test_attachments_are_lookup_records(self, enriched_sales, sample_clients):
        """Attached clients are the same objects, not copies."""
        assert enriched_sales[0].client is sample_clients[0]

    def test_input_not_mutated(self, sample_sales, sample_clients, sample_instruments):
        """Base sales keep their original fields."""
        before = [s.to_dict() for s in sample_sales]
        enrich_sales(sample_sales, *create_lookups(sample_clients, sample_instruments))
        assert [s.to_dict() for s in sample_sales] == before

    def test_empty(self):
        assert enrich_sales([], Lookup(), Lookup()) == []


class TestSalesEnricher:
    """Tests for memoized enrichment."""

    def test_identical_inputs_reuse_result(self, sample_sales, sample_clients, sample_instruments):
        """Same objects in, same list out."""
        enricher = SalesEnricher()
        first = enricher.enrich(sample_sales, sample_clients, sample_instruments)
        second = enricher.enrich(sample_sales, sample_clients, sample_instruments)
        assert second is first

    def test_new_sales_reuse_lookups(self, sample_sales, sample_clients, sample_instruments):
        """A new sales list re-enriches but keeps the lookups."""
        enricher = SalesEnricher()
        enricher.enrich(sample_sales, sample_clients, sample_instruments)
        lookups = enricher.lookups(sample_clients, sample_instruments)

        result = enricher.enrich(list(sample_sales), sample_clients, sample_instruments)
        assert enricher.lookups(sample_clients, sample_instruments) is lookups
        assert result[0].client is sample_clients[0]

    def test_equal_but_distinct_inputs_recompute(self, sample_sales, sample_clients, sample_instruments):
        """Memoization is by identity: an equal copy is a new input."""
        enricher = SalesEnricher()
        first = enricher.enrich(sample_sales, sample_clients, sample_instruments)
        second = enricher.enrich(sample_sales, list(sample_clients), sample_instruments)
        assert second is not first
        assert [s.to_dict() for s in second] == [s.to_dict() for s in first]

    def test_results_match_enrich_sales(self, sample_sales, sample_clients, sample_instruments, enriched_sales):
        enricher = SalesEnricher()
        result = enricher.enrich(sample_sales, sample_clients, sample_instruments)
        assert [s.to_dict() for s in result] == [s.to_dict() for s in enriched_sales]


class TestClientNameSort:
    """Tests for the derived client-name sort."""

    def _sales(self, enriched_factory):
        day = date(2026, 1, 1)
        john = Client(id="c1", first_name="John", last_name="Doe")
        jane = Client(id="c2", first_name="Jane", last_name="Smith")
        return [
            enriched_factory("s-john", 100.0, day, client=john),
            enriched_factory("s-jane", 200.0, day, client=jane),
        ]

    def test_ascending(self, enriched_factory):
        """Jane Smith sorts before John Doe."""
        result = sort_by_client_name(self._sales(enriched_factory), "asc")
        assert [s.id for s in result] == ["s-jane", "s-john"]

    def test_descending(self, enriched_factory):
        result = sort_by_client_name(self._sales(enriched_factory), "desc")
        assert [s.id for s in result] == ["s-john", "s-jane"]

    def test_stable_for_equal_names(self, enriched_factory):
        """Sales of the same client keep their relative order."""
        day = date(2026, 1, 1)
        ann = Client(id="c1", first_name="Ann")
        sales = [
            enriched_factory("a", 1.0, day, client=ann),
            enriched_factory("b", 2.0, day, client=ann),
            enriched_factory("c", 3.0, day, client=ann),
        ]
        assert [s.id for s in sort_by_client_name(sales)] == ["a", "b", "c"]

    def test_missing_client_sorts_as_empty(self, enriched_factory):
        day = date(2026, 1, 1)
        sales = [
            enriched_factory("named", 1.0, day, client=Client(id="c1", first_name="Ann")),
            enriched_factory("anon", 1.0, day),
        ]
        assert [s.id for s in sort_by_client_name(sales)] == ["anon", "named"]

    def test_email_fallback(self, enriched_factory):
        """Clients without names sort by email."""
        day = date(2026, 1, 1)
        sales = [
            enriched_factory("z", 1.0, day, client=Client(id="c1", email="zoe@example.com")),
            enriched_factory("a", 1.0, day, client=Client(id="c2", email="adam@example.com")),
        ]
        assert [s.id for s in sort_by_client_name(sales)] == ["a", "z"]

    def test_other_columns_keep_input_order(self, enriched_factory):
        """Store-sorted columns are passed through untouched."""
        sales = self._sales(enriched_factory)
        for column in ("sale_date", "sale_price"):
            assert apply_local_sort(sales, column, "asc") is sales

    def test_apply_local_sort_client_name(self, enriched_factory):
        result = apply_local_sort(self._sales(enriched_factory), "client_name", "asc")
        assert [s.id for s in result] == ["s-jane", "s-john"]


class TestSearch:
    """Tests for filter_sales_by_search function."""

    def test_empty_search_returns_all(self, enriched_sales):
        assert filter_sales_by_search(enriched_sales, "") == enriched_sales

    def test_matches_client_name(self, enriched_sales):
        result = filter_sales_by_search(enriched_sales, "jane")
        assert [s.id for s in result] == ["s2"]

    def test_matches_client_email(self, enriched_sales):
        result = filter_sales_by_search(enriched_sales, "ZOE@")
        assert [s.id for s in result] == ["s5"]

    def test_matches_instrument_fields(self, enriched_sales):
        assert [s.id for s in filter_sales_by_search(enriched_sales, "stradivari")] == ["s1", "s3"]
        assert [s.id for s in filter_sales_by_search(enriched_sales, "BO001")] == ["s4"]

    def test_no_match(self, enriched_sales):
        assert filter_sales_by_search(enriched_sales, "guadagnini") == []
