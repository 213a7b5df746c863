"""
Integration tests for web/services/sales_service.py

Covers the per-store reference cache against in-memory DuckDB stores.
"""
import gc
from datetime import date

import pytest

from atelier.filter_state import SalesFilters
from atelier.store import SalesStore
from web.services import sales_service


async def _store_with_client(client_id: str, first_name: str) -> SalesStore:
    store = SalesStore(":memory:")
    await store.connect()
    await store.upsert_clients([{"id": client_id, "first_name": first_name}])
    return store


@pytest.fixture(autouse=True)
def clear_cache():
    sales_service.invalidate_reference_cache()
    yield
    sales_service.invalidate_reference_cache()


class TestReferenceCache:
    """Tests for get_reference_data caching."""

    @pytest.mark.asyncio
    async def test_reused_within_store(self):
        store = await _store_with_client("c1", "John")
        first, _ = await sales_service.get_reference_data(store)
        await store.upsert_clients([{"id": "c2", "first_name": "Jane"}])
        second, _ = await sales_service.get_reference_data(store)
        assert second is first
        await store.close()

    @pytest.mark.asyncio
    async def test_entry_dies_with_store(self):
        """A new store never sees clients cached for a collected one."""
        old = await _store_with_client("c1", "John")
        await sales_service.get_reference_data(old)
        await old.close()
        del old
        gc.collect()
        assert len(sales_service._reference_cache) == 0

        new = await _store_with_client("c9", "Zoe")
        clients, _ = await sales_service.get_reference_data(new)
        assert [c.id for c in clients] == ["c9"]
        await new.close()

    @pytest.mark.asyncio
    async def test_separate_stores(self):
        first = await _store_with_client("c1", "John")
        second = await _store_with_client("c2", "Jane")
        a, _ = await sales_service.get_reference_data(first)
        b, _ = await sales_service.get_reference_data(second)
        assert [c.id for c in a] == ["c1"]
        assert [c.id for c in b] == ["c2"]
        await first.close()
        await second.close()


class TestSalesSummary:
    """Tests for get_sales_summary insights."""

    @pytest.mark.asyncio
    async def test_alerts_use_given_today(self):
        store = SalesStore(":memory:")
        await store.connect()
        await store.upsert_sales([
            {"id": "p", "sale_price": 1000.0, "sale_date": date(2026, 3, 3)},
            {"id": "n", "sale_price": 400.0, "sale_date": date(2026, 3, 10)},
        ])

        summary = await sales_service.get_sales_summary(store, SalesFilters(), today=date(2026, 3, 15))
        assert [a["title"] for a in summary["alerts"]] == ["Revenue dropped"]
        await store.close()
