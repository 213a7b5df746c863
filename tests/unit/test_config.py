"""
Tests for atelier.config module.
"""
import dataclasses
import importlib

import pytest

from atelier.config import AppConfig, ConfigurationError, config, validate_config
from atelier.models import RelationshipType


class TestDefaults:
    """Tests for configuration defaults."""

    def test_filter_defaults(self):
        assert config.filters.search_debounce_ms == 400
        assert config.filters.default_sort_column == "sale_date"
        assert config.filters.default_sort_direction == "desc"
        assert config.filters.scroll_storage_key == "salesScrollPosition"

    def test_chart_defaults(self):
        assert config.charts.top_limit == 10
        assert config.charts.monthly_window == 12
        assert config.charts.max_gap_fill_days == 731
        assert config.charts.weekday_names[0] == "Sun"

    def test_identifier_defaults(self):
        assert config.identifiers.min_digits == 3
        assert config.identifiers.default_prefix == "IN"
        assert config.identifiers.client_prefix == "CL"

    def test_relationship_order(self):
        assert config.connections.order == {"Interested": 0, "Booked": 1, "Sold": 2, "Owned": 3}
        assert config.connections.relationship_types == tuple(t.value for t in RelationshipType)

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.charts.top_limit = 5


class TestEnvironment:
    """Tests for environment overrides."""

    def test_debounce_from_env(self, monkeypatch):
        monkeypatch.setenv("SEARCH_DEBOUNCE_MS", "250")
        assert AppConfig().filters.search_debounce_ms == 250

    def test_db_path_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ATELIER_DB_PATH", str(tmp_path / "x.duckdb"))
        assert AppConfig().store.db_path == tmp_path / "x.duckdb"


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_defaults_are_valid(self):
        validate_config(require_store=False)

    def test_directory_db_path_rejected(self, monkeypatch, tmp_path):
        # atelier re-exports the config instance under the module's name
        config_module = importlib.import_module("atelier.config")
        monkeypatch.setattr(config_module, "config", AppConfig(
            store=dataclasses.replace(config.store, db_path=tmp_path),
        ))
        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(require_store=True)
        assert "directory" in str(exc_info.value)
