"""
Tests for table lookup.

Verifies key/date lookups, defaults, fail-fast on missing tables, the
PUBLISHED-only rule and memoization.
"""

from datetime import date

import pytest

from payroll_config import (
    ConfigStatus,
    Country,
    FilingStatus,
    TaxRegime,
    clear_table_cache,
    get_active_tax_table,
    get_tax_table,
)
from payroll_config.registry import load_tables
from payroll_kernel.exceptions import (
    ConfigurationMissingError,
    InvalidBracketTableError,
    InvalidTaxTableError,
)


class TestGetTaxTable:
    """Lookup by (country, fiscal year, regime)."""

    def test_default_regimes(self):
        assert get_tax_table("IN", 2025).regime == "NEW"
        assert get_tax_table("US", 2025).regime == "SINGLE"

    def test_regime_accepts_enum_and_lowercase(self):
        assert get_tax_table(Country.IN, 2025, TaxRegime.OLD).key == "IN:2025:OLD"
        assert get_tax_table("in", 2025, "old").key == "IN:2025:OLD"
        assert (
            get_tax_table("US", 2025, FilingStatus.HEAD_OF_HOUSEHOLD).regime
            == "HEAD_OF_HOUSEHOLD"
        )

    def test_missing_year_fails_fast(self):
        with pytest.raises(ConfigurationMissingError) as exc_info:
            get_tax_table("IN", 2030)

        err = exc_info.value
        assert err.code == "CONFIGURATION_MISSING"
        assert err.country == "IN"
        assert err.fiscal_year == 2030
        assert err.regime == "NEW"

    def test_missing_regime_does_not_fall_back(self):
        with pytest.raises(ConfigurationMissingError):
            get_tax_table("US", 2025, "QUALIFYING_WIDOW")

    def test_memoized(self):
        assert get_tax_table("IN", 2025) is get_tax_table("IN", 2025)

    def test_cache_clear_reloads(self):
        first = get_tax_table("IN", 2025)
        clear_table_cache()
        second = get_tax_table("IN", 2025)

        assert first is not second
        assert first == second

    def test_emits_config_trace(self, captured_logs):
        table = get_tax_table("US", 2025)

        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_CONFIG_TRACE"]
        assert traces[-1]["table_key"] == "US:2025:SINGLE"
        assert traces[-1]["checksum"] == table.checksum


class TestGetActiveTaxTable:
    """Lookup by date."""

    @pytest.mark.parametrize("as_of", [date(2025, 4, 1), date(2025, 9, 15), date(2026, 3, 31)])
    def test_india_fiscal_year_covers_april_to_march(self, as_of):
        assert get_active_tax_table("IN", as_of).fiscal_year == 2025

    def test_before_fiscal_year(self):
        with pytest.raises(ConfigurationMissingError) as exc_info:
            get_active_tax_table("IN", date(2025, 3, 31))

        assert exc_info.value.as_of == date(2025, 3, 31)
        assert exc_info.value.fiscal_year is None

    def test_us_calendar_year(self):
        assert get_active_tax_table("US", date(2025, 12, 31), "SINGLE").fiscal_year == 2025
        with pytest.raises(ConfigurationMissingError):
            get_active_tax_table("US", date(2026, 1, 1))


class TestLoading:
    """Directory loading rules."""

    def test_only_published_served(self, raw_india_set, write_set):
        raw_india_set["status"] = ConfigStatus.DRAFT.value
        sets_dir = write_set(raw_india_set)

        assert load_tables(sets_dir) == {}
        with pytest.raises(ConfigurationMissingError):
            get_tax_table("IN", 2025, config_dir=sets_dir)

    def test_superseded_version_alongside_published(self, raw_india_set, write_set):
        write_set(dict(raw_india_set, status="superseded"), "in_fy2025_v1.yaml")
        sets_dir = write_set(dict(raw_india_set, version=2), "in_fy2025_v2.yaml")

        assert get_tax_table("IN", 2025, config_dir=sets_dir).version == 2

    def test_duplicate_published_key_rejected(self, raw_india_set, write_set):
        write_set(raw_india_set, "a.yaml")
        sets_dir = write_set(raw_india_set, "b.yaml")

        with pytest.raises(InvalidTaxTableError):
            get_tax_table("IN", 2025, config_dir=sets_dir)

    def test_invalid_brackets_rejected_at_load(self, raw_india_set, write_set):
        raw_india_set["regimes"]["NEW"]["brackets"][1]["min"] = 450000
        sets_dir = write_set(raw_india_set)

        with pytest.raises(InvalidBracketTableError):
            get_tax_table("IN", 2025, config_dir=sets_dir)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_tax_table("IN", 2025, config_dir=tmp_path / "nope")
