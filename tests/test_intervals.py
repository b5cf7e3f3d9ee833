"""Tests for interval mapping and provider symbol rewriting."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from candlechart.providers.intervals import (
    INTERVAL_MAP,
    VALID_INTERVALS,
    interval_minutes,
    is_regional,
    map_interval,
    provider_symbol,
)


class TestIntervalMapping:
    """
    *For any* application interval token, the provider token is the mapped
    value, and unknown tokens fall back to 5min.
    """

    @pytest.mark.parametrize(
        "interval,expected",
        [
            ("1m", "1min"),
            ("5m", "5min"),
            ("15m", "15min"),
            ("30m", "30min"),
            ("1h", "60min"),
        ],
    )
    def test_known_intervals(self, interval: str, expected: str):
        assert map_interval(interval) == expected

    def test_unknown_interval_defaults_to_5min(self):
        assert map_interval("bogus") == "5min"
        assert map_interval("") == "5min"

    def test_mapping_ignores_case_and_whitespace(self):
        assert map_interval(" 1H ") == "60min"

    @given(token=st.text(max_size=10))
    @settings(max_examples=100)
    def test_result_is_always_a_provider_token(self, token: str):
        """*For any* string, the mapped token is one the provider accepts."""
        assert map_interval(token) in INTERVAL_MAP.values()

    def test_interval_minutes(self):
        assert [interval_minutes(i) for i in VALID_INTERVALS] == [1, 5, 15, 30, 60]
        assert interval_minutes("bogus") == 5


class TestProviderSymbol:
    """Regional symbols are rewritten to the provider's separator."""

    def test_bse_symbol_is_rewritten(self):
        assert provider_symbol("RELIANCE.BSE") == "RELIANCE:BSE"

    def test_nse_symbol_is_rewritten(self):
        assert provider_symbol("TCS.NSE") == "TCS:NSE"

    def test_plain_symbol_is_unchanged(self):
        assert provider_symbol("IBM") == "IBM"

    def test_share_class_suffix_is_unchanged(self):
        assert provider_symbol("BRK.B") == "BRK.B"

    def test_is_regional(self):
        assert is_regional("RELIANCE.BSE")
        assert is_regional("infy.bse")
        assert not is_regional("IBM")
        assert not is_regional("BRK.B")

    @given(
        base=st.text(
            alphabet=st.characters(whitelist_categories=("Lu",)),
            min_size=1,
            max_size=10,
        )
    )
    @settings(max_examples=50)
    def test_rewrite_keeps_base_symbol(self, base: str):
        """*For any* base symbol, only the separator changes."""
        assert provider_symbol(f"{base}.BSE") == f"{base}:BSE"
