"""Property-based tests for synthetic candle generation."""

import random
from datetime import datetime, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from candlechart.providers.synthetic import (
    BASE_VOLUME,
    DEFAULT_BASE_PRICE,
    REGIONAL_VOLATILITY,
    SYMBOL_PROFILES,
    VOLUME_SPAN,
    generate_candles,
    generate_envelope,
    get_symbol_profile,
)

symbols = st.sampled_from(sorted(SYMBOL_PROFILES) + ["UNKNOWN", "FOO.NSE", "xyz"])


class TestSyntheticSeries:
    """
    *For any* symbol and count N, the generator yields exactly N candles,
    newest first and evenly spaced, each satisfying the OHLC range
    invariant, the newest stamped at generation time.
    """

    @given(
        symbol=symbols,
        count=st.integers(min_value=0, max_value=300),
        seed=st.integers(min_value=0, max_value=2**32),
    )
    @settings(max_examples=100)
    def test_length_order_and_range(self, symbol: str, count: int, seed: int):
        candles = generate_candles(symbol, count, rng=random.Random(seed))

        assert len(candles) == count
        stamps = [c.timestamp for c in candles]
        assert all(a - b == timedelta(minutes=5) for a, b in zip(stamps, stamps[1:]))
        for c in candles:
            assert c.low <= min(c.open, c.close) <= max(c.open, c.close) <= c.high

    def test_newest_candle_is_now(self):
        before = datetime.now()
        candles = generate_candles("IBM", 10)
        after = datetime.now()

        assert before <= candles[0].timestamp <= after
        assert abs((datetime.now() - candles[0].timestamp).total_seconds()) < 5

    @given(interval=st.sampled_from([1, 5, 15, 30, 60]))
    @settings(max_examples=10)
    def test_interval_spacing(self, interval: int):
        now = datetime(2024, 1, 1, 15, 30)
        candles = generate_candles("IBM", 4, rng=random.Random(7), now=now, interval_minutes=interval)
        assert candles[-1].timestamp == now - timedelta(minutes=3 * interval)

    @given(
        symbol=symbols,
        seed=st.integers(min_value=0, max_value=2**32),
    )
    @settings(max_examples=50)
    def test_random_walk_links_candles(self, symbol: str, seed: int):
        """Each candle opens at the previous candle's close."""
        candles = generate_candles(symbol, 20, rng=random.Random(seed))
        profile = get_symbol_profile(symbol)

        assert candles[0].open == profile.base_price
        for prev, cur in zip(candles, candles[1:]):
            assert cur.open == prev.close
        for c in candles:
            assert abs(c.close / c.open - 1) <= profile.volatility / 100 + 1e-12

    @given(
        symbol=symbols,
        seed=st.integers(min_value=0, max_value=2**32),
    )
    @settings(max_examples=50)
    def test_volumes_within_profile_bounds(self, symbol: str, seed: int):
        multiplier = get_symbol_profile(symbol).volume_multiplier
        for c in generate_candles(symbol, 25, rng=random.Random(seed)):
            assert BASE_VOLUME * multiplier - 1 <= c.volume < (BASE_VOLUME + VOLUME_SPAN) * multiplier
            assert int(c.volume * 0.3) <= c.put_volume <= c.volume * 0.5
            assert int(c.volume * 0.3) <= c.call_volume <= c.volume * 0.5

    def test_same_seed_same_series(self):
        now = datetime(2024, 6, 3, 10, 0)
        first = generate_candles("AAPL", 50, rng=random.Random(42), now=now)
        second = generate_candles("AAPL", 50, rng=random.Random(42), now=now)
        assert first == second

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            generate_candles("IBM", -1)

    def test_envelope_is_success(self):
        envelope = generate_envelope("MSFT", 100, rng=random.Random(3))
        assert envelope.status == "success"
        assert len(envelope.data) == 100


class TestSymbolProfiles:
    """Profile lookup for known, unknown and regional symbols."""

    def test_known_symbol(self):
        assert get_symbol_profile("IBM") is SYMBOL_PROFILES["IBM"]

    def test_lookup_is_case_insensitive(self):
        assert get_symbol_profile("reliance.bse") is SYMBOL_PROFILES["RELIANCE.BSE"]

    def test_unknown_symbol_defaults(self):
        profile = get_symbol_profile("NOPE")
        assert profile.base_price == DEFAULT_BASE_PRICE
        assert profile.volatility == 1.0
        assert profile.volume_multiplier == 1.0

    def test_unknown_regional_symbol_is_calmer(self):
        profile = get_symbol_profile("NOPE.BSE")
        assert profile.base_price == DEFAULT_BASE_PRICE
        assert profile.volatility == REGIONAL_VOLATILITY

    def test_regional_table_entries_are_calmer(self):
        for symbol, profile in SYMBOL_PROFILES.items():
            if symbol.endswith(".BSE"):
                assert profile.volatility < 1.0

    def test_unknown_symbol_starts_at_default_price(self):
        candles = generate_candles("NOPE", 1, rng=random.Random(0))
        assert candles[0].open == DEFAULT_BASE_PRICE
