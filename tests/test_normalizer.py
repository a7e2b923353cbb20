"""Test ticker payload normalization."""

import math
import pytest

from spreadbot.core.normalizer import PriceNormalizer, generic_price
from spreadbot.core.utils import parse_positive_float
from sample_data import (
    BITGET_V2_TICKER, BITGET_V1_TICKER, BINANCE_TICKER, BINANCE_24H_TICKER,
    OKX_TICKER, HUOBI_STYLE_TICKER, BITGET_V2_BLANK_LAST,
)


class TestExchangeShapes:
    """Test per-exchange ticker shapes."""

    def setup_method(self):
        self.normalizer = PriceNormalizer()

    def test_bitget_v2_list_envelope(self):
        """Bitget v2 wraps the ticker in a list under data."""
        reading = self.normalizer.normalize(BITGET_V2_TICKER, "bitget", "ETHUSDT", 1000)

        assert reading is not None
        assert reading.price == 2050.25
        assert reading.exchange_id == "bitget"
        assert reading.symbol == "ETHUSDT"
        assert reading.observed_at_ms == 1000

    def test_bitget_v1_close_field(self):
        """Bitget v1 uses close inside a data object."""
        reading = self.normalizer.normalize(BITGET_V1_TICKER, "bitget", "BTCUSDT")
        assert reading.price == 27000.50

    def test_binance_price_fields(self):
        """Binance tickers carry price or lastPrice at the top level."""
        assert self.normalizer.normalize(BINANCE_TICKER, "binance", "ETHUSDT").price == 2049.1
        assert self.normalizer.normalize(BINANCE_24H_TICKER, "binance", "ETHUSDT").price == 2049.1

    def test_okx_last(self):
        """OKX wraps the ticker in a list under data with last."""
        assert self.normalizer.normalize(OKX_TICKER, "okx", "ETHUSDT").price == 2051.7

    def test_unknown_exchange_uses_generic_chain(self):
        """Unknown exchanges fall back to envelope and synonym probing."""
        reading = self.normalizer.normalize({"result": {"lastPrice": "12.5"}}, "kraken", "XRPUSDT")
        assert reading.price == 12.5

    def test_nested_tick_close(self):
        """A tick.close object is recognized."""
        assert self.normalizer.normalize(HUOBI_STYLE_TICKER, "huobi", "ETHUSDT").price == 2048.9
        assert generic_price({"data": {"tick": {"close": "3.5"}}}) == 3.5

    def test_direct_short_fields(self):
        """Direct last/price/p fields are accepted."""
        assert generic_price({"p": "101.5"}) == 101.5
        assert generic_price({"last": 99}) == 99.0

    def test_field_scan_last_resort(self):
        """The first numeric field is used when nothing else matches."""
        assert generic_price({"name": "eth", "value": "42.0", "other": "7"}) == 42.0

    def test_register_custom_shape(self):
        """A registered shape runs before the generic chain."""
        self.normalizer.register("custom", lambda payload: 7.0)
        assert self.normalizer.normalize({"price": "1"}, "custom", "X").price == 7.0

    def test_failing_shape_falls_back(self):
        """A shape that raises does not stop normalization."""
        def broken(payload):
            raise KeyError("boom")

        self.normalizer.register("broken", broken)
        assert self.normalizer.normalize({"price": "5"}, "broken", "X").price == 5.0


class TestAbsentReadings:
    """Test payloads that must normalize to no reading."""

    def setup_method(self):
        self.normalizer = PriceNormalizer()

    @pytest.mark.parametrize("payload", [
        {},
        None,
        [],
        [{"price": "100"}],
        {"name": "eth", "status": "ok"},
        {"price": "abc", "last": ""},
        {"price": "0"},
        {"price": -5},
        {"price": "nan"},
        {"price": "inf"},
        {"price": True},
        "2050.1",
        {"data": []},
        {"data": None, "result": "x"},
    ])
    def test_absent(self, payload):
        """Malformed or priceless payloads never raise."""
        assert self.normalizer.normalize(payload, "bitget", "ETHUSDT") is None

    def test_never_non_finite(self):
        """Readings are always finite and positive."""
        reading = self.normalizer.normalize({"price": "1e308"}, "binance", "X")
        assert reading is not None
        assert math.isfinite(reading.price) and reading.price > 0


class TestMetadataNeverPriced:
    """Test that envelope metadata and 24h statistics never become a price."""

    def setup_method(self):
        self.normalizer = PriceNormalizer()

    @pytest.mark.parametrize("exchange", ["bitget", "kraken"])
    def test_blank_last_price_is_absent(self, exchange):
        """A blank lastPr is absent, not requestTime, ts or high24h."""
        assert self.normalizer.normalize(BITGET_V2_BLANK_LAST, exchange, "ETHUSDT") is None

    def test_envelope_not_scanned_when_data_present(self):
        """Status codes and timestamps outside the ticker are ignored."""
        payload = {"code": 200, "requestTime": 1695808949532, "data": {"symbol": "ETHUSDT"}}
        assert generic_price(payload) is None

    @pytest.mark.parametrize("payload", [
        {"code": 200, "timestamp": 1695808949532},
        {"ts": 1695808949532, "serverTime": 1695808949000, "status": 1},
        {"orderId": "1001", "tradeId": 77, "time": 1695808949532},
        {"quoteVolume": "1234.5", "high24h": "1700", "bidPr": "1669.9"},
    ])
    def test_metadata_only_payloads(self, payload):
        assert generic_price(payload) is None

    def test_scan_skips_metadata_before_value(self):
        """The scan passes over timestamps to the first plain number."""
        assert generic_price({"requestTime": 1695808949532, "value": "42.5"}) == 42.5

    def test_stats_need_a_last_price(self):
        """Stats extraction also finds no last price."""
        assert self.normalizer.normalize_stats(BITGET_V2_BLANK_LAST, "bitget", "ETHUSDT") is None


class TestOversizedNumbers:
    """Test numbers too large for a float."""

    def test_parse_huge_integer(self):
        assert parse_positive_float(10 ** 400) is None

    def test_normalize_huge_integer(self):
        assert PriceNormalizer().normalize({"price": 10 ** 400}, "binance", "X") is None

    def test_stats_huge_integer(self):
        """Oversized 24h fields yield no stats instead of raising."""
        payload = {"data": [{"lastPr": "1", "high24h": 10 ** 400, "low24h": "1"}]}
        assert PriceNormalizer().normalize_stats(payload, "bitget", "X") is None


class TestMarketStats:
    """Test 24h statistics extraction."""

    def setup_method(self):
        self.normalizer = PriceNormalizer()

    def test_bitget_stats(self):
        """High/low come from the same envelope as the price."""
        stats = self.normalizer.normalize_stats(BITGET_V2_TICKER, "bitget", "ETHUSDT")

        assert stats.last == 2050.25
        assert stats.high_24h == 2100.50
        assert stats.low_24h == 2000.00
        assert stats.volatility_percent == pytest.approx(5.025)

    def test_binance_stats(self):
        """Binance 24h ticker uses highPrice/lowPrice."""
        stats = self.normalizer.normalize_stats(BINANCE_24H_TICKER, "binance", "ETHUSDT")
        assert stats.high_24h == 2101.0
        assert stats.low_24h == 1999.0

    def test_incomplete_stats(self):
        """A missing low price yields no stats."""
        assert self.normalizer.normalize_stats({"data": [{"lastPr": "1", "high24h": "2"}]},
                                               "bitget", "X") is None
