"""Tests for shared price and currency helpers."""

from decimal import Decimal

import pytest

from wishes_tracer.ingest.base import (
    currency_from_host,
    currency_from_locale,
    join_price_parts,
    parse_decimal,
    url_host,
)


class TestParseDecimal:
    def test_plain_number(self):
        assert parse_decimal("5899.00") == Decimal("5899.00")

    def test_strips_symbols_and_spaces(self):
        assert parse_decimal(" $1234.5 ") == Decimal("1234.5")

    @pytest.mark.parametrize("text", [None, "", "abc", "1.2.3", "NaN"])
    def test_garbage_is_zero(self, text):
        assert parse_decimal(text) == Decimal("0")


class TestJoinPriceParts:
    def test_comma_thousands_with_fraction(self):
        assert join_price_parts("5,165.", "49") == Decimal("5165.49")

    def test_dot_thousands_without_fraction(self):
        assert join_price_parts("5.899") == Decimal("5899")

    def test_missing_whole(self):
        assert join_price_parts(None, "99") == Decimal("0")
        assert join_price_parts("", "99") == Decimal("0")


class TestUrlHost:
    def test_lowercases(self):
        assert url_host("https://WWW.Amazon.COM.mx/dp/X") == "www.amazon.com.mx"

    @pytest.mark.parametrize("url", [None, "", "not a url", "http://[::1"])
    def test_malformed(self, url):
        assert url_host(url) == ""


class TestCurrency:
    def test_locale_region(self):
        assert currency_from_locale("es-MX") == "MXN"
        assert currency_from_locale("pt_BR") == "BRL"

    def test_unknown_or_missing_locale(self):
        assert currency_from_locale("es") is None
        assert currency_from_locale("xx-ZZ") is None
        assert currency_from_locale(None) is None

    def test_host_suffix_order(self):
        suffixes = {".com.br": "BRL", ".br": "BRL", ".com.mx": "MXN"}
        assert currency_from_host("https://www.amazon.com.mx/x", suffixes, "USD") == "MXN"
        assert currency_from_host("https://loja.exemplo.br/x", suffixes, "USD") == "BRL"

    def test_host_default(self):
        assert currency_from_host("https://www.amazon.com/x", {".com.mx": "MXN"}, "USD") == "USD"
        assert currency_from_host("garbage", {".com.mx": "MXN"}, "USD") == "USD"
