"""Tests for vendor page strategies and the strategy selector."""

from decimal import Decimal

import pytest

from wishes_tracer.ingest.base import DEFAULT_TITLE
from wishes_tracer.ingest.errors import UnsupportedVendorError
from wishes_tracer.ingest.selector import StrategySelector
from wishes_tracer.ingest.strategies import AmazonStrategy, MercadoLibreStrategy

AMAZON_MX_URL = "https://www.amazon.com.mx/dp/XYZ"

AMAZON_VISUAL_PRICE = """
<div id="corePriceDisplay_desktop_feature_div">
  <span class="a-price">
    <span class="a-price-symbol">$</span>
    <span class="a-price-whole">5,165<span class="a-price-decimal">.</span></span>
    <span class="a-price-fraction">49</span>
  </span>
</div>
"""


def amazon_page(title="Sony WH-1000XM5", price_data=None, visual=False, availability=None):
    parts = ["<html><body>"]
    if title is not None:
        parts.append(f'<span id="productTitle">  {title}  </span>')
    if price_data is not None:
        parts.append(
            f'<div class="twister-plus-buying-options-price-data">{price_data}</div>'
        )
    if visual:
        parts.append(AMAZON_VISUAL_PRICE)
    if availability is not None:
        parts.append(f'<div id="availability"><span>{availability}</span></div>')
    parts.append("</body></html>")
    return "".join(parts)


def mercadolibre_page(
    title="Consola Nintendo Switch OLED",
    meta_price=None,
    meta_currency=None,
    visual=None,
    buy_button=True,
    message=None,
):
    parts = ["<html><head>"]
    if meta_price is not None:
        parts.append(f'<meta itemprop="price" content="{meta_price}">')
    if meta_currency is not None:
        parts.append(f'<meta itemprop="priceCurrency" content="{meta_currency}">')
    parts.append("</head><body>")
    if title is not None:
        parts.append(f'<h1 class="ui-pdp-title">{title}</h1>')
    if visual is not None:
        whole, cents = visual
        parts.append('<div class="ui-pdp-price__second-line"><span class="andes-money-amount">')
        parts.append(f'<span class="andes-money-amount__fraction">{whole}</span>')
        if cents:
            parts.append(f'<span class="andes-money-amount__cents">{cents}</span>')
        parts.append("</span></div>")
    if buy_button:
        parts.append('<button class="andes-button ui-pdp-actions__button">Comprar ahora</button>')
    if message is not None:
        parts.append(f'<div class="ui-pdp-message">{message}</div>')
    parts.append("</body></html>")
    return "".join(parts)


class TestAmazonStrategy:
    def setup_method(self):
        self.strategy = AmazonStrategy()

    def test_structured_price_with_locale(self):
        html = amazon_page(price_data='{"priceAmount": 5165.49, "locale": "es-MX"}')

        data = self.strategy.parse_html(html, AMAZON_MX_URL)

        assert data.title == "Sony WH-1000XM5"
        assert data.price == Decimal("5165.49")
        assert data.currency == "MXN"
        assert data.is_available is True
        assert data.vendor == "Amazon"
        assert data.url == AMAZON_MX_URL

    def test_structured_buybox_group(self):
        payload = (
            '{"desktop_buybox_group_1": [{"displayPrice": "$1,299.00", '
            '"priceAmount": 1299.00, "locale": "en-US"}]}'
        )
        data = self.strategy.parse_html(amazon_page(price_data=payload), AMAZON_MX_URL)

        assert data.price == Decimal("1299.00")
        assert data.currency == "USD"

    def test_structured_wins_over_visual(self):
        html = amazon_page(price_data='{"priceAmount": 10.5, "locale": "es-MX"}', visual=True)
        assert self.strategy.parse_html(html, AMAZON_MX_URL).price == Decimal("10.5")

    def test_visual_fallback_strips_thousands_separator(self):
        data = self.strategy.parse_html(amazon_page(visual=True), AMAZON_MX_URL)

        assert data.price == Decimal("5165.49")
        assert data.currency == "MXN"
        assert data.is_available is True

    def test_malformed_json_falls_back_to_visual(self):
        html = amazon_page(price_data="{priceAmount: oops", visual=True)
        data = self.strategy.parse_html(html, AMAZON_MX_URL)
        assert data.price == Decimal("5165.49")

    def test_malformed_json_without_visual_degrades(self):
        data = self.strategy.parse_html(amazon_page(price_data="[[["), AMAZON_MX_URL)
        assert data.price == Decimal("0")
        assert data.is_available is False

    def test_missing_price_amount_falls_back(self):
        html = amazon_page(price_data='{"priceAmount": null, "locale": "es-MX"}', visual=True)
        assert self.strategy.parse_html(html, AMAZON_MX_URL).price == Decimal("5165.49")

    def test_missing_everything(self):
        data = self.strategy.parse_html("<html><body></body></html>", AMAZON_MX_URL)

        assert data.title == DEFAULT_TITLE
        assert data.price == Decimal("0")
        assert data.is_available is False

    def test_empty_html(self):
        data = self.strategy.parse_html("", AMAZON_MX_URL)
        assert data.title == DEFAULT_TITLE
        assert data.price == Decimal("0")

    @pytest.mark.parametrize(
        "message",
        ["No disponible por el momento.", "Currently unavailable.", "Agotado"],
    )
    def test_unavailable_marker(self, message):
        html = amazon_page(visual=True, availability=message)
        data = self.strategy.parse_html(html, AMAZON_MX_URL)

        assert data.price == Decimal("5165.49")
        assert data.is_available is False

    def test_in_stock_marker_is_available(self):
        html = amazon_page(visual=True, availability="Disponible.")
        assert self.strategy.parse_html(html, AMAZON_MX_URL).is_available is True

    @pytest.mark.parametrize(
        "url,currency",
        [
            ("https://www.amazon.com/dp/X", "USD"),
            ("https://www.amazon.com.mx/dp/X", "MXN"),
            ("https://www.amazon.com.br/dp/X", "BRL"),
            ("https://www.amazon.co.uk/dp/X", "GBP"),
            ("https://www.amazon.ca/dp/X", "CAD"),
            ("https://www.amazon.es/dp/X", "EUR"),
            ("https://www.amazon.de/dp/X", "EUR"),
        ],
    )
    def test_currency_from_host(self, url, currency):
        data = self.strategy.parse_html(amazon_page(visual=True), url)
        assert data.currency == currency

    def test_can_handle(self):
        assert self.strategy.can_handle("https://www.amazon.com.mx/dp/X")
        assert self.strategy.can_handle("https://WWW.AMAZON.COM/dp/X")
        assert not self.strategy.can_handle("https://articulo.mercadolibre.com.mx/MLM-1")
        assert not self.strategy.can_handle("not a url")
        assert not self.strategy.can_handle("")
        assert not self.strategy.can_handle(None)


class TestMercadoLibreStrategy:
    def setup_method(self):
        self.strategy = MercadoLibreStrategy()

    def test_meta_price_and_currency(self):
        html = mercadolibre_page(meta_price="5899", meta_currency="MXN")
        data = self.strategy.parse_html(html, "https://articulo.mercadolibre.com.mx/MLM-123")

        assert data.title == "Consola Nintendo Switch OLED"
        assert data.price == Decimal("5899")
        assert data.currency == "MXN"
        assert data.is_available is True
        assert data.vendor == "MercadoLibre"

    def test_meta_currency_overrides_host(self):
        html = mercadolibre_page(meta_price="129.90", meta_currency="USD")
        data = self.strategy.parse_html(html, "https://articulo.mercadolibre.com.ar/MLA-1")
        assert data.currency == "USD"

    def test_visual_fallback(self):
        html = mercadolibre_page(visual=("5.899", "50"))
        data = self.strategy.parse_html(html, "https://articulo.mercadolibre.com.mx/MLM-1")
        assert data.price == Decimal("5899.50")

    def test_non_numeric_meta_falls_back_to_visual(self):
        html = mercadolibre_page(meta_price="gratis", visual=("1,250", None))
        data = self.strategy.parse_html(html, "https://articulo.mercadolibre.com.mx/MLM-1")
        assert data.price == Decimal("1250")

    def test_argentina_without_price(self):
        html = mercadolibre_page(buy_button=False)
        data = self.strategy.parse_html(html, "https://articulo.mercadolibre.com.ar/MLA-999")

        assert data.price == Decimal("0")
        assert data.currency == "ARS"
        assert data.is_available is False

    def test_no_buy_action_is_unavailable(self):
        html = mercadolibre_page(meta_price="100", buy_button=False)
        assert self.strategy.parse_html(html, "https://mercadolibre.com.mx/p/1").is_available is False

    def test_paused_listing_is_unavailable(self):
        html = mercadolibre_page(meta_price="100", message="Publicación pausada")
        assert self.strategy.parse_html(html, "https://mercadolibre.com.mx/p/1").is_available is False

    def test_missing_title(self):
        html = mercadolibre_page(title=None, meta_price="100")
        assert self.strategy.parse_html(html, "https://mercadolibre.com.mx/p/1").title == DEFAULT_TITLE

    @pytest.mark.parametrize(
        "url,currency",
        [
            ("https://articulo.mercadolibre.com.mx/MLM-1", "MXN"),
            ("https://articulo.mercadolibre.com.co/MCO-1", "COP"),
            ("https://articulo.mercadolibre.cl/MLC-1", "CLP"),
            ("https://produto.mercadolivre.com.br/MLB-1", "BRL"),
            ("https://articulo.mercadolibre.com.uy/MLU-1", "UYU"),
            ("https://articulo.mercadolibre.com.pe/MPE-1", "PEN"),
        ],
    )
    def test_currency_from_host(self, url, currency):
        html = mercadolibre_page(visual=("100", None))
        assert self.strategy.parse_html(html, url).currency == currency

    def test_can_handle(self):
        assert self.strategy.can_handle("https://articulo.mercadolibre.com.mx/MLM-1")
        assert self.strategy.can_handle("https://produto.mercadolivre.com.br/MLB-1")
        assert not self.strategy.can_handle("https://www.amazon.com.mx/dp/X")
        assert not self.strategy.can_handle("::::")


class TestStrategySelector:
    def setup_method(self):
        self.selector = StrategySelector()

    def test_routes_by_host(self):
        assert isinstance(self.selector.get_strategy(AMAZON_MX_URL), AmazonStrategy)
        assert isinstance(
            self.selector.get_strategy("https://articulo.mercadolibre.com.mx/MLM-1"),
            MercadoLibreStrategy,
        )

    @pytest.mark.parametrize(
        "url", ["https://www.walmart.com.mx/ip/1", "", "not a url", "https://"]
    )
    def test_unsupported(self, url):
        with pytest.raises(UnsupportedVendorError) as exc_info:
            self.selector.get_strategy(url)
        assert exc_info.value.url == url

    def test_first_match_wins(self):
        first, second = AmazonStrategy(), AmazonStrategy()
        selector = StrategySelector([first, second])
        assert selector.get_strategy(AMAZON_MX_URL) is first

    def test_supported_vendors(self):
        assert self.selector.supported_vendors() == ["Amazon", "MercadoLibre"]
