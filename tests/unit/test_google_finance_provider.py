import httpx
import pytest

from app.infrastructure.market_data.google_finance_provider import (
    GoogleFinanceQuoteProvider,
    parse_number,
    parse_quote_page,
)
from app.infrastructure.market_data.types import QuoteFetchError, RateLimitError, SymbolNotFoundError

QUOTE_PAGE = """
<html><body>
  <div class="gyFHrc">
    <span><div class="mfs7Fc">Market cap</div></span>
    <div class="P6K39c">12.3T INR</div>
  </div>
  <div class="gyFHrc">
    <span><div class="mfs7Fc">P/E ratio</div></span>
    <div class="P6K39c">21.45</div>
  </div>
  <table class="slpEwd">
    <tr>
      <th class="yNnsfe">(INR)</th>
      <th class="yNnsfe">Mar 2025</th>
      <th class="yNnsfe">Y/Y change</th>
    </tr>
    <tr class="roXhBd">
      <td><div class="rsPbEe">Revenue</div></td>
      <td class="QXDnM">1.2T</td>
    </tr>
    <tr class="roXhBd">
      <td><div class="rsPbEe">Earnings per share</div></td>
      <td class="QXDnM">1,052.36</td>
    </tr>
  </table>
</body></html>
"""


def test_parse_quote_page_extracts_fundamentals():
    page = parse_quote_page(QUOTE_PAGE, "HDFCBANK", "NSE")

    assert page.symbol == "HDFCBANK"
    assert page.exchange == "NSE"
    assert page.pe_ratio == 21.45
    assert page.eps == 1052.36
    assert page.eps_period == "Mar 2025"


def test_period_found_outside_table_headers():
    html = """
    <div><span>Quarterly</span><span>September 2024</span></div>
    <tr class="roXhBd"><td><div class="rsPbEe">Earnings per share</div></td><td class="QXDnM">7.10</td></tr>
    """
    page = parse_quote_page(html, "X", "NSE")
    assert page.eps_period == "September 2024"
    assert page.eps == 7.10
    assert page.pe_ratio is None


def test_period_from_any_header_with_year():
    html = "<table><tr><th>Quarter ended Jun 2024 (INR)</th></tr></table>"
    assert parse_quote_page(html, "X", "NSE").eps_period == "Jun 2024"


def test_page_without_data():
    page = parse_quote_page("<html><body><p>Nothing here</p></body></html>", "X", "NSE")
    assert page.pe_ratio is None
    assert page.eps is None
    assert page.eps_period is None


def test_pe_label_outside_span_is_ignored():
    html = '<div><div class="mfs7Fc">P/E ratio</div><div class="P6K39c">30</div></div>'
    assert parse_quote_page(html, "X", "NSE").pe_ratio is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("21.45", 21.45),
        ("1,234.5", 1234.5),
        ("−3.2", -3.2),
        ("12.5%", 12.5),
        ("-", None),
        ("—", None),
        ("", None),
        (None, None),
        ("abc", None),
    ],
)
def test_parse_number(text, expected):
    assert parse_number(text) == expected


def _provider_with(handler) -> GoogleFinanceQuoteProvider:
    provider = GoogleFinanceQuoteProvider(base_url="https://finance.test/quote")
    provider.session = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return provider


async def test_get_fundamentals_requests_aliased_exchange():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, text=QUOTE_PAGE)

    provider = _provider_with(handler)
    page = await provider.get_fundamentals("HDFCBANK", "NSI")
    await provider.close()

    assert seen == ["https://finance.test/quote/HDFCBANK:NSE"]
    assert page.exchange == "NSE"
    assert page.eps == 1052.36


@pytest.mark.parametrize(
    "status, error",
    [(429, RateLimitError), (404, SymbolNotFoundError), (503, QuoteFetchError)],
)
async def test_get_fundamentals_http_errors(status, error):
    provider = _provider_with(lambda request: httpx.Response(status, text=""))
    with pytest.raises(error):
        await provider.get_fundamentals("HDFCBANK", "NSE")
    await provider.close()


async def test_get_fundamentals_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = _provider_with(handler)
    with pytest.raises(QuoteFetchError, match="request failed"):
        await provider.get_fundamentals("HDFCBANK", "NSE")
    await provider.close()


async def test_get_fundamentals_requires_symbol():
    provider = GoogleFinanceQuoteProvider()
    with pytest.raises(SymbolNotFoundError):
        await provider.get_fundamentals("", "NSE")
