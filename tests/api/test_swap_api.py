import asyncio

import pytest
from fastapi.testclient import TestClient

from stbl_swap.api import health as health_api
from stbl_swap.api import prices as prices_api
from stbl_swap.api import swap as swap_api
from stbl_swap.core.price_feed import PriceFeedClient
from stbl_swap.main import app
from stbl_swap.providers.jupiter import (
    JupiterQuoteError,
    JupiterSwapError,
    JupiterSwapProvider,
    JupiterSwapResult,
)
from stbl_swap.services.tokens import NATIVE_SOL_MINT, USDC_MINT

client = TestClient(app)

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.fixture
def jupiter(monkeypatch, fake_jupiter):
    monkeypatch.setattr(swap_api, "get_jupiter_swap_provider", lambda: fake_jupiter)
    return fake_jupiter


@pytest.fixture
def price_feed(monkeypatch, fake_prices):
    feed = PriceFeedClient(fake_prices)
    monkeypatch.setattr(prices_api, "get_price_feed_client", lambda: feed)
    monkeypatch.setattr(health_api, "get_price_feed_client", lambda: feed)
    return feed


def test_root_describes_the_service():
    data = client.get("/").json()
    assert data["name"] == "STBL Swap API"
    assert data["health"] == "/healthz"


def test_tokens_lists_swap_tokens_in_order():
    resp = client.get("/tokens")
    assert resp.status_code == 200
    assert [t["symbol"] for t in resp.json()["tokens"]] == ["SOL", "USDC", "USDT"]


def test_healthz_reports_providers(monkeypatch, fake_prices, price_feed):
    monkeypatch.setattr(health_api, "get_coingecko_provider", lambda: fake_prices)
    monkeypatch.setattr(health_api, "get_jupiter_swap_provider", lambda: JupiterSwapProvider())

    data = client.get("/healthz").json()

    assert data["status"] == "healthy"
    assert data["providers"]["jupiter"]["status"] == "configured"
    assert data["available_providers"] == 2
    assert data["price_feed"] == {"running": False, "updated_at": None}


def test_prices_before_first_poll_are_stale(price_feed):
    data = client.get("/prices").json()

    assert data["stale"] is True
    assert data["updated_at"] is None
    assert data["prices"]["BTC"]["price"] is None


def test_prices_after_poll(price_feed, fake_prices):
    fake_prices.responses = [
        {"bitcoin": {"usd": 64321.7, "usd_24h_change": 1.234}, "solana": {"usd": 150.0, "usd_24h_change": -2.0}}
    ]
    asyncio.run(price_feed.poll())

    data = client.get("/prices").json()

    assert data["stale"] is False
    assert data["prices"]["BTC"]["price_display"] == "$64,322"
    assert data["prices"]["BTC"]["change_display"] == "+1.23%"
    assert data["prices"]["SOL"]["change_display"] == "-2.00%"
    assert data["prices"]["ETH"]["price"] is None


def test_quote_converts_to_and_from_base_units(jupiter):
    resp = client.post("/swap/quote", json={"input_token": "sol", "output_token": "USDC", "amount": "2.5"})

    assert resp.status_code == 200, resp.json()
    data = resp.json()
    assert data["in_amount"] == "2.5"
    assert data["out_amount"] == "375"
    assert data["price_impact"] == "0.120%"
    assert data["route_hops"] == 1
    assert data["quote_response"]["inAmount"] == "2500000000"
    assert jupiter.quote_calls[0]["amount"] == 2_500_000_000
    assert jupiter.quote_calls[0]["slippage_bps"] == 50


@pytest.mark.parametrize(
    "payload, code",
    [
        ({"input_token": "SOL", "output_token": "USDC", "amount": "abc"}, "InvalidAmount"),
        ({"input_token": "SOL", "output_token": "USDC", "amount": "0"}, "InvalidAmount"),
        ({"input_token": "SOL", "output_token": "USDC", "amount": "0.0000000001"}, "InvalidAmount"),
        ({"input_token": "SOL", "output_token": "USDC", "amount": "1e999999"}, "InvalidAmount"),
        ({"input_token": "BTC", "output_token": "USDC", "amount": "1"}, "UnsupportedToken"),
        ({"input_token": "USDC", "output_token": "usdc", "amount": "1"}, "UnsupportedToken"),
    ],
)
def test_quote_rejects_bad_input(jupiter, payload, code):
    resp = client.post("/swap/quote", json=payload)

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == code
    assert jupiter.quote_calls == []


def test_quote_route_error_is_bad_gateway(jupiter):
    jupiter.errors[1_000_000_000] = JupiterQuoteError("No routes found")

    resp = client.post("/swap/quote", json={"input_token": "SOL", "output_token": "USDC", "amount": "1"})

    assert resp.status_code == 502
    assert resp.json()["detail"] == {"code": "QuoteUnavailable", "message": "No routes found"}


class _SwapBuilder:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def build_swap_transaction_from_response(self, quote_response, user_public_key, wrap_and_unwrap_sol=True):
        self.calls.append((quote_response, user_public_key, wrap_and_unwrap_sol))
        if self.error:
            raise self.error
        return JupiterSwapResult(
            swap_transaction="AQID",
            last_valid_block_height=10,
            priority_fee_lamports=2_000_000,
            compute_unit_limit=200_000,
        )


def test_transaction_is_built_for_wallet(monkeypatch):
    builder = _SwapBuilder()
    monkeypatch.setattr(swap_api, "get_jupiter_swap_provider", lambda: builder)
    quote_response = {"inputMint": NATIVE_SOL_MINT, "outputMint": USDC_MINT, "inAmount": "1"}

    resp = client.post("/swap/transaction", json={"quote_response": quote_response, "user_public_key": WALLET})

    assert resp.status_code == 200, resp.json()
    data = resp.json()
    assert data["swap_transaction"] == "AQID"
    assert data["warnings"] == ["High priority fee"]
    assert builder.calls == [(quote_response, WALLET, True)]


def test_transaction_failure_is_bad_gateway(monkeypatch):
    monkeypatch.setattr(swap_api, "get_jupiter_swap_provider", lambda: _SwapBuilder(JupiterSwapError("HTTP error: 500")))

    resp = client.post("/swap/transaction", json={"quote_response": {"inAmount": "1"}, "user_public_key": WALLET})

    assert resp.status_code == 502
    assert resp.json()["detail"]["code"] == "SwapFailed"


def test_transaction_requires_quote_and_valid_wallet():
    assert client.post("/swap/transaction", json={"quote_response": {}, "user_public_key": WALLET}).status_code == 400
    assert client.post("/swap/transaction", json={"quote_response": {"a": 1}, "user_public_key": "short"}).status_code == 422
