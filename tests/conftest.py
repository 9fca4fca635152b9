"""Shared fakes for the swap widget tests."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from stbl_swap.providers.base import PriceProvider
from stbl_swap.providers.jupiter import JupiterQuote, JupiterSwapResult, RoutePlanStep
from stbl_swap.providers.wallet import WalletConnection, WalletProvider, WalletRejectedError


WALLET_ADDRESS = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
SWAP_TX_B64 = "AQID"


def make_quote(
    input_mint: str,
    output_mint: str,
    in_amount: int,
    out_amount: int,
    *,
    price_impact: float = 0.0012,
    hops: int = 1,
    ttl_seconds: float = 30.0,
) -> JupiterQuote:
    payload = {
        "inputMint": input_mint,
        "outputMint": output_mint,
        "inAmount": str(in_amount),
        "outAmount": str(out_amount),
        "otherAmountThreshold": str(out_amount - out_amount // 200),
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "priceImpactPct": str(price_impact),
        "routePlan": [{"swapInfo": {"label": f"pool-{i}"}, "percent": 100} for i in range(hops)],
    }
    return JupiterQuote(
        input_mint=input_mint,
        output_mint=output_mint,
        in_amount=in_amount,
        out_amount=out_amount,
        other_amount_threshold=out_amount - out_amount // 200,
        swap_mode="ExactIn",
        slippage_bps=50,
        price_impact_pct=price_impact,
        route_plan=[RoutePlanStep(swap_info=step["swapInfo"], percent=100) for step in payload["routePlan"]],
        quote_response=payload,
        ttl_seconds=ttl_seconds,
    )


class FakeJupiter:
    """In-memory aggregator. 1 SOL quotes as 150 USDC unless ``rate`` says otherwise."""

    def __init__(self):
        self.rate: Callable[[int], int] = lambda amount: amount * 150 // 1000
        self.delay = 0.0
        self.delays: Dict[int, float] = {}
        self.errors: Dict[int, Exception] = {}
        self.build_error: Optional[Exception] = None
        self.swap_transaction = SWAP_TX_B64
        self.quote_calls: List[Dict[str, Any]] = []
        self.build_calls: List[Dict[str, Any]] = []

    async def ready(self) -> bool:
        return True

    async def get_swap_quote(self, input_mint, output_mint, amount, slippage_bps=50, swap_mode="ExactIn"):
        self.quote_calls.append(
            {"input_mint": input_mint, "output_mint": output_mint, "amount": amount, "slippage_bps": slippage_bps}
        )
        await asyncio.sleep(self.delays.get(amount, self.delay))
        if amount in self.errors:
            raise self.errors[amount]
        return make_quote(input_mint, output_mint, amount, self.rate(amount))

    async def build_swap_transaction(self, quote, user_public_key, wrap_and_unwrap_sol=True):
        self.build_calls.append({"quote": quote, "user_public_key": user_public_key})
        if self.build_error is not None:
            raise self.build_error
        return JupiterSwapResult(
            swap_transaction=self.swap_transaction,
            last_valid_block_height=123,
            priority_fee_lamports=5000,
            compute_unit_limit=200_000,
        )


class FakeWallet(WalletProvider):
    """Scriptable stand-in for a browser wallet extension."""

    def __init__(self):
        self.installed = True
        self.trusted = False
        self.address = WALLET_ADDRESS
        self.signature = "5sig"
        self.connect_delay = 0.0
        self.connect_error: Optional[Exception] = None
        self.disconnect_error: Optional[Exception] = None
        self.sign_error: Optional[Exception] = None
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.signed: List[Any] = []

    async def ready(self) -> bool:
        return self.installed

    async def connect(self, *, only_if_trusted: bool = False) -> WalletConnection:
        self.connect_calls += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if only_if_trusted and not self.trusted:
            raise WalletRejectedError("User rejected the request.")
        if self.connect_error is not None:
            raise self.connect_error
        return WalletConnection(address=self.address)

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.disconnect_error is not None:
            raise self.disconnect_error

    async def sign_and_send_transaction(self, transaction: Any) -> str:
        self.signed.append(transaction)
        if self.sign_error is not None:
            raise self.sign_error
        return self.signature


class FakeCodec:
    def __init__(self):
        self.error: Optional[Exception] = None
        self.decoded: List[str] = []

    async def decode(self, payload: str) -> Any:
        self.decoded.append(payload)
        if self.error is not None:
            raise self.error
        return {"decoded": payload}


class FakePriceProvider(PriceProvider):
    """Returns queued payloads (or raises queued exceptions) one per call."""

    name = "fake-prices"

    def __init__(self, responses=None):
        self.responses: List[Any] = list(responses or [])
        self.calls = 0

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def get_simple_prices(self, ids, vs_currency="usd"):
        self.calls += 1
        response = self.responses.pop(0) if self.responses else {}
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return await response()
        return response


@pytest.fixture
def fake_jupiter() -> FakeJupiter:
    return FakeJupiter()


@pytest.fixture
def fake_wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def fake_prices() -> FakePriceProvider:
    return FakePriceProvider()


@pytest.fixture
def quote_factory():
    return make_quote
