import pytest

from stbl_swap.core.errors import UnsupportedToken
from stbl_swap.services.tokens import (
    DISPLAY_TOKENS,
    NATIVE_SOL_MINT,
    PRICE_FEED_SYMBOLS,
    SWAP_TOKENS,
    get_display_token,
    get_swap_token,
)


def test_swap_table_contains_exactly_the_three_solana_tokens():
    assert list(SWAP_TOKENS) == ["SOL", "USDC", "USDT"]
    assert SWAP_TOKENS["SOL"].decimals == 9
    assert SWAP_TOKENS["USDC"].decimals == 6
    assert SWAP_TOKENS["USDT"].decimals == 6
    assert SWAP_TOKENS["SOL"].mint == NATIVE_SOL_MINT


def test_every_swap_token_has_a_mint():
    assert all(token.swappable for token in SWAP_TOKENS.values())


def test_get_swap_token_is_case_insensitive():
    assert get_swap_token(" usdc ").symbol == "USDC"


@pytest.mark.parametrize("symbol", ["BTC", "ETH", "DOGE", "", None])
def test_get_swap_token_rejects_unknown_or_display_only(symbol):
    with pytest.raises(UnsupportedToken):
        get_swap_token(symbol)


def test_display_tokens_cover_the_price_feed():
    assert set(PRICE_FEED_SYMBOLS) <= set(DISPLAY_TOKENS)
    assert get_display_token("btc").coingecko_id == "bitcoin"
    assert get_display_token("btc").swappable is False
    assert get_display_token("XYZ") is None


def test_token_to_dict_exposes_mint_and_decimals():
    data = get_swap_token("SOL").to_dict()
    assert data["symbol"] == "SOL"
    assert data["decimals"] == 9
    assert data["mint"] == NATIVE_SOL_MINT
