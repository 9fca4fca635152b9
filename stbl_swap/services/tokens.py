"""Static token table for the swap widget and the price ticker."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..core.errors import UnsupportedToken

_LOGO_BASE = "https://raw.githubusercontent.com/trustwallet/assets/master/blockchains"

NATIVE_SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"


@dataclass(frozen=True)
class TokenSpec:
    """Immutable token metadata."""

    symbol: str
    name: str
    decimals: int
    coingecko_id: str
    mint: Optional[str] = None  # Solana mint (Base58); None for display-only assets
    logo_uri: Optional[str] = None
    info_url: Optional[str] = None
    explorer_url: Optional[str] = None

    @property
    def swappable(self) -> bool:
        return self.mint is not None

    def to_dict(self) -> Dict[str, object]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "mint": self.mint,
            "coingecko_id": self.coingecko_id,
            "logo_uri": self.logo_uri,
            "info_url": self.info_url,
            "explorer_url": self.explorer_url,
        }


SOL = TokenSpec(
    symbol="SOL",
    name="Solana",
    decimals=9,
    coingecko_id="solana",
    mint=NATIVE_SOL_MINT,
    logo_uri=f"{_LOGO_BASE}/solana/info/logo.png",
    info_url="https://www.coingecko.com/en/coins/solana",
    explorer_url="https://solscan.io",
)

USDC = TokenSpec(
    symbol="USDC",
    name="USD Coin",
    decimals=6,
    coingecko_id="usd-coin",
    mint=USDC_MINT,
    logo_uri=f"{_LOGO_BASE}/solana/assets/{USDC_MINT}/logo.png",
    info_url="https://www.coingecko.com/en/coins/usd-coin",
    explorer_url=f"https://solscan.io/token/{USDC_MINT}",
)

USDT = TokenSpec(
    symbol="USDT",
    name="Tether",
    decimals=6,
    coingecko_id="tether",
    mint=USDT_MINT,
    logo_uri=f"{_LOGO_BASE}/solana/assets/{USDT_MINT}/logo.png",
    info_url="https://www.coingecko.com/en/coins/tether",
    explorer_url=f"https://solscan.io/token/{USDT_MINT}",
)

BTC = TokenSpec(
    symbol="BTC",
    name="Bitcoin",
    decimals=8,
    coingecko_id="bitcoin",
    logo_uri=f"{_LOGO_BASE}/bitcoin/info/logo.png",
    info_url="https://www.coingecko.com/en/coins/bitcoin",
)

ETH = TokenSpec(
    symbol="ETH",
    name="Ethereum",
    decimals=18,
    coingecko_id="ethereum",
    logo_uri=f"{_LOGO_BASE}/ethereum/info/logo.png",
    info_url="https://www.coingecko.com/en/coins/ethereum",
)

# Order matters: it is the order the widget lists tokens in.
SWAP_TOKENS: Dict[str, TokenSpec] = {token.symbol: token for token in (SOL, USDC, USDT)}

DISPLAY_TOKENS: Dict[str, TokenSpec] = {
    token.symbol: token for token in (SOL, BTC, ETH, USDC, USDT)
}

PRICE_FEED_SYMBOLS: Tuple[str, ...] = ("BTC", "ETH", "SOL", "USDC", "USDT")

SOLSCAN_TX_URL = "https://solscan.io/tx/{signature}"
SOLSCAN_ACCOUNT_URL = "https://solscan.io/account/{address}"


def get_swap_token(symbol: str) -> TokenSpec:
    """Resolve a swap token by symbol (case-insensitive)."""

    token = SWAP_TOKENS.get((symbol or "").strip().upper())
    if token is None:
        raise UnsupportedToken(f"{symbol!r} is not available for swaps")
    return token


def get_display_token(symbol: str) -> Optional[TokenSpec]:
    return DISPLAY_TOKENS.get((symbol or "").strip().upper())
