from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Transport
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Transport timeout applied to every outbound HTTP call",
    )

    # Price feed (CoinGecko)
    enable_coingecko: bool = Field(default=True, description="Enable Coingecko provider")
    coingecko_api_key: str = Field(default="", description="Coingecko API key")
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Base URL for the Coingecko API",
    )
    price_poll_interval_seconds: float = Field(
        default=30.0,
        description="Fixed period between price feed polls",
    )
    price_stale_after_seconds: float = Field(
        default=90.0,
        description="Age after which the price snapshot is reported as stale",
    )

    # Swap aggregator (Jupiter)
    enable_jupiter: bool = Field(default=True, description="Enable Jupiter swap provider")
    jupiter_quote_api_url: str = Field(
        default="https://quote-api.jup.ag/v6",
        description="Base URL for the Jupiter quote and swap endpoints",
    )
    swap_slippage_bps: int = Field(
        default=50,
        ge=0,
        le=5000,
        description="Slippage tolerance in basis points sent with every quote",
    )
    quote_ttl_seconds: float = Field(
        default=30.0,
        description="How long an accepted quote may be used to build a transaction",
    )
    quote_debounce_seconds: float = Field(
        default=0.6,
        description="Quiet period after the last input change before a quote is requested",
    )
    default_swap_amount: str = Field(
        default="1",
        description="Amount the widget starts with and resets to after a swap",
    )

    # Wallet
    wallet_install_url: str = Field(
        default="https://phantom.app/",
        description="Where users are sent when no wallet extension is available",
    )


settings = Settings()
