import pytest
from pydantic import ValidationError

from stbl_swap.config import Settings


def test_defaults_match_widget_behaviour(monkeypatch):
    for name in ("QUOTE_DEBOUNCE_SECONDS", "PRICE_POLL_INTERVAL_SECONDS", "SWAP_SLIPPAGE_BPS", "DEFAULT_SWAP_AMOUNT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.quote_debounce_seconds == 0.6
    assert settings.price_poll_interval_seconds == 30.0
    assert settings.swap_slippage_bps == 50
    assert settings.default_swap_amount == "1"
    assert settings.quote_ttl_seconds == 30.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SWAP_SLIPPAGE_BPS", "100")
    monkeypatch.setenv("jupiter_quote_api_url", "https://jup.example/v6")

    settings = Settings(_env_file=None)

    assert settings.swap_slippage_bps == 100
    assert settings.jupiter_quote_api_url == "https://jup.example/v6"


def test_slippage_is_bounded(monkeypatch):
    monkeypatch.setenv("SWAP_SLIPPAGE_BPS", "6000")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
