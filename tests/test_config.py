from __future__ import annotations

from app.shared.config import DEFAULT_POSITION_MANAGER, get_settings


def test_settings_parse_stakers_and_flags(monkeypatch):
    monkeypatch.setenv("SLIPSTREAM_STAKERS", " 0xGaugeA, ,0xGAUGEB ")
    monkeypatch.setenv("ONCHAIN_ENRICHMENT", "off")
    monkeypatch.setenv("LOG_SCAN_WINDOW", "2000")
    monkeypatch.delenv("SLIPSTREAM_POSITION_MANAGER", raising=False)

    settings = get_settings()

    assert settings.slipstream_stakers == ("0xgaugea", "0xgaugeb")
    assert settings.onchain_enrichment is False
    assert settings.log_scan_window == 2000
    assert settings.position_manager_address == DEFAULT_POSITION_MANAGER


def test_settings_default_enrichment_on(monkeypatch):
    monkeypatch.delenv("ONCHAIN_ENRICHMENT", raising=False)
    monkeypatch.delenv("SLIPSTREAM_STAKERS", raising=False)

    settings = get_settings()

    assert settings.onchain_enrichment is True
    assert settings.slipstream_stakers == ()
