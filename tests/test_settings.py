import pytest
from pydantic import ValidationError

from settings import DEFAULT_AUCTION_URL, DEFAULT_TARGET_LOTS, MonitorSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ("AUCTION_URL", "TARGET_LOTS", "CHRISTIES_MONITOR_OUT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CHRISTIES_MONITOR_CONFIG", str(tmp_path / "missing.toml"))


def test_defaults_without_config():
    settings = load_settings()
    assert settings.auction_url == DEFAULT_AUCTION_URL
    assert settings.target_lots == DEFAULT_TARGET_LOTS
    assert settings.storage_state_file == "auth.json"
    assert settings.output_file == "out/data.json"
    assert settings.headless is True
    assert settings.nav_timeout_ms == 180_000


def test_toml_config(monkeypatch, tmp_path):
    cfg = tmp_path / "monitor.toml"
    cfg.write_text(
        'auction_url = "https://example.invalid/lots"\n'
        'target_lots = ["7", "3", 12]\n'
        'settle_ms = 500\n'
    )
    monkeypatch.setenv("CHRISTIES_MONITOR_CONFIG", str(cfg))

    settings = load_settings()
    assert settings.auction_url == "https://example.invalid/lots"
    assert settings.target_lots == ["7", "3", "12"]
    assert settings.settle_ms == 500


def test_env_overrides_config(monkeypatch, tmp_path):
    cfg = tmp_path / "monitor.toml"
    cfg.write_text('auction_url = "https://example.invalid/from-file"\n')
    monkeypatch.setenv("CHRISTIES_MONITOR_CONFIG", str(cfg))
    monkeypatch.setenv("AUCTION_URL", "https://example.invalid/from-env")
    monkeypatch.setenv("TARGET_LOTS", " 5, 18 ,,5")
    monkeypatch.setenv("CHRISTIES_MONITOR_OUT", "snapshots/now.json")

    settings = load_settings()
    assert settings.auction_url == "https://example.invalid/from-env"
    assert settings.target_lots == ["5", "18"]
    assert settings.output_file == "snapshots/now.json"


@pytest.mark.parametrize("lot", ["abc", "²", "٣", "-5", "5.0"])
def test_non_numeric_lot_rejected(lot):
    with pytest.raises(ValidationError):
        MonitorSettings(target_lots=["5", lot])


def test_leading_zeros_normalized():
    settings = MonitorSettings(target_lots=["05", "5", "018", 18])
    assert settings.target_lots == ["5", "18"]


def test_blank_url_rejected():
    with pytest.raises(ValidationError):
        MonitorSettings(auction_url="   ")
