from pathlib import Path
from typing import List
from pydantic import BaseModel, Field, field_validator
import tomllib
import logging
import os


DEFAULT_AUCTION_URL = (
    "https://onlineonly.christies.com/s/handbags-online-new-york-edit/lots/3756"
    "?page=2&sortby=LotNumber"
)

DEFAULT_TARGET_LOTS: List[str] = [
    "5", "18", "20", "28", "45", "69", "75", "79", "86", "87",
    "105", "106", "117", "118", "140", "141", "144", "145", "146", "158",
]

SAFARI_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.6 Safari/605.1.15"
)


class MonitorSettings(BaseModel):
    auction_url: str = DEFAULT_AUCTION_URL
    target_lots: List[str] = Field(default_factory=lambda: list(DEFAULT_TARGET_LOTS))

    storage_state_file: str = "auth.json"
    output_file: str = "out/data.json"

    # browser
    headless: bool = True
    device: str = "Desktop Safari"
    user_agent: str = SAFARI_UA
    viewport_width: int = 1400
    viewport_height: int = 900
    nav_timeout_ms: int = 180_000
    settle_ms: int = 2000

    # plain HTTP variant
    request_timeout: int = 30

    @field_validator("auction_url")
    @classmethod
    def _url_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("auction_url is empty")
        return v

    @field_validator("target_lots", mode="before")
    @classmethod
    def _normalize_lots(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        lots: List[str] = []
        for lot in v:
            lot = str(lot).strip()
            if not lot:
                continue
            if not (lot.isascii() and lot.isdigit()):
                raise ValueError(f"lot number must be numeric: {lot!r}")
            # "05" and "5" are the same lot
            lot = str(int(lot))
            if lot not in lots:
                lots.append(lot)
        return lots


def load_settings() -> MonitorSettings:
    cfg_path = Path(os.getenv("CHRISTIES_MONITOR_CONFIG", "christies_monitor.toml"))
    raw = tomllib.loads(cfg_path.read_text()) if cfg_path.exists() else {}

    # env wins over the config file
    if os.getenv("AUCTION_URL"):
        raw["auction_url"] = os.environ["AUCTION_URL"]
    if os.getenv("TARGET_LOTS"):
        raw["target_lots"] = os.environ["TARGET_LOTS"]
    if os.getenv("CHRISTIES_MONITOR_OUT"):
        raw["output_file"] = os.environ["CHRISTIES_MONITOR_OUT"]

    return MonitorSettings.model_validate(raw)


def configure_logging() -> None:
    level = logging.DEBUG if os.getenv("CHRISTIES_MONITOR_DEBUG", "0") == "1" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s -- %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
