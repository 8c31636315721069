"""Application configuration.

Environment variables override all defaults. The inventory and forecast
policies that used to be inline numbers live here as named settings and are
grouped into frozen policy objects that services accept as overrides.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List


# Load .env for local development (safe no-op if not installed)
try:
    from dotenv import load_dotenv  # type: ignore

    _BACKEND_DIR = Path(__file__).resolve().parents[2]
    load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)
except ImportError:
    pass


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pharmaledger.db")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Cross-tenant transfer policy
    TRANSFER_DEFAULT_EXPIRY_DAYS: int = int(os.getenv("TRANSFER_DEFAULT_EXPIRY_DAYS", "730"))
    TRANSFER_PROPAGATE_EXPIRY: bool = _env_bool("TRANSFER_PROPAGATE_EXPIRY", False)
    TRANSFER_MRP_MARKUP: float = float(os.getenv("TRANSFER_MRP_MARKUP", "1.5"))
    DEFAULT_MIN_STOCK_LEVEL: int = int(os.getenv("DEFAULT_MIN_STOCK_LEVEL", "10"))
    DEFAULT_UNIT: str = os.getenv("DEFAULT_UNIT", "strip")

    # Forecasting
    SALES_LOOKBACK_DAYS: int = int(os.getenv("SALES_LOOKBACK_DAYS", "90"))
    DEMAND_HORIZON_DAYS: int = int(os.getenv("DEMAND_HORIZON_DAYS", "30"))
    SEASON_BOOST: float = float(os.getenv("SEASON_BOOST", "0.2"))
    EXPIRY_WINDOW_DAYS: int = int(os.getenv("EXPIRY_WINDOW_DAYS", "180"))
    UNSOLD_SENTINEL_DAYS: int = int(os.getenv("UNSOLD_SENTINEL_DAYS", "9999"))
    LIQUIDATE_BEFORE_DAYS: int = int(os.getenv("LIQUIDATE_BEFORE_DAYS", "30"))
    DISCOUNT_BEFORE_DAYS: int = int(os.getenv("DISCOUNT_BEFORE_DAYS", "60"))


settings = Settings()


@dataclass(frozen=True)
class TransferPolicy:
    """Defaults applied when stock lands in the buyer's ledger."""

    default_expiry_days: int = 730
    propagate_expiry: bool = False
    mrp_markup: float = 1.5
    default_min_stock_level: int = 10
    default_unit: str = "strip"

    @classmethod
    def from_settings(cls) -> "TransferPolicy":
        return cls(
            default_expiry_days=settings.TRANSFER_DEFAULT_EXPIRY_DAYS,
            propagate_expiry=settings.TRANSFER_PROPAGATE_EXPIRY,
            mrp_markup=settings.TRANSFER_MRP_MARKUP,
            default_min_stock_level=settings.DEFAULT_MIN_STOCK_LEVEL,
            default_unit=settings.DEFAULT_UNIT,
        )


@dataclass(frozen=True)
class ForecastPolicy:
    lookback_days: int = 90
    horizon_days: int = 30
    season_boost: float = 0.2
    expiry_window_days: int = 180
    unsold_sentinel_days: int = 9999
    liquidate_before_days: int = 30
    discount_before_days: int = 60

    @classmethod
    def from_settings(cls) -> "ForecastPolicy":
        return cls(
            lookback_days=settings.SALES_LOOKBACK_DAYS,
            horizon_days=settings.DEMAND_HORIZON_DAYS,
            season_boost=settings.SEASON_BOOST,
            expiry_window_days=settings.EXPIRY_WINDOW_DAYS,
            unsold_sentinel_days=settings.UNSOLD_SENTINEL_DAYS,
            liquidate_before_days=settings.LIQUIDATE_BEFORE_DAYS,
            discount_before_days=settings.DISCOUNT_BEFORE_DAYS,
        )
