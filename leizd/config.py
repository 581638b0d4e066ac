"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .fixed_point import PRECISION

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ShadowConfig:
    symbol: str = "USDZ"
    ltv: int = 900_000_000
    lt: int = 950_000_000
    price: int = PRECISION


@dataclass(frozen=True)
class MarketConfig:
    name: str = ""
    ltv: int = 500_000_000
    lt: int = 700_000_000
    price: int = PRECISION
    asset_protocol_fee_rate: int = 0
    shadow_protocol_fee_rate: int = 0


@dataclass(frozen=True)
class CentralPoolConfig:
    protocol_fee_rate: int = 0
    support_fee_rate: int = 0
    supported_markets: tuple[str, ...] = ()


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "static"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class AppConfig:
    owner: str = ""
    treasury: str = ""
    shadow: ShadowConfig = field(default_factory=ShadowConfig)
    markets: tuple[MarketConfig, ...] = ()
    central_pool: CentralPoolConfig = field(default_factory=CentralPoolConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)

    @property
    def prices(self) -> dict[str, int]:
        prices = {m.name: m.price for m in self.markets}
        prices[self.shadow.symbol] = self.shadow.price
        return prices


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML to dataclass builders
# ---------------------------------------------------------------------------


def _build_shadow(raw: dict[str, Any]) -> ShadowConfig:
    return ShadowConfig(
        symbol=str(raw.get("symbol", "USDZ")),
        ltv=int(raw.get("ltv", ShadowConfig.ltv)),
        lt=int(raw.get("lt", ShadowConfig.lt)),
        price=int(raw.get("price", PRECISION)),
    )


def _build_markets(raw: list[dict[str, Any]]) -> tuple[MarketConfig, ...]:
    markets: list[MarketConfig] = []
    for m in raw:
        markets.append(
            MarketConfig(
                name=str(m.get("name", "")),
                ltv=int(m.get("ltv", MarketConfig.ltv)),
                lt=int(m.get("lt", MarketConfig.lt)),
                price=int(m.get("price", PRECISION)),
                asset_protocol_fee_rate=int(m.get("asset_protocol_fee_rate", 0)),
                shadow_protocol_fee_rate=int(m.get("shadow_protocol_fee_rate", 0)),
            )
        )
    return tuple(markets)


def _build_central_pool(raw: dict[str, Any]) -> CentralPoolConfig:
    return CentralPoolConfig(
        protocol_fee_rate=int(raw.get("protocol_fee_rate", 0)),
        support_fee_rate=int(raw.get("support_fee_rate", 0)),
        supported_markets=tuple(raw.get("supported_markets", [])),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "static"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate protocol configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from the package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        owner=str(raw.get("owner", "")),
        treasury=str(raw.get("treasury", "")),
        shadow=_build_shadow(raw.get("shadow", {})),
        markets=_build_markets(raw.get("markets", [])),
        central_pool=_build_central_pool(raw.get("central_pool", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.owner:
        raise ValueError("An owner address must be configured")
    if not cfg.markets:
        raise ValueError("At least one market must be configured")

    _validate_limits(cfg.shadow.symbol, cfg.shadow.ltv, cfg.shadow.lt)
    if cfg.shadow.price <= 0:
        raise ValueError(f"Shadow '{cfg.shadow.symbol}' has a non-positive price")

    names: set[str] = set()
    for market in cfg.markets:
        if not market.name:
            raise ValueError("Every market needs a name")
        if market.name in names or market.name == cfg.shadow.symbol:
            raise ValueError(f"Market '{market.name}' is configured twice")
        names.add(market.name)
        _validate_limits(market.name, market.ltv, market.lt)
        if market.price <= 0:
            raise ValueError(f"Market '{market.name}' has a non-positive price")
        for rate in (market.asset_protocol_fee_rate, market.shadow_protocol_fee_rate):
            _validate_rate(market.name, rate)

    _validate_rate("central_pool", cfg.central_pool.protocol_fee_rate)
    _validate_rate("central_pool", cfg.central_pool.support_fee_rate)
    for name in cfg.central_pool.supported_markets:
        if name not in names:
            raise ValueError(f"Central pool references unknown market '{name}'")

    if cfg.price_oracle.provider not in ("static", "pyth"):
        raise ValueError(f"Unknown price oracle provider '{cfg.price_oracle.provider}'")


def _validate_limits(name: str, ltv: int, lt: int) -> None:
    if not 0 < ltv <= lt <= PRECISION:
        raise ValueError(
            f"'{name}' limits must satisfy 0 < ltv <= lt <= {PRECISION}"
        )


def _validate_rate(name: str, rate: int) -> None:
    if not 0 <= rate <= PRECISION:
        raise ValueError(f"'{name}' fee rate must be within [0, {PRECISION}]")
