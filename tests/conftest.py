"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from leizd.config import (
    AppConfig,
    CentralPoolConfig,
    MarketConfig,
    PriceOracleConfig,
    PythConfig,
    ShadowConfig,
)
from leizd.fixed_point import PRECISION
from leizd.models import Domain
from leizd.pools import CentralLiquidityPool, Treasury
from leizd.services import LendingProtocol, ProtocolStore

OWNER = "0xowner"
A2S = Domain.ASSET_TO_SHADOW
S2A = Domain.SHADOW_TO_ASSET


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.example.com/v2/updates/price/latest",
        feeds={"WETH": "aaa111", "USDC": "bbb222", "UNI": "ccc333"},
    )


@pytest.fixture()
def sample_app_config(sample_pyth_config: PythConfig) -> AppConfig:
    # every price is 1:1 so amounts and values coincide
    return AppConfig(
        owner=OWNER,
        treasury="0xtreasury",
        shadow=ShadowConfig(symbol="USDZ", ltv=500_000_000, lt=700_000_000, price=PRECISION),
        markets=(
            MarketConfig(name="WETH", ltv=500_000_000, lt=700_000_000),
            MarketConfig(name="USDC", ltv=800_000_000, lt=900_000_000),
            MarketConfig(name="UNI", ltv=500_000_000, lt=700_000_000),
        ),
        central_pool=CentralPoolConfig(supported_markets=("WETH", "USDC", "UNI")),
        price_oracle=PriceOracleConfig(provider="static", pyth=sample_pyth_config),
    )


# ---------------------------------------------------------------------------
# Protocol fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def protocol(sample_app_config: AppConfig) -> LendingProtocol:
    """Protocol with a funded backstop and asset liquidity from a third party."""
    protocol = LendingProtocol.from_config(sample_app_config)
    protocol.store.central_pool.deposit("lender", 1_000_000)
    for market in ("WETH", "USDC", "UNI"):
        protocol.deposit("bob", market, 10_000, A2S)
    return protocol


@pytest.fixture()
def store(protocol: LendingProtocol) -> ProtocolStore:
    return protocol.store


@pytest.fixture()
def treasury() -> Treasury:
    return Treasury("0xtreasury")


@pytest.fixture()
def central_pool(treasury: Treasury) -> CentralLiquidityPool:
    pool = CentralLiquidityPool(owner=OWNER, treasury=treasury)
    pool.add_supported_market(OWNER, "WETH")
    return pool


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    owner: "0xowner"
    treasury: "0xtreasury"
    shadow:
      symbol: USDZ
      ltv: 900000000
      lt: 950000000
    markets:
      - name: WETH
        ltv: 700000000
        lt: 800000000
        price: 2000000000000
        asset_protocol_fee_rate: 1000000
      - name: USDC
        ltv: 800000000
        lt: 900000000
    central_pool:
      protocol_fee_rate: 1000000
      support_fee_rate: 2000000
      supported_markets: [WETH]
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {WETH: "aaa", USDC: "bbb"}
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
