"""Unit tests for Pyth oracle: price response parsing and error handling."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from leizd.config import PythConfig
from leizd.fixed_point import PRECISION
from leizd.oracles.pyth import PythOracle, to_fixed_point


@pytest.fixture()
def oracle(sample_pyth_config: PythConfig) -> PythOracle:
    return PythOracle(sample_pyth_config)


def _make_pyth_response(items: list[dict]) -> dict:
    return {"parsed": items}


def _mock_session(status: int = 200, data: dict | None = None) -> AsyncMock:
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=data or {})
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = AsyncMock()
    mock_session.get = MagicMock(return_value=mock_response)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


class TestToFixedPoint:
    def test_negative_exponent(self) -> None:
        assert to_fixed_point(350_000_000, -8) == 3_500_000_000

    def test_positive_exponent(self) -> None:
        assert to_fixed_point(2, 3) == 2000 * PRECISION

    def test_truncates_below_precision(self) -> None:
        assert to_fixed_point(123_456_789_012, -11) == 1_234_567_890


class TestPythOracleFetchPrices:
    @pytest.mark.asyncio
    async def test_parses_response_correctly(self, oracle: PythOracle) -> None:
        mock_data = _make_pyth_response(
            [
                {"id": "aaa111", "price": {"price": "200000000000", "expo": "-8"}},
                {"id": "bbb222", "price": {"price": "100000000", "expo": "-8"}},
                {"id": "ccc333", "price": {"price": "550000000", "expo": "-8"}},
            ]
        )

        with patch("leizd.oracles.pyth.aiohttp.ClientSession", return_value=_mock_session(200, mock_data)):
            with patch("leizd.oracles.pyth.aiohttp.TCPConnector"):
                prices = await oracle.fetch_prices()

        assert prices == {
            "WETH": 2000 * PRECISION,
            "USDC": PRECISION,
            "UNI": 5_500_000_000,
        }

    @pytest.mark.asyncio
    async def test_handles_http_error(self, oracle: PythOracle) -> None:
        with patch("leizd.oracles.pyth.aiohttp.ClientSession", return_value=_mock_session(500)):
            with patch("leizd.oracles.pyth.aiohttp.TCPConnector"):
                prices = await oracle.fetch_prices()

        assert prices == {}

    @pytest.mark.asyncio
    async def test_handles_network_error(self, oracle: PythOracle) -> None:
        mock_session = _mock_session()
        mock_session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("timeout"))

        with patch("leizd.oracles.pyth.aiohttp.ClientSession", return_value=mock_session):
            with patch("leizd.oracles.pyth.aiohttp.TCPConnector"):
                prices = await oracle.fetch_prices()

        assert prices == {}

    @pytest.mark.asyncio
    async def test_skips_non_positive_price(self, oracle: PythOracle) -> None:
        mock_data = _make_pyth_response(
            [
                {"id": "aaa111", "price": {"price": "0", "expo": "-8"}},
                {"id": "bbb222", "price": {"price": "100000000", "expo": "-8"}},
            ]
        )

        with patch("leizd.oracles.pyth.aiohttp.ClientSession", return_value=_mock_session(200, mock_data)):
            with patch("leizd.oracles.pyth.aiohttp.TCPConnector"):
                prices = await oracle.fetch_prices()

        assert prices == {"USDC": PRECISION}

    @pytest.mark.asyncio
    async def test_symbol_filter(self, oracle: PythOracle) -> None:
        mock_data = _make_pyth_response(
            [{"id": "aaa111", "price": {"price": "200000000000", "expo": "-8"}}]
        )
        session = _mock_session(200, mock_data)

        with patch("leizd.oracles.pyth.aiohttp.ClientSession", return_value=session):
            with patch("leizd.oracles.pyth.aiohttp.TCPConnector"):
                prices = await oracle.fetch_prices(symbols=["WETH"])

        assert set(prices) == {"WETH"}
        url = session.get.call_args.args[0]
        assert "ids[]=aaa111" in url
        assert "bbb222" not in url

    @pytest.mark.asyncio
    async def test_empty_feeds_returns_empty(self) -> None:
        oracle = PythOracle(PythConfig(hermes_url="https://x.com", feeds={}))
        prices = await oracle.fetch_prices()
        assert prices == {}
