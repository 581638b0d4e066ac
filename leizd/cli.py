"""Command-line interface for running lending scenarios."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from .config import AppConfig, load_config
from .exceptions import LeizdError
from .logging_setup import configure_logging
from .models import Domain
from .oracles import PythOracle
from .services import LendingProtocol

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="leizd",
        description="Shadow-asset lending protocol simulator",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("markets", help="List markets with risk limits and prices")

    run_parser = sub.add_parser("run", help="Execute a YAML scenario of account steps")
    run_parser.add_argument("scenario", help="Path to the scenario file")
    run_parser.add_argument(
        "--live-prices",
        action="store_true",
        help="Refresh prices from Pyth before running",
    )

    return parser


async def _refresh_prices(config: AppConfig, protocol: LendingProtocol) -> None:
    if config.price_oracle.provider != "pyth":
        logger.warning(
            "Live prices requested but the oracle provider is '%s'", config.price_oracle.provider
        )
        return
    fetched = await PythOracle(config.price_oracle.pyth).fetch_prices()
    for key, price in fetched.items():
        if key in config.prices:
            protocol.store.prices.update(key, price)


def load_scenario(path: str | Path) -> list[dict[str, Any]]:
    """Read the ``steps`` list of a scenario file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    steps = raw.get("steps", [])
    if not isinstance(steps, list):
        raise ValueError(f"'steps' in {path} must be a list")
    return steps


def apply_step(protocol: LendingProtocol, step: dict[str, Any]) -> Any:
    """Dispatch one scenario step to the protocol."""
    action = step.get("action")
    account = str(step.get("account", ""))
    market = str(step.get("market", ""))
    amount = int(step.get("amount", 0))
    domain = Domain(step.get("domain", Domain.ASSET_TO_SHADOW.value))

    if action == "supply":
        return protocol.store.central_pool.deposit(account, amount)
    if action == "deposit":
        return protocol.deposit(
            account, market, amount, domain, bool(step.get("collateral_only", False))
        )
    if action == "withdraw":
        return protocol.withdraw(account, market, amount, domain)
    if action == "borrow":
        return protocol.borrow(account, market, amount, domain)
    if action == "repay":
        return protocol.repay(account, market, amount, domain)
    if action == "borrow_with_rebalance":
        return protocol.borrow_asset_with_rebalance(account, market, amount)
    if action == "repay_evenly":
        return protocol.repay_shadow_evenly(account, amount)
    if action == "protect":
        return protocol.enable_protection(account, market)
    if action == "unprotect":
        return protocol.disable_protection(account, market)
    if action == "set_price":
        return protocol.store.prices.update(market, int(step["price"]))
    raise ValueError(f"Unknown scenario action '{action}'")


def run_scenario(protocol: LendingProtocol, steps: list[dict[str, Any]]) -> int:
    """Apply every step; returns the number of steps that failed."""
    failures = 0
    for i, step in enumerate(steps, start=1):
        try:
            apply_step(protocol, step)
        except (LeizdError, ValueError, KeyError) as e:
            failures += 1
            logger.error("Step %d (%s) failed: %s", i, step.get("action"), e)
    return failures


def format_markets(protocol: LendingProtocol) -> str:
    store = protocol.store
    lines = [f"{'market':<10}{'ltv':>14}{'lt':>14}{'price':>16}"]
    for name in store.risk.markets:
        market = store.risk.market(name)
        lines.append(
            f"{name:<10}{market.ltv:>14}{market.lt:>14}{store.prices.price_of(name):>16}"
        )
    lines.append(
        f"{store.shadow_symbol:<10}{store.risk.ltv_shadow():>14}{store.risk.lt_shadow():>14}"
        f"{store.prices.price_of(store.shadow_symbol):>16}"
    )
    return "\n".join(lines)


def format_positions(protocol: LendingProtocol) -> str:
    lines = []
    for account in protocol.store.ledger.accounts():
        for s in protocol.position_summaries(account):
            flags = ("C" if s.collateral_only else "-") + ("P" if s.protected else "-")
            lines.append(
                f"{s.account:<10}{s.domain.value:<17}{s.market:<8}{flags:<4}"
                f"dep={s.deposited:<14}debt={s.borrowed:<14}hf={s.health_factor}"
            )
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    protocol = LendingProtocol.from_config(config)

    if args.command == "markets":
        print(format_markets(protocol))
    elif args.command == "run":
        steps = load_scenario(args.scenario)
        if args.live_prices:
            await _refresh_prices(config, protocol)
        failures = run_scenario(protocol, steps)
        print(format_positions(protocol))
        if failures:
            logger.warning("%d of %d steps failed", failures, len(steps))
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
