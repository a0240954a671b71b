"""
YieldBridge - Main Entry Point

Usage:
    python main.py --env demo status              # Offline mode with simulated chains
    python main.py --env demo connect keplr
    python main.py --env demo deposit finance 500
    python main.py --env demo skim
    python main.py --env demo connect plug
    python main.py --env demo convert 45.67
    python main.py --env prod bridge 25 rrkah-fqaaa-aaaaa-aaaaq-cai
"""

from __future__ import annotations
import asyncio
import argparse
import sys
from typing import Iterable, Optional

from rich.console import Console
from rich.table import Table

from config.config_manager import ConfigManager
from yieldbridge.application import AppContainer
from yieldbridge.domain.exceptions import YieldBridgeError
from yieldbridge.models import AggregatedBalance, CrossChainTransaction, TransactionStatus
from yieldbridge.utils import flush_all_loggers, set_log_timezone, shutdown_logging
from yieldbridge.utils.logging_setup import get_logger, setup_category_logging


console = Console()
logger = get_logger("yieldbridge.cli")

STATUS_STYLES = {
    TransactionStatus.PENDING: "yellow",
    TransactionStatus.COMPLETED: "green",
    TransactionStatus.FAILED: "red",
}


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="YieldBridge - stablecoin yield to Bitcoin across chains",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --env demo status
  python main.py --env demo connect keplr
  python main.py --env demo deposit finance 500
  python main.py --env demo convert 45.67
        """
    )

    parser.add_argument(
        "--env",
        type=str,
        default="dev",
        choices=["dev", "prod", "demo"],
        help="Environment to run in (default: dev). Use 'demo' for simulated chains."
    )

    parser.add_argument(
        "--config-dir",
        type=str,
        default="config",
        help="Directory containing base.yaml and {env}.yaml (default: config)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level, console output)"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Wallet connection, chain health and routing config")
    sub.add_parser("balances", help="Balances of the connected identity, aggregated")

    deposit = sub.add_parser("deposit", help="Deposit stablecoin into yield custody")
    deposit.add_argument("chain", choices=["custody", "finance"])
    deposit.add_argument("amount", type=str)

    sub.add_parser("skim", help="Sweep accrued yield from the finance chain to custody")

    convert = sub.add_parser("convert", help="Convert custody-side yield into bitcoin")
    convert.add_argument("amount", type=str)

    bridge = sub.add_parser("bridge", help="Relay yield to the other chain")
    bridge.add_argument("amount", type=str)
    bridge.add_argument("recipient", type=str)
    bridge.add_argument("--source", choices=["custody", "finance"], default="finance")

    connect = sub.add_parser("connect", help="Connect a wallet provider")
    connect.add_argument("provider", type=str)

    sub.add_parser("disconnect", help="Disconnect the active wallet")

    return parser.parse_args(argv)


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------

def render_transaction(tx: CrossChainTransaction) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("field", style="dim")
    table.add_column("value")
    style = STATUS_STYLES.get(tx.status, "")
    table.add_row("id", tx.id)
    table.add_row("operation", tx.operation.value)
    table.add_row("route", f"{tx.source_chain.value} -> {tx.destination_chain.value}")
    table.add_row("amount", f"{tx.amount} {tx.currency}")
    table.add_row("status", f"[{style}]{tx.status.value}[/{style}]")
    if tx.external_reference:
        table.add_row("reference", tx.external_reference)
    if tx.recipient:
        table.add_row("recipient", tx.recipient)
    if tx.error_message:
        table.add_row("error", f"{tx.error_kind}: {tx.error_message}")
    return table


def render_balances(aggregated: AggregatedBalance, currency: str) -> Table:
    table = Table(title="Balances", show_header=True)
    table.add_column("Chain")
    table.add_column("Account")
    table.add_column(currency, justify="right")
    table.add_column("BTC", justify="right")
    table.add_column("Yield", justify="right")
    for balance in aggregated.chains:
        table.add_row(
            balance.chain.value,
            balance.account or "-",
            str(balance.stablecoin_balance),
            str(balance.bitcoin_balance),
            str(balance.cumulative_yield),
        )
    table.add_row(
        "[bold]total[/bold]", "",
        f"[bold]{aggregated.total_stablecoin}[/bold]",
        f"[bold]{aggregated.total_bitcoin}[/bold]",
        f"[bold]{aggregated.total_yield}[/bold]",
    )
    return table


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

async def run_command(args: argparse.Namespace, container: AppContainer) -> int:
    """Dispatch one subcommand against an initialized container."""
    orchestrator = container.orchestrator
    wallets = container.wallet_manager

    if args.command == "status":
        status = wallets.snapshot()
        table = Table(title="YieldBridge", show_header=False)
        table.add_column("key", style="dim")
        table.add_column("value")
        table.add_row("mode", container.config.mode)
        table.add_row("wallet", status.state.value)
        if status.identity is not None:
            table.add_row("provider", status.identity.provider_kind.value)
            table.add_row("address", status.identity.address)
            table.add_row("chain class", status.chain_class.value)
        for name, ok in (await orchestrator.check_health()).items():
            table.add_row(f"{name} health", "[green]ok[/green]" if ok else "[red]down[/red]")
        for key, value in orchestrator.get_config().to_dict().items():
            table.add_row(key, value or "-")
        console.print(table)
        return 0

    if args.command == "connect":
        identity = await wallets.connect(args.provider)
        console.print(f"[green]Connected[/green] {identity.provider_kind.value} {identity.address}")
        return 0

    if args.command == "disconnect":
        await wallets.disconnect()
        console.print("Disconnected")
        return 0

    if args.command == "balances":
        identity = wallets.identity
        if identity is None:
            console.print("[yellow]No wallet connected[/yellow]")
            return 1
        balances = await orchestrator.get_balances([identity])
        aggregated = container.aggregator.aggregate(balances)
        console.print(render_balances(aggregated, orchestrator.currency))
        for anomaly in aggregated.anomalies:
            console.print(f"[yellow]anomaly[/yellow] {anomaly.kind}: {anomaly.detail}")
        return 0

    if args.command == "deposit":
        tx = await orchestrator.deposit(args.chain, args.amount, wallets.identity)
    elif args.command == "skim":
        tx = await orchestrator.trigger_yield_skim(wallets.identity)
    elif args.command == "convert":
        tx = await orchestrator.convert_yield_to_bitcoin(wallets.identity, args.amount)
    elif args.command == "bridge":
        tx = await orchestrator.bridge_yield_to_other_chain(
            args.amount, args.recipient, source=args.source, identity=wallets.identity
        )
    else:
        raise ValueError(f"Unknown command: {args.command}")

    console.print(render_transaction(tx))
    return 0


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    config = ConfigManager(config_dir=args.config_dir, env=args.env).load()

    set_log_timezone(config.logging.timezone)
    setup_category_logging(
        env=args.env,
        log_dir=config.logging.directory,
        level=config.logging.level,
        console=config.logging.console or args.verbose,
        verbose=args.verbose,
    )
    logger.info(f"Starting YieldBridge (env={args.env}, command={args.command})")

    container = AppContainer(config=config, env=args.env)
    try:
        await container.initialize()
        return await run_command(args, container)
    except YieldBridgeError as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        console.print(f"[red]{type(e).__name__}[/red]: {e}")
        failed = getattr(e, "transaction_id", None)
        if failed and container.ledger is not None and container.ledger.get(failed):
            console.print(render_transaction(container.ledger.get(failed)))
        return 1
    finally:
        await container.cleanup()
        flush_all_loggers()
        shutdown_logging()


def main() -> None:
    """Main entry point."""
    args = parse_args()

    try:
        sys.exit(asyncio.run(main_async(args)))
    except KeyboardInterrupt:
        print("Shutdown requested")
        sys.exit(0)
    except (FileNotFoundError, ValueError) as e:
        print(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
