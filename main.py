"""
Main entry point for the regime engine
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from regime_engine.config import ConfigError, EngineConfig, load_config
from regime_engine.core import RegimeEngine, RegimeVerdict
from regime_engine.data_loader import candles_from_dataframe, load_csv
from regime_engine.models import SignalDirection, StructureEvent

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Setup logging configuration"""
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def render_verdict(verdict: RegimeVerdict, console: Console) -> None:
    """Print a regime verdict as a table"""
    table = Table(title=f"Regime Verdict - {verdict.symbol} {verdict.direction.value}", box=box.ROUNDED)
    table.add_column("Check", style="cyan")
    table.add_column("Value", style="white")

    status = "[bold green]ALLOWED[/]" if verdict.allowed else "[bold red]BLOCKED[/]"
    table.add_row("Decision", status)
    table.add_row("Trend", f"{verdict.trend.bias.value} ({verdict.trend.strength:.2f})")
    table.add_row("Restricted", ", ".join(d.value for d in verdict.trend.restricted_directions) or "-")
    table.add_row("Structure Trend", verdict.structure.current_trend.value)
    table.add_row("Structure Pattern", verdict.structure_pattern or "-")

    event = verdict.structure.event
    table.add_row("Structure Event", f"{event.type.value} {event.direction.value} @ {event.price:.4f}" if event else "-")
    table.add_row("Confidence Modifier", f"{verdict.structure.confidence_modifier:.2f}")

    if verdict.reference is not None:
        reference = verdict.reference
        table.add_row("Reference", f"{reference.direction.value} momentum {reference.momentum:.2f}")
        if reference.correlation is not None:
            table.add_row("Correlation", f"{reference.correlation.coefficient:.3f} "
                                         f"({reference.correlation.filter_strength.value})")
        gate = "[green]CONFIRMED[/]" if verdict.reference_confirmed else "[red]BLOCKED[/]"
        table.add_row("Reference Gate", gate)

    console.print(table)
    for line in verdict.reasons:
        console.print(f"  {line}")


def render_events(symbol: str, events: List[StructureEvent], console: Console) -> None:
    """Print replayed structure events"""
    table = Table(title=f"Structure Events - {symbol}", box=box.SIMPLE)
    table.add_column("Time", style="cyan")
    table.add_column("Event", style="bold")
    table.add_column("Direction", style="white")
    table.add_column("Price", style="yellow")
    table.add_column("Strength", style="magenta")

    for event in events:
        color = "green" if event.direction.value == 'BULLISH' else "red"
        table.add_row(
            str(event.timestamp),
            event.type.value,
            f"[{color}]{event.direction.value}[/]",
            f"{event.price:.4f}",
            f"{event.strength:.0%}"
        )

    if not events:
        table.add_row("-", "-", "-", "-", "[dim]No structure events[/]")

    console.print(table)


def run(args: argparse.Namespace, config: EngineConfig) -> int:
    console = Console()
    engine = RegimeEngine(config)
    candles = candles_from_dataframe(load_csv(args.candles))

    if args.replay:
        events = engine.replay(args.symbol, candles)
        render_events(args.symbol.upper(), events, console)
        return 0

    reference_candles = None
    if args.reference:
        reference_candles = candles_from_dataframe(load_csv(args.reference))

    verdict = engine.evaluate(
        args.symbol,
        candles,
        args.timeframe,
        SignalDirection(args.direction),
        reference_candles
    )
    render_verdict(verdict, console)
    return 0 if verdict.allowed else 2


def main():
    """Main function with command line argument parsing"""
    parser = argparse.ArgumentParser(
        description='Regime Engine - trend, market structure and reference-asset confirmation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --candles data/eth_1h.csv --timeframe 1h --symbol ETHUSDT --direction LONG
  python main.py --candles data/eth_1h.csv --timeframe 1h --reference data/btc_1h.csv --direction SHORT
  python main.py --candles data/eth_1h.csv --timeframe 1h --replay
        """
    )

    # Required arguments
    parser.add_argument('--candles', required=True,
                        help='Traded asset OHLCV CSV file')
    parser.add_argument('--timeframe', required=True,
                        help='Timeframe label of the candles (e.g., 1h)')

    # Optional arguments
    parser.add_argument('--symbol', default='ALTUSDT',
                        help='Traded symbol (default: ALTUSDT)')
    parser.add_argument('--direction', default='HOLD', choices=[d.value for d in SignalDirection],
                        help='Candidate signal direction (default: HOLD)')
    parser.add_argument('--reference', default=None,
                        help='Reference asset OHLCV CSV file aligned with --candles')
    parser.add_argument('--config', default='config/engine.yaml',
                        help='Engine config YAML (default: config/engine.yaml)')
    parser.add_argument('--replay', action='store_true',
                        help='Replay candles bar by bar and list structure events')
    parser.add_argument('--log-level', default=None,
                        help='Override the configured log level')

    args = parser.parse_args()

    for path in (args.candles, args.reference):
        if path and not Path(path).exists():
            print(f"Error: CSV file not found: {path}")
            sys.exit(1)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigError) as e:
        print(f"Error loading config: {e}")
        sys.exit(1)

    setup_logging(args.log_level or config.log_level, config.log_file)

    try:
        sys.exit(run(args, config))
    except ValueError as e:
        logger.error(f"Regime evaluation failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
