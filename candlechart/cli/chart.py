"""Chart commands for candlechart CLI.

Handles fetching and displaying candle series, either once or with
periodic auto-refresh.
"""

import asyncio
import json
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from candlechart.providers.intervals import INTERVAL_MAP, VALID_INTERVALS

console = Console()

# Rows shown in the table by default
DEFAULT_ROWS = 20


def _get_config():
    """Load configuration, exiting with a panel if it is invalid."""
    from candlechart.config import load_config
    from candlechart.errors import ConfigError

    try:
        return load_config()
    except ConfigError as e:
        console.print(Panel(
            f"[red]Invalid configuration:[/red]\n\n{e}",
            title="[bold red]Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)


def _get_service(config):
    """Get the chart data service for a configuration."""
    from candlechart.service import ChartDataService

    return ChartDataService.from_config(config)


def build_table(symbol: str, interval: str, envelope, rows: int = DEFAULT_ROWS) -> Table:
    """Build a table of the newest candles in an envelope.

    Args:
        symbol: Symbol shown in the title.
        interval: Interval shown in the title.
        envelope: ResultEnvelope with candles newest first.
        rows: Maximum number of rows.

    Returns:
        Rich table, newest candle on top.
    """
    candles = envelope.data
    table = Table(
        title=f"{symbol} - {interval} ({len(candles)} candles)",
        show_header=True,
        header_style="bold cyan",
    )

    table.add_column("Date/Time", style="dim")
    table.add_column("Open", justify="right")
    table.add_column("High", justify="right", style="green")
    table.add_column("Low", justify="right", style="red")
    table.add_column("Close", justify="right")
    table.add_column("Volume", justify="right", style="dim")
    table.add_column("Calls", justify="right", style="green")
    table.add_column("Puts", justify="right", style="red")
    table.add_column("Change", justify="right")

    for i, candle in enumerate(candles[:rows]):
        # Series is newest first, so the previous candle is the next one
        if i + 1 < len(candles):
            prev_close = candles[i + 1].close
            change = candle.close - prev_close
            change_pct = change / prev_close * 100
            change_style = "green" if change >= 0 else "red"
            change_str = f"[{change_style}]{change:+.2f} ({change_pct:+.2f}%)[/{change_style}]"
        else:
            change_str = "[dim]-[/dim]"

        table.add_row(
            candle.timestamp.strftime("%Y-%m-%d %H:%M"),
            f"{candle.open:.2f}",
            f"{candle.high:.2f}",
            f"{candle.low:.2f}",
            f"{candle.close:.2f}",
            f"{candle.volume:,}",
            f"{candle.call_volume:,}" if candle.call_volume is not None else "-",
            f"{candle.put_volume:,}" if candle.put_volume is not None else "-",
            change_str,
        )

    return table


def _source_note(state) -> Optional[str]:
    from candlechart.service import FetchState

    if state is FetchState.FALLEN_BACK:
        return "[yellow]Live data unavailable, showing synthetic candles[/yellow]"
    return None


async def _fetch_once(service, symbol: str, interval: str):
    async with service:
        return await service.fetch(symbol, interval)


@click.command()
@click.argument("symbol", required=False)
@click.option(
    "-i", "--interval",
    default=None,
    type=click.Choice(VALID_INTERVALS),
    help="Candle interval (default from config, 5m)",
)
@click.option(
    "-n", "--rows",
    default=DEFAULT_ROWS,
    type=click.IntRange(min=1),
    help=f"Number of candles to display (default: {DEFAULT_ROWS})",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result envelope as JSON")
def chart(symbol: Optional[str], interval: Optional[str], rows: int, as_json: bool) -> None:
    """Fetch and display the latest candles for a symbol.

    SYMBOL is the trading symbol (e.g., IBM, MSFT, RELIANCE.BSE).

    \b
    Examples:
      candlechart chart IBM
      candlechart chart RELIANCE.BSE -i 15m
      candlechart chart MSFT --json
    """
    config = _get_config()
    symbol = (symbol or config.chart.default_symbol).upper()
    interval = interval or config.chart.default_interval

    service = _get_service(config)
    envelope, state = asyncio.run(_fetch_once(service, symbol, interval))

    if as_json:
        click.echo(json.dumps(envelope.to_dict()))
        return

    if not envelope.ok or not envelope.data:
        console.print(Panel(
            f"[yellow]No chart data available for {symbol} ({interval})[/yellow]",
            title="[bold yellow]No Data[/bold yellow]",
            border_style="yellow",
        ))
        raise SystemExit(1)

    note = _source_note(state)
    if note:
        console.print(note)
    console.print(build_table(symbol, interval, envelope, rows))

    if len(envelope.data) > rows:
        console.print(f"[dim]Showing latest {rows} of {len(envelope.data)} candles[/dim]")


async def _watch(service, symbol: str, interval: str, period: float, rows: int) -> None:
    from rich.console import Group
    from rich.live import Live

    from candlechart.refresh import RefreshController

    live_display = Live(f"[dim]Fetching {interval} data for {symbol}...[/dim]", console=console)

    def render(envelope) -> Group:
        stamp = controller.last_refreshed.strftime("%H:%M:%S") if controller.last_refreshed else "-"
        parts = [build_table(symbol, interval, envelope, rows)]
        note = _source_note(controller.fetch_state)
        if note:
            parts.append(note)
        parts.append(f"[dim]Last updated: {stamp} (every {period:g}s, Ctrl+C to stop)[/dim]")
        return Group(*parts)

    def on_update(envelope) -> None:
        live_display.update(render(envelope))

    def on_error(error) -> None:
        console.print(f"[yellow]Failed to refresh data: {error.cause}[/yellow]")

    controller = RefreshController(
        service,
        symbol,
        interval,
        period=period,
        on_update=on_update,
        on_error=on_error,
    )

    async with service:
        with live_display:
            async with controller:
                await controller.refresh()
                while True:
                    await asyncio.sleep(3600)


@click.command()
@click.argument("symbol", required=False)
@click.option(
    "-i", "--interval",
    default=None,
    type=click.Choice(VALID_INTERVALS),
    help="Candle interval (default from config, 5m)",
)
@click.option(
    "-p", "--period",
    default=None,
    type=click.FloatRange(min=1.0),
    help="Refresh period in seconds (default from config, 120)",
)
@click.option(
    "-n", "--rows",
    default=DEFAULT_ROWS,
    type=click.IntRange(min=1),
    help=f"Number of candles to display (default: {DEFAULT_ROWS})",
)
def watch(symbol: Optional[str], interval: Optional[str], period: Optional[float], rows: int) -> None:
    """Watch candles for a symbol, refreshing periodically.

    SYMBOL is the trading symbol (e.g., IBM, MSFT, RELIANCE.BSE).

    Press Ctrl+C to stop watching.

    \b
    Examples:
      candlechart watch IBM
      candlechart watch AAPL -i 1m --period 60
    """
    config = _get_config()
    symbol = (symbol or config.chart.default_symbol).upper()
    interval = interval or config.chart.default_interval
    period = period or config.chart.refresh_seconds

    service = _get_service(config)
    try:
        asyncio.run(_watch(service, symbol, interval, period, rows))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching.[/dim]")


@click.command()
def intervals() -> None:
    """List supported intervals and their provider tokens."""
    table = Table(title="Intervals", show_header=True, header_style="bold cyan")
    table.add_column("Interval", style="bold")
    table.add_column("Provider token", style="dim")

    for token, provider_token in INTERVAL_MAP.items():
        table.add_row(token, provider_token)

    console.print(table)
