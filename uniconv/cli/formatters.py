"""
Functions for formatting and displaying data in the console using Rich.
"""

import time
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from uniconv.exceptions import ConverterError, ErrorType
from uniconv.models.entities import (
    ConversionResult,
    Currency,
    CurrencyConversionResult,
    ExchangeRates,
    TimeConversionResult,
    TimeZone,
    Unit,
    UnitCategory,
)
from uniconv.models.preferences import UserPreferences
from uniconv.models.stats import CacheStats
from uniconv.utils.formatting import format_age, format_size

SUGGESTIONS: dict[ErrorType, list[str]] = {
    ErrorType.NETWORK_ERROR: [
        "• Check your internet connection.",
        "• Cached data is used automatically once it exists; try again online first.",
    ],
    ErrorType.API_ERROR: [
        "• The data provider may be temporarily unavailable.",
        "• Please try again in a few minutes.",
        "• Run `uniconv diagnose` to test connectivity.",
    ],
    ErrorType.RATE_LIMIT_ERROR: [
        "• The data provider is throttling requests.",
        "• Wait a minute before trying again.",
    ],
    ErrorType.VALIDATION_ERROR: [
        "• Check the values you passed.",
        "• Use `uniconv units`, `uniconv currencies` or `uniconv zones` to list "
        "valid identifiers.",
    ],
    ErrorType.CONVERSION_ERROR: [
        "• Both units must belong to the same category.",
        "• For currencies, the rate table may not include this pair; try "
        "`uniconv rates --refresh`.",
    ],
    ErrorType.STORAGE_ERROR: [
        "• The cache directory may be full or read-only.",
        "• Run `uniconv cache clear` to free space.",
    ],
    ErrorType.DATA_CORRUPTION: [
        "• Corrupted cache entries are removed automatically.",
        "• Run `uniconv cache clear --all` if the problem persists.",
    ],
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    if isinstance(error, ConverterError):
        title = error.error_type.value
        suggestions = SUGGESTIONS.get(error.error_type)
    else:
        title = type(error).__name__
        suggestions = None
    suggestions = suggestions or ["• Run the command with -v for detailed logs."]

    error_text = Text()
    error_text.append(f"{title}: ", style="bold red")
    error_text.append(str(error))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the configuration file's values."""
    console = Console()
    if not config_data:
        console.print(f"[dim]No configuration file at {config_path}; using defaults.[/dim]")
        return
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_conversion(value: float, from_unit: Unit, result: ConversionResult):
    console = Console()
    console.print(
        f"[bold]{value:g}[/bold] {from_unit.symbol} = "
        f"[bold green]{result.formatted_value}[/bold green] {result.unit.symbol} "
        f"[dim]({from_unit.name} → {result.unit.name})[/dim]"
    )


def print_units_table(categories: list[UnitCategory], units: list[Unit] | None = None):
    """Lists categories, or the given units grouped by category."""
    console = Console()
    if units is None:
        table = Table(title="Unit Categories", box=box.SIMPLE_HEAVY)
        table.add_column("Category", style="cyan")
        table.add_column("Name")
        table.add_column("Base Unit", style="green")
        table.add_column("Units", justify="right")
        for category in categories:
            table.add_row(
                category.id, category.name, category.base_unit, str(len(category.units))
            )
        console.print(table)
        return

    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Symbol", style="green")
    table.add_column("Category", style="dim")
    for unit in units:
        table.add_row(unit.id, unit.name, unit.symbol, unit.category)
    console.print(table)


def print_currency_conversion(result: CurrencyConversionResult, amount: float):
    console = Console()
    console.print(
        f"[bold]{amount:,.2f}[/bold] {result.from_currency.code} = "
        f"[bold green]{result.formatted_amount}[/bold green] {result.to_currency.code}"
    )
    line = f"[dim]Rate {result.rate:.6g} · updated {format_age(result.timestamp)}[/dim]"
    console.print(line)
    if result.is_stale:
        console.print(
            "[yellow]⚠️  These exchange rates are more than 24 hours old.[/yellow]"
        )


def print_rates_table(
    rates: ExchangeRates, currencies: dict[str, Currency], is_stale: bool
):
    console = Console()
    table = Table(
        title=f"Exchange rates for 1 {rates.base}",
        caption=f"Updated {format_age(rates.timestamp)} · source: {rates.source or 'cache'}",
        box=box.SIMPLE_HEAVY,
    )
    table.add_column("Code", style="cyan")
    table.add_column("Currency")
    table.add_column("Rate", justify="right", style="green")
    for code in sorted(rates.rates):
        currency = currencies.get(code)
        table.add_row(code, currency.name if currency else "", f"{rates.rates[code]:.6g}")
    console.print(table)
    if is_stale:
        console.print("[yellow]⚠️  These rates are stale (older than 24 hours).[/yellow]")


def print_currencies_table(currencies: list[Currency]):
    console = Console()
    table = Table(title="Supported Currencies", box=box.SIMPLE_HEAVY)
    table.add_column("", justify="center")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    table.add_column("Symbol", style="green")
    for currency in currencies:
        table.add_row(currency.flag or "", currency.code, currency.name, currency.symbol)
    console.print(table)


def _format_offset(minutes: int) -> str:
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"UTC{sign}{hours:02d}:{mins:02d}"


def print_time_conversion(result: TimeConversionResult):
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()
    table.add_row(
        f"{result.source_time_zone.name}:",
        f"{result.source_time:%Y-%m-%d %H:%M:%S %Z}",
    )
    table.add_row(
        f"{result.target_time_zone.name}:",
        f"[bold green]{result.target_time:%Y-%m-%d %H:%M:%S %Z}[/bold green]",
    )
    console.print(Panel(table, title="Time Conversion", border_style="cyan", expand=False))
    if result.is_dst_transition:
        console.print(
            "[yellow]⚠️  A daylight saving time change happens within a day of "
            "this time.[/yellow]"
        )


def print_zones_table(zones: list[TimeZone]):
    console = Console()
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("Zone", style="cyan")
    table.add_column("Name")
    table.add_column("Offset", justify="right", style="green")
    table.add_column("DST", justify="center")
    table.add_column("Country", style="dim")
    for zone in zones:
        table.add_row(
            zone.id,
            zone.name,
            _format_offset(zone.offset),
            "✓" if zone.is_dst else "",
            zone.country or "",
        )
    console.print(table)


def print_preferences(preferences: UserPreferences):
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    for key, value in preferences.model_dump().items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items())
        elif isinstance(value, bool):
            value = "[green]✓[/green]" if value else "[dim]✗[/dim]"
        table.add_row(f"{key}:", str(value))
    console.print(Panel(table, title="[bold]Preferences[/bold]", border_style="cyan"))


def print_cache_stats(stats: CacheStats, healthy: bool):
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right", width=22)
    table.add_column()

    table.add_row("Total Size:", format_size(stats.total_size))
    table.add_row("Entries:", str(stats.entry_count))
    table.add_row("In Overflow Tier:", str(stats.secondary_entry_count))
    table.add_row(
        "Exchange Rates:",
        format_age(time.time() - stats.exchange_rates_age)
        if stats.exchange_rates_age is not None
        else "[dim]not cached[/dim]",
    )
    table.add_row("Preferences Saved:", "✓" if stats.user_preferences_exists else "✗")
    table.add_row(
        "Last Cleanup:",
        format_age(stats.last_cleanup) if stats.last_cleanup else "[dim]never[/dim]",
    )
    table.add_row("Hit Ratio:", f"{stats.hit_ratio:.0%}")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Cache Healthy[/bold green]"
            if healthy
            else "[bold yellow]⚠️  Cache Needs Attention[/bold yellow]",
            border_style="green" if healthy else "yellow",
            expand=False,
        )
    )

