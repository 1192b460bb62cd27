"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import json
import logging
import os
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from uniconv import __version__
from uniconv.core.context import ConverterContext
from uniconv.exceptions import ConverterError, InvalidInputError
from uniconv.models.currencies import CURRENCIES
from uniconv.storage.config_manager import ConfigManager
from uniconv.utils.formatting import format_number

from .formatters import (
    print_cache_stats,
    print_config,
    print_conversion,
    print_currencies_table,
    print_currency_conversion,
    print_preferences,
    print_rates_table,
    print_time_conversion,
    print_units_table,
    print_zones_table,
)

T = TypeVar("T")

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("uniconv")

app = typer.Typer(
    name="uniconv",
    help=(
        "Convert units, currencies and time zones, online or offline. Use"
        " 'uniconv <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)
prefs_app = typer.Typer(help="View and change saved preferences.")
cache_app = typer.Typer(help="Inspect and clear the local cache.")
app.add_typer(prefs_app, name="prefs")
app.add_typer(cache_app, name="cache")


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "uniconv"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _run(ctx: typer.Context, action: Callable[[ConverterContext], Awaitable[T]]) -> T:
    """Loads the configuration and runs `action` inside a started context."""
    offline = bool(ctx.obj and ctx.obj.get("offline"))
    config = ConfigManager(CONFIG_FILE).load_config({"offline": offline or None})

    async def _inner() -> T:
        async with ConverterContext(config) as context:
            return await action(context)

    return asyncio.run(_inner())


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Never contact remote providers; use cached data."
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Universal Converter CLI"""
    if version:
        console.print(f"[bold]uniconv[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("uniconv").setLevel(log_level)

    if show_config:
        print_config(CONFIG_FILE, ConfigManager(CONFIG_FILE).read_raw())
        raise typer.Exit()

    ctx.obj = {"offline": offline}
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing file without asking."
    ),
):
    """Write a configuration file with every setting at its default."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()
    ConfigManager(CONFIG_FILE).save_new_config()
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


# --- Units --------------------------------------------------------------------


@app.command()
def convert(
    ctx: typer.Context,
    value: str = typer.Argument(..., help="The number to convert."),
    from_unit: str = typer.Argument(..., help="Source unit id or alias (e.g. km)."),
    to_unit: str = typer.Argument(..., help="Target unit id or alias (e.g. mi)."),
    decimals: int | None = typer.Option(
        None,
        "--decimals",
        "-d",
        min=0,
        max=15,
        help="Decimal places to show (defaults to the saved preference).",
    ),
):
    """Convert a value between two units of the same category."""

    async def _convert(context: ConverterContext):
        engine = context.units
        if not engine.validate_input(value):
            raise InvalidInputError(f"'{value}' is not a valid number.", {"value": value})
        number = float(value)
        result = engine.convert(number, from_unit, to_unit)
        places = decimals
        if places is None:
            places = (await context.preferences.get_preferences()).decimal_places
        result = result.model_copy(
            update={"formatted_value": format_number(result.value, places)}
        )
        print_conversion(number, engine.find_unit(from_unit), result)

    _run(ctx, _convert)


@app.command()
def units(
    ctx: typer.Context,
    category: str | None = typer.Argument(
        None, help="Category to list (omit to list categories)."
    ),
    search: str | None = typer.Option(
        None, "--search", "-s", help="Filter units by name, symbol or alias."
    ),
):
    """List unit categories, or the units in one category."""

    async def _units(context: ConverterContext):
        engine = context.units
        if category and engine.get_category(category) is None:
            raise InvalidInputError(
                f"Unknown unit category: '{category}'", {"category": category}
            )
        if search:
            found = engine.search_units(search, category)
            if not found:
                console.print(f"[yellow]No units match '{search}'.[/yellow]")
                return
            print_units_table(engine.get_categories(), found)
        elif category:
            print_units_table(engine.get_categories(), engine.get_popular_units(category))
        else:
            print_units_table(engine.get_categories())

    _run(ctx, _units)


# --- Currency -----------------------------------------------------------------


@app.command()
def currency(
    ctx: typer.Context,
    amount: float = typer.Argument(..., help="Amount in the source currency."),
    from_currency: str = typer.Argument(..., help="Source currency code (e.g. USD)."),
    to_currency: str | None = typer.Argument(
        None, help="Target currency code (defaults to the saved preference)."
    ),
):
    """Convert an amount between two currencies."""

    async def _currency(context: ConverterContext):
        target = to_currency
        if target is None:
            target = (await context.preferences.get_preferences()).default_currency
        result = await context.currency.convert_currency(amount, from_currency, target)
        print_currency_conversion(result, amount)

    _run(ctx, _currency)


@app.command()
def rates(
    ctx: typer.Context,
    base: str = typer.Argument("USD", help="Base currency code."),
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Fetch new rates even if cached ones are fresh."
    ),
):
    """Show the exchange rate table for a base currency."""

    async def _rates(context: ConverterContext):
        service = context.currency
        table = (
            await service.refresh_rates(base)
            if refresh
            else await service.get_exchange_rates(base)
        )
        print_rates_table(table, CURRENCIES, service.is_rate_stale(table.timestamp))

    _run(ctx, _rates)


@app.command()
def currencies(ctx: typer.Context):
    """List supported currencies."""

    async def _currencies(context: ConverterContext):
        print_currencies_table(context.currency.get_supported_currencies())

    _run(ctx, _currencies)


# --- Time zones ---------------------------------------------------------------


@app.command(name="time")
def current_time(
    ctx: typer.Context,
    zone: str | None = typer.Argument(
        None, help="IANA zone id (defaults to the saved preference)."
    ),
):
    """Show the current time in a time zone."""

    async def _time(context: ConverterContext):
        zone_id = zone
        if zone_id is None:
            zone_id = (await context.preferences.get_preferences()).default_time_zone
        now = await context.time_zones.get_current_time(zone_id)
        info = context.time_zones.get_time_zone_info(zone_id)
        dst = ""
        if context.time_zones.is_dst_active(zone_id, now):
            dst = " [yellow](DST)[/yellow]"
        console.print(
            f"[bold cyan]{info.name}[/bold cyan]: "
            f"[bold green]{now:%Y-%m-%d %H:%M:%S %Z}[/bold green]{dst}"
        )

    _run(ctx, _time)


@app.command(name="convert-time")
def convert_time(
    ctx: typer.Context,
    when: str = typer.Argument(
        ..., help="ISO 8601 date and time, e.g. 2024-07-15T12:00 (or 'now')."
    ),
    from_zone: str = typer.Argument(..., help="Zone the time is expressed in."),
    to_zone: str = typer.Argument(..., help="Zone to convert into."),
):
    """Convert a date and time from one time zone to another."""
    if when == "now":
        instant = datetime.now().astimezone()
    else:
        try:
            instant = datetime.fromisoformat(when)
        except ValueError as e:
            raise InvalidInputError(
                f"'{when}' is not an ISO 8601 date and time.", {"when": when}
            ) from e

    async def _convert_time(context: ConverterContext):
        result = await context.time_zones.convert_time(instant, from_zone, to_zone)
        print_time_conversion(result)

    _run(ctx, _convert_time)


@app.command()
def zones(
    ctx: typer.Context,
    query: str = typer.Argument("", help="Search by city, zone id, country or region."),
):
    """List or search supported time zones."""

    async def _zones(context: ConverterContext):
        found = context.time_zones.search_time_zones(query)
        if not found:
            console.print(f"[yellow]No time zones match '{query}'.[/yellow]")
            return
        print_zones_table(found)

    _run(ctx, _zones)


# --- Preferences --------------------------------------------------------------


def _parse_preference_value(raw: str) -> Any:
    """Reads JSON literals (numbers, booleans, objects); anything else is text."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@prefs_app.command(name="show")
def prefs_show(ctx: typer.Context):
    """Show the saved preferences."""

    async def _show(context: ConverterContext):
        print_preferences(await context.preferences.get_preferences())

    _run(ctx, _show)


@prefs_app.command(name="set")
def prefs_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Preference name, e.g. decimal_places."),
    value: str = typer.Argument(..., help="New value (JSON literals are parsed)."),
):
    """Change one preference."""

    async def _set(context: ConverterContext):
        updated = await context.preferences.set_preference(
            key, _parse_preference_value(value)
        )
        console.print(
            f"[green]✓ {key} = {getattr(updated, key)!r}[/green]"
        )

    _run(ctx, _set)


@prefs_app.command(name="reset")
def prefs_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
):
    """Restore every preference to its default."""
    if not yes and not typer.confirm("Reset all preferences to their defaults?"):
        raise typer.Abort()

    async def _reset(context: ConverterContext):
        await context.preferences.reset_preferences()
        console.print("[green]✓ Preferences reset to defaults.[/green]")

    _run(ctx, _reset)


@prefs_app.command(name="export")
def prefs_export(
    ctx: typer.Context,
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write to this file instead of stdout."
    ),
):
    """Export preferences as a JSON backup."""

    async def _export(context: ConverterContext):
        document = await context.preferences.export_preferences()
        if output is None:
            console.print_json(document)
            return
        output.write_text(document, encoding="utf-8")
        console.print(f"[green]✓ Preferences exported to '{output}'.[/green]")

    _run(ctx, _export)


@prefs_app.command(name="import")
def prefs_import(
    ctx: typer.Context,
    source: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Backup file to restore."
    ),
):
    """Import preferences from a JSON backup."""
    payload = source.read_text(encoding="utf-8")

    async def _import(context: ConverterContext):
        imported = await context.preferences.import_preferences(payload)
        console.print("[green]✓ Preferences imported.[/green]")
        print_preferences(imported)

    _run(ctx, _import)


# --- Cache --------------------------------------------------------------------


@cache_app.command(name="stats")
def cache_stats(ctx: typer.Context):
    """Show cache size, entry counts and data ages."""

    async def _stats(context: ConverterContext):
        stats = await context.cache_manager.get_cache_stats()
        print_cache_stats(stats, await context.cache_manager.is_cache_healthy())

    _run(ctx, _stats)


@cache_app.command(name="clear")
def cache_clear(
    ctx: typer.Context,
    all_data: bool = typer.Option(
        False, "--all", help="Also delete saved preferences."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
):
    """Remove cached rates and time zone data."""
    if all_data and not yes and not typer.confirm(
        "This also deletes your saved preferences. Continue?"
    ):
        raise typer.Abort()

    async def _clear(context: ConverterContext):
        before = len(await context.store.keys())
        await context.cache_manager.clear_cache(preserve_preferences=not all_data)
        removed = before - len(await context.store.keys())
        console.print(
            f"[green]✓ Cache cleared successfully ({max(removed, 0)} entries "
            "removed).[/green]"
        )

    _run(ctx, _clear)


@cache_app.command(name="vacuum")
def cache_vacuum(ctx: typer.Context):
    """Remove expired entries and compact the overflow database."""

    async def _vacuum(context: ConverterContext):
        console.print("[cyan]Optimizing cache storage...[/cyan]")
        if await context.store.vacuum():
            console.print("[green]✓ Cache optimized successfully.[/green]")
        else:
            console.print("[red]✗ Cache optimization failed.[/red]")
            raise typer.Exit(code=1)

    _run(ctx, _vacuum)


# --- Diagnostics --------------------------------------------------------------


@app.command()
def diagnose(ctx: typer.Context):
    """Diagnose common configuration, storage and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False

    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]![/] No config file; defaults are in use. Run "
            "[cyan]uniconv init[/cyan] to create one."
        )

    try:
        ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid and can be loaded.")
    except ConverterError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    async def _checks(context: ConverterContext) -> bool:
        ok = True
        if await context.cache_manager.is_cache_healthy():
            console.print("[green]✓[/] Local cache is readable and within size limits.")
        else:
            console.print("[red]✗ Local cache is unhealthy.[/] Try `uniconv cache clear`.")
            ok = False

        if not context.connectivity.is_online:
            console.print("[yellow]![/] Offline mode: skipping connectivity checks.")
            return ok

        console.print("\n[dim]Testing connectivity to data providers...[/dim]")
        for label, url in (
            ("exchange rate provider", context.config.rates_api_url),
            ("time provider", context.config.time_api_url),
        ):
            if await context.connectivity.probe(url):
                console.print(f"[green]✓[/] Successfully connected to the {label}.")
            else:
                console.print(f"[red]✗ Could not connect to the {label} ({url}).[/red]")
                ok = False
        return ok

    if not _run(ctx, _checks):
        issues_found = True
    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
