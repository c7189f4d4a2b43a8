"""Command-line front end: click entry point and rich result tables.

Run:
  1. Load the onboarding answers (JSON) and normalize them into a profile.
  2. Pick the location dataset: bundled, a local JSON file or a URL.
  3. Optionally apply the live US mortgage rate to every location.
  4. Calculate every candidate location and print them ranked by score.
"""
from __future__ import annotations

import json
import logging
import sys
from decimal import Decimal
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import DEFAULT_HORIZON_YEARS
from .engine import CalculationResult, calculate_all, rank_results, to_record
from .fetcher import FetchError, fetch_locations, fetch_mortgage_rate
from .locations import LocationProvider, SessionLocationStore, StaticLocationProvider, load_locations
from .normalizer import answers_from_dict, normalize
from .profile import ProfileValidationError, UserProfile
from .projections import HouseProjection

console = Console()
err_console = Console(stderr=True, style="bold red")

# ──────────────────────────────────────────────────────────────────────────────
# Formatting helpers
# ──────────────────────────────────────────────────────────────────────────────

def _fmt_money(value: Optional[Decimal]) -> str:
    if value is None:
        return "—"
    return f"${value:,.0f}"


def _fmt_optional(value: Optional[int], suffix: str = "") -> str:
    return "never" if value is None else f"{value}{suffix}"


_VIABILITY_STYLE = {
    "very-viable-stable-large": "bold green",
    "very-viable-stable-medium": "bold green",
    "viable-large": "green",
    "viable-medium": "green",
    "somewhat-viable-small": "yellow",
    "viable-higher-allocation": "yellow",
    "viable-extreme-care": "red",
    "viable-when-renting": "yellow",
    "no-viable-path": "bold red",
}


# ──────────────────────────────────────────────────────────────────────────────
# Display
# ──────────────────────────────────────────────────────────────────────────────

def display_ranking(results: list[CalculationResult]) -> None:
    t = Table(title="Locations", box=box.SIMPLE_HEAVY, show_header=True, padding=(0, 1))
    t.add_column("#", justify="right")
    t.add_column("Location", style="cyan")
    t.add_column("Score", justify="right")
    t.add_column("Viability")
    t.add_column("Home in", justify="right")
    t.add_column("Debt-free", justify="right")
    t.add_column("Min alloc.", justify="right")

    for rank, r in enumerate(results, start=1):
        if not r.calculation_successful:
            t.add_row(str(rank), r.location, "—", "[red]failed[/red]", "—", "—", "—")
            continue
        style = _VIABILITY_STYLE.get(r.viability.value, "")
        t.add_row(
            str(rank),
            r.location,
            f"{r.score:.1f}",
            f"[{style}]{r.viability.value}[/{style}]",
            _fmt_optional(r.years_to_mortgage, "y"),
            _fmt_optional(r.years_to_debt_free, "y"),
            f"{r.minimum_allocation_required}%",
        )
    console.print(t)


def _projection_row(t: Table, name: str, p: Optional[HouseProjection]) -> None:
    if p is None:
        t.add_row(name, "—", "—", "—", "—", "—", "—")
        return
    t.add_row(
        name,
        f"{p.age:.1f}" if p.age % 1 else f"{p.age:.0f}",
        _fmt_money(p.total_savings),
        _fmt_money(p.affordable_price),
        _fmt_money(p.annual_payment),
        p.binding,
        f"{p.affordable_square_feet:,}",
    )


def display_result(result: CalculationResult, *, timeline: bool = False) -> None:
    console.print()
    if not result.calculation_successful:
        console.print(Panel(
            f"[bold red]{result.location}: calculation failed[/bold red]\n{result.error_message}",
            expand=False,
        ))
        return

    console.print(Panel(
        f"[bold green]{result.location}[/bold green] | {result.viability.value} | "
        f"house size: {result.house_size.value}",
        expand=False,
    ))

    t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")
    t.add_row("Target home price", _fmt_money(result.target_home_price))
    t.add_row("Mortgage year", _fmt_optional(result.years_to_mortgage))
    t.add_row("Age at mortgage", _fmt_optional(result.age_at_mortgage))
    t.add_row("Debt-free year", _fmt_optional(result.years_to_debt_free))
    t.add_row("Age debt-free", _fmt_optional(result.age_debt_free))
    if result.sustainability_cap is not None:
        t.add_row("Max sustainable price", _fmt_money(result.sustainability_cap.price))
    t.add_row("Minimum allocation", f"{result.minimum_allocation_required}%")
    t.add_row("Score", f"{result.score:.2f}")
    console.print(t)

    p = Table(title="House Projections", box=box.MINIMAL_HEAVY_HEAD)
    for col in ("Point", "Age", "Savings", "Affordable", "Payment/yr", "Binding", "Sq ft"):
        p.add_column(col, justify="right")
    for name, projection in result.projections.items():
        _projection_row(p, name.replace("_", " "), projection)
    if result.custom.status == "available":
        _projection_row(p, f"custom ({result.custom.requested_years:.2f}y)", result.custom.projection)
    elif result.custom.status == "beyond-simulation":
        p.add_row(f"custom ({result.custom.requested_years:.2f}y)", "beyond simulation", "", "", "", "", "")
    console.print(p)

    if result.children:
        c = Table(title="Children", box=box.SIMPLE, show_header=True, padding=(0, 2))
        c.add_column("Child", justify="right")
        c.add_column("Status")
        c.add_column("Earliest age", justify="right")
        c.add_column("Note", style="dim")
        for child in result.children:
            c.add_row(str(child.ordinal), child.status, _fmt_optional(child.minimum_age), child.reason or "")
        console.print(c)

    for line in result.recommendations:
        console.print(f"  [bold]•[/bold] {line}")
    for line in result.warnings:
        console.print(f"  [yellow]! {line}[/yellow]")

    if timeline:
        display_timeline(result)


def display_timeline(result: CalculationResult) -> None:
    t = Table(title="Year by Year", box=box.MINIMAL_HEAVY_HEAD)
    for col in ("Year", "Age", "Income", "Disposable", "Debt", "Savings", "No-mortgage", "Events"):
        t.add_column(col, justify="right")
    for s in result.snapshots:
        events = []
        if s.relationship_started:
            events.append("partner")
        if s.children_born:
            events.append("child")
        if s.debts_paid_off:
            events.append("paid " + ", ".join(s.debts_paid_off))
        if s.mortgage_acquired:
            events.append("home")
        t.add_row(
            str(s.year),
            str(s.age),
            _fmt_money(s.total_income),
            _fmt_money(s.disposable_income),
            _fmt_money(s.total_debt),
            _fmt_money(s.savings),
            _fmt_money(s.savings_no_mortgage),
            "; ".join(events),
        )
    console.print(t)


# ──────────────────────────────────────────────────────────────────────────────
# Input loading
# ──────────────────────────────────────────────────────────────────────────────

def load_profile(path: str) -> UserProfile:
    """Read onboarding answers from *path*; exits with an error message on failure."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        err_console.print(f"Cannot read profile {path}: {exc}")
        sys.exit(1)
    if not isinstance(data, dict):
        err_console.print(f"Profile {path} must contain a JSON object.")
        sys.exit(1)
    try:
        return normalize(answers_from_dict(data))
    except ProfileValidationError as exc:
        err_console.print(f"Profile error: {exc}")
        sys.exit(1)


def _load_provider(
    data: Optional[str], data_url: Optional[str], *, quiet: bool = False
) -> StaticLocationProvider:
    if data is not None:
        try:
            return load_locations(data)
        except (OSError, ValueError) as exc:
            err_console.print(f"Cannot load location data {data}: {exc}")
            sys.exit(1)
    if data_url is not None:
        if not quiet:
            console.print(f"  Fetching location data from {data_url}…")
        try:
            return fetch_locations(data_url)
        except FetchError as exc:
            err_console.print(f"Fetch failed: {exc}")
            sys.exit(1)
    return StaticLocationProvider()


def _apply_live_rate(
    provider: StaticLocationProvider, names: list[str], *, quiet: bool = False
) -> LocationProvider:
    if not quiet:
        console.print("  Fetching the latest 30-year mortgage rate…")
    try:
        rate = fetch_mortgage_rate()
    except FetchError as exc:
        err_console.print(f"  Fetch failed: {exc}")
        if not quiet:
            console.print("  Keeping the dataset mortgage rates.")
        return provider

    store = SessionLocationStore(provider)
    for name in names:
        if provider.lookup(name) is not None:
            store.set_mortgage_rate(name, rate, manual=False)
    if not quiet:
        console.print(f"  [green]Applied fetched rate: {float(rate) * 100:.2f}%[/green]")
    return store


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

@click.command()
@click.argument("profile_path", type=click.Path(dir_okay=False))
@click.option("--location", "locations", multiple=True, help="Location to calculate (repeatable). Defaults to the profile's locations, or all.")
@click.option("--years", type=click.IntRange(1, 60), default=DEFAULT_HORIZON_YEARS, show_default=True, help="Simulation horizon in years")
@click.option("--custom-horizon", type=click.IntRange(min=1), default=None, help="Extra projection point, in months")
@click.option("--data", type=click.Path(dir_okay=False), default=None, help="Location dataset (JSON file)")
@click.option("--data-url", type=str, default=None, help="Location dataset URL (JSON)")
@click.option("--live-rate", is_flag=True, help="Use the latest FRED 30-year rate (needs FRED_API_KEY)")
@click.option("--json", "as_json", is_flag=True, help="Print flat JSON records instead of tables")
@click.option("--verbose", is_flag=True, help="Debug logging and the year-by-year table")
def main(
    profile_path: str,
    locations: tuple[str, ...],
    years: int,
    custom_horizon: Optional[int],
    data: Optional[str],
    data_url: Optional[str],
    live_rate: bool,
    as_json: bool,
    verbose: bool,
) -> None:
    """Home Path: when can this household buy a home, and where."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    profile = load_profile(profile_path)
    provider = _load_provider(data, data_url, quiet=as_json)

    names = list(locations) or list(profile.locations) or provider.names()
    source: LocationProvider = provider
    if live_rate:
        source = _apply_live_rate(provider, names, quiet=as_json)

    custom_years = Decimal(custom_horizon) / Decimal(12) if custom_horizon is not None else None
    results = rank_results(calculate_all(
        profile, names, provider=source, horizon=years, custom_horizon_years=custom_years,
    ))

    if as_json:
        click.echo(json.dumps([to_record(r) for r in results], indent=2))
        return

    console.print(Panel("[bold blue]Home Path[/bold blue]", expand=False))
    display_ranking(results)
    for result in results:
        display_result(result, timeline=verbose)
