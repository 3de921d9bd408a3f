"""
Heatsavings CLI.

Command-line interface for lead normalization, heating cost comparison and
report field resolution.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .calc.metrics import compute_metrics
from .core.config import settings
from .core.models import LookupContext
from .formulas.evaluator import validate_formula
from .formulas.resolver import ShortcodeResolver
from .formulas.store import FormulaStore, StoreError
from .normalize.lead import normalize_lead
from .reporting.context import build_report_context
from .reporting.pipeline import generate_report
from .utils.logging_config import ensure_logging
from .utils.numbers import format_currency, format_number

app = typer.Typer(
    name="heatsavings",
    help="Heatsavings - heating cost comparison and savings report data",
    add_completion=False,
)
console = Console()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (default from HEATSAVINGS_LOG_LEVEL)"
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write JSON-lines logs to this file (default from HEATSAVINGS_LOG_FILE)"
    ),
):
    log_file = log_file or settings.log_file
    ensure_logging(log_level or settings.log_level, str(log_file) if log_file else None)


def _load_json(path: Path, what: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]✗[/red] Cannot read {what} {path}: {e}")
        raise typer.Exit(code=1)


def _load_lookups(path: Optional[Path]) -> LookupContext:
    if path is None:
        return LookupContext.from_settings()
    try:
        return LookupContext.model_validate(_load_json(path, "lookups"))
    except ValidationError as e:
        console.print(f"[red]✗[/red] Invalid lookups in {path}: {e.error_count()} errors")
        raise typer.Exit(code=1)


def _load_store(path: Optional[Path]) -> Optional[FormulaStore]:
    path = path or settings.formula_store_path
    if path is None:
        return None
    try:
        return FormulaStore.from_json(path)
    except StoreError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)


def _print_log(log: list) -> None:
    if log:
        console.print("\n[dim]Normalization log:[/dim]")
        for entry in log:
            console.print(f"  [dim]{entry}[/dim]")


@app.command()
def calculate(
    lead_file: Path = typer.Argument(..., help="Lead JSON file (form submission)"),
    lookups_file: Optional[Path] = typer.Option(
        None, "--lookups", "-l", help="JSON file with unit prices and CO2 factors"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print metrics as JSON"),
):
    """
    Compare the current heating system with an air-to-water heat pump.
    """
    raw = _load_json(lead_file, "lead")
    lookups = _load_lookups(lookups_file)

    normalized, log = normalize_lead(raw)
    metrics = compute_metrics(normalized, lookups)

    if as_json:
        typer.echo(json.dumps({"metrics": metrics.to_dict(), "log": log}, ensure_ascii=False, indent=2))
        return

    console.print(Panel.fit(
        f"[bold blue]Heating cost comparison[/bold blue]\n"
        f"Strategy: {metrics.strategy_id.value}",
        border_style="blue"
    ))

    table = Table(title="Costs")
    table.add_column("", style="cyan")
    table.add_column("Current", style="white", justify="right")
    table.add_column("Heat pump", style="white", justify="right")
    table.add_column("Savings", style="green", justify="right")

    savings = metrics.savings
    for label, attr in (("1 year", "year1"), ("5 years", "year5"), ("10 years", "year10")):
        table.add_row(
            label,
            format_currency(getattr(metrics.current.cost, attr)),
            format_currency(getattr(metrics.new_system.cost, attr)),
            format_currency(getattr(savings, attr)),
        )
    console.print(table)

    console.print(f"\n  Consumption: {format_number(metrics.current.consumption.value)}")
    console.print(f"  Heat pump electricity: {format_number(metrics.new_system.electricity_kwh)} kWh/year")
    console.print(
        f"  CO2: {format_number(metrics.current.co2.year)} -> "
        f"{format_number(metrics.new_system.co2_year)} kg/year"
    )
    _print_log(log)


@app.command()
def resolve(
    template: str = typer.Argument(..., help="Template text with shortcodes"),
    lead_file: Optional[Path] = typer.Option(
        None, "--lead", help="Lead JSON file providing the context"
    ),
    store_file: Optional[Path] = typer.Option(
        None, "--store", "-s", help="Formula store JSON file"
    ),
):
    """
    Resolve shortcodes in a template.

    Without --lead only formulas, lookups and sentinels resolve.
    """
    store = _load_store(store_file)
    lookups = LookupContext.from_settings()

    context: dict = {}
    if lead_file is not None:
        raw = _load_json(lead_file, "lead")
        normalized, _ = normalize_lead(raw)
        metrics = compute_metrics(normalized, lookups)
        context = build_report_context(normalized, metrics, lookups, extra=raw if isinstance(raw, dict) else None)

    result = ShortcodeResolver(context, store, lookups=lookups).resolve(template)
    typer.echo(result.text)

    if not result.success:
        for error in result.errors:
            console.print(f"[yellow]⚠[/yellow] {error}")
        raise typer.Exit(code=1)


@app.command()
def report(
    lead_file: Path = typer.Argument(..., help="Lead JSON file (form submission)"),
    store_file: Optional[Path] = typer.Option(
        None, "--store", "-s", help="Formula store JSON file"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print report data as JSON"),
):
    """
    Generate the savings report data (PDF field values) for a lead.
    """
    raw = _load_json(lead_file, "lead")
    store = _load_store(store_file)

    data = generate_report(raw, store, LookupContext.from_settings())

    if as_json:
        typer.echo(json.dumps(data.to_dict(), ensure_ascii=False, indent=2))
        return

    console.print(Panel.fit(
        f"[bold blue]{data.model.current.title}[/bold blue] vs "
        f"[bold green]{data.model.new_system.title}[/bold green]",
        border_style="blue"
    ))

    for section in (data.model.current, data.model.new_system):
        table = Table(title=section.title)
        table.add_column("Item", style="cyan")
        table.add_column("Value", style="white", justify="right")
        for row in section.rows:
            table.add_row(row.label, row.value)
        table.add_row("1 v", section.cost_year1)
        table.add_row("5 v", section.cost_year5)
        table.add_row("10 v", section.cost_year10)
        console.print(table)

    console.print(f"\n[green]Savings:[/green] {data.model.savings['year1']} / year")

    if data.errors:
        console.print(f"\n[yellow]{len(data.errors)} fields with unresolved shortcodes:[/yellow]")
        for name, errors in data.errors.items():
            console.print(f"  {name}: {'; '.join(errors)}")
    _print_log(data.log)


@app.command("validate-formula")
def validate_formula_command(
    formula: str = typer.Argument(..., help="Formula text"),
):
    """
    Check a formula without running it.
    """
    validation = validate_formula(formula)

    if validation.is_valid:
        console.print("[green]✓[/green] Formula is valid")
    else:
        for error in validation.errors:
            console.print(f"[red]✗[/red] {error}")

    for warning in validation.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")
    if validation.variables:
        console.print(f"  Variables: {', '.join(validation.variables)}")
    if validation.references:
        refs = ", ".join(f"[{kind}:{name}]" for kind, name in validation.references)
        console.print(f"  References: {refs}", markup=False)

    if not validation.is_valid:
        raise typer.Exit(code=1)


@app.command()
def version():
    """Show version information."""
    from . import __version__
    console.print(f"Heatsavings v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
