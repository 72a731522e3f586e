"""CLI interface for concrete quotes and pricing rule maintenance."""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .business import FALLBACK_PRICING_RULES, SERVICE_LABELS
from .config import get_config
from .dependencies import build_app_resources
from .exceptions import ContractError
from .models import CalculatorState, QuoteBreakdown
from .pricing import format_cents, quote_from_state
from .rules import PricingRules, parse_pricing_rules, validate_pricing_rules

app = typer.Typer(
    name="cejquote",
    help="""
    [bold]Concrete Quote CLI[/bold]

    Price ready-mix concrete orders and maintain pricing rule files.

    [cyan]Examples:[/cyan]
      cejquote quote --m3 5 --strength 200 --type direct
      cejquote quote --length 10 --width 4 --thickness 12 --strength 250 --type pumped
      cejquote quote --area 60 --coffered 10 --strength 250 --type pumped --json
      cejquote validate-rules pricing.json
      cejquote export-fallback --output pricing.json
    """,
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)


def _load_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _load_rules(rules_file: Optional[Path], remote: bool) -> PricingRules:
    if rules_file is not None:
        return parse_pricing_rules(_load_json(rules_file))
    if remote:
        resolved = build_app_resources(get_config()).resolver.resolve_with_source()
        console.print(f"[dim]Pricing rules source: {resolved.source}[/dim]")
        return resolved.rules
    return FALLBACK_PRICING_RULES


def _build_state(
    *,
    m3: Optional[str],
    length: Optional[str],
    width: Optional[str],
    thickness: Optional[str],
    area: Optional[str],
    coffered: Optional[str],
    strength: str,
    service_type: str,
    additives: List[str],
) -> CalculatorState:
    common: dict[str, Any] = {
        "strength": strength,
        "type": service_type,
        "additives": tuple(additives),
    }
    slab: dict[str, Any] = {"has_coffered": "no"}
    if coffered is not None:
        slab = {"has_coffered": "yes", "coffered_size": coffered}

    if m3 is not None:
        return CalculatorState(mode="knownM3", m3=m3, **common)
    if length is not None or width is not None:
        return CalculatorState(
            mode="assistM3",
            volume_mode="dimensions",
            length=length or "",
            width=width or "",
            thickness_by_dims=thickness or "",
            **slab,
            **common,
        )
    if area is not None:
        return CalculatorState(
            mode="assistM3",
            volume_mode="area",
            area=area,
            thickness_by_area=thickness or "",
            **slab,
            **common,
        )
    raise typer.BadParameter("provide --m3, --length/--width, or --area")


def _print_quote(quote: QuoteBreakdown) -> None:
    currency = quote.pricing_snapshot.currency
    service = SERVICE_LABELS[quote.concrete_type]
    console.print(
        f"[bold]Concreto f'c {quote.strength}[/bold] ({service}), "
        f"{quote.volume.billed_m3:g} m³ facturados"
    )
    if quote.calculation_details is not None:
        console.print(f"[dim]{quote.calculation_details.formula}[/dim]")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Concepto")
    table.add_column("Importe", justify="right")
    for line in quote.breakdown_lines:
        table.add_row(line.label, format_cents(line.value, currency))
    table.add_section()
    table.add_row("Subtotal", format_cents(quote.subtotal, currency))
    table.add_row(
        f"IVA ({quote.pricing_snapshot.vat_rate:.0%})",
        format_cents(quote.vat, currency),
    )
    table.add_row("[bold]Total[/bold]", f"[bold]{format_cents(quote.total, currency)}[/bold]")
    console.print(table)

    if quote.warning is not None:
        console.print(f"[yellow]⚠️  {quote.warning.message}[/yellow]")


@app.command()
def quote(
    strength: str = typer.Option(..., "--strength", "-s", help="f'c class (100-300)"),
    service_type: str = typer.Option(
        ..., "--type", "-t", help="Service type: direct or pumped"
    ),
    m3: Optional[str] = typer.Option(None, "--m3", help="Known volume in m³"),
    length: Optional[str] = typer.Option(None, "--length", help="Slab length in m"),
    width: Optional[str] = typer.Option(None, "--width", help="Slab width in m"),
    thickness: Optional[str] = typer.Option(
        None, "--thickness", help="Slab thickness in cm (solid slabs)"
    ),
    area: Optional[str] = typer.Option(None, "--area", help="Slab area in m²"),
    coffered: Optional[str] = typer.Option(
        None, "--coffered", help="Coffered slab size class: 7, 10 or 15"
    ),
    additive: List[str] = typer.Option(
        [], "--additive", "-a", help="Additive id (repeatable)"
    ),
    rules_file: Optional[Path] = typer.Option(
        None,
        "--rules",
        help="Pricing rules JSON file (default: built-in fallback rules)",
        exists=True,
        dir_okay=False,
    ),
    remote: bool = typer.Option(
        False, "--remote", help="Resolve live pricing rules from the backend"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the breakdown as JSON"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show detailed processing information"
    ),
):
    """Price a concrete order."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = get_config()
        rules = _load_rules(rules_file, remote)
        state = _build_state(
            m3=m3,
            length=length,
            width=width,
            thickness=thickness,
            area=area,
            coffered=coffered,
            strength=strength,
            service_type=service_type,
            additives=additive,
        )
        result = quote_from_state(
            state,
            rules,
            step=config.volume_step_m3,
            max_m3=config.max_web_order_m3,
        )
    except typer.BadParameter:
        raise
    except (ContractError, ValueError, OSError) as e:
        console.print(f"[bold red]✗ Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)

    if as_json:
        print(result.model_dump_json(by_alias=True, indent=2))
    else:
        _print_quote(result)


@app.command("validate-rules")
def validate_rules(
    rules_file: Path = typer.Argument(
        ..., help="Pricing rules JSON file", exists=True, dir_okay=False
    ),
):
    """Check a pricing rules file before publishing it."""
    try:
        payload = _load_json(rules_file)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]✗ Cannot read {rules_file}:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)

    result = validate_pricing_rules(payload)
    if not result.ok:
        console.print(f"[bold red]✗ Invalid pricing rules in {rules_file}[/bold red]")
        for reason in result.errors:
            console.print(f"  - {reason}", markup=False)
        raise typer.Exit(code=1)

    assert result.rules is not None
    console.print(
        f"[bold green]✓ Valid pricing rules[/bold green] "
        f"(version {result.rules.version}, {result.rules.currency})"
    )


@app.command("export-fallback")
def export_fallback(
    output_file: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output JSON file (default: stdout)",
        resolve_path=True,
    ),
):
    """Write the built-in fallback rules as a JSON rule payload."""
    payload = json.dumps(FALLBACK_PRICING_RULES.to_payload(), indent=2, ensure_ascii=False)
    if output_file is None:
        print(payload)
        return
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(payload + "\n", encoding="utf-8")
    console.print(f"[dim]Saved fallback rules to {output_file}[/dim]")


@app.command()
def version():
    """Show version information."""
    console.print("cejquote version 0.1.0")


if __name__ == "__main__":
    app()
