"""
armflow — ARM translation CLI.

Usage:
    armflow validate <path> [--activities a,b,c]
    armflow layers <path>
    armflow bpmn <path> [--output FILE]
    armflow declare <path> [--output FILE] [--save]
    armflow translate <path> [--output-dir DIR]
    armflow config show
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

app = typer.Typer(
    name="armflow",
    help="armflow — Activity Relationship Matrix to Declare and BPMN",
    no_args_is_help=True,
)
config_app = typer.Typer(
    name="config",
    help="Configuration management commands",
)
app.add_typer(config_app, name="config")

console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Configure logging with rich output."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Configure logging for every command."""
    from config.settings import get_settings

    setup_logging("DEBUG" if verbose else get_settings().log_level)


def _load(path: Path):
    from armflow.arm.parser import load_matrix

    try:
        return load_matrix(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        raise typer.Exit(1)


def _fail_validation(error) -> None:
    console.print(f"\n[bold red]Validation failed[/bold red] {escape(f'[{error.code}] {error.location}')}")
    console.print(f"  {escape(error.message)}")
    raise typer.Exit(1)


def _print_diagnostics(diagnostics) -> None:
    if not diagnostics:
        return
    console.print("\n[bold yellow]Diagnostics:[/bold yellow]")
    for diag in diagnostics:
        location = f"{diag.location}: " if diag.location else ""
        console.print(f"  {escape(f'[{diag.code}] {location}{diag.message}')}")


def _write(text: str, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Wrote {output}[/green]")


@app.command("validate")
def validate(
    path: Path = typer.Argument(..., help="ARM file (JSON or YAML)", dir_okay=False),
    activities: Optional[str] = typer.Option(
        None, "--activities", "-a", help="Comma-separated allowed activity list"
    ),
):
    """
    Validate an ARM.

    Checks, first failure wins:
    - Activity membership, diagonal and symbol legality
    - Illegal temporal/existential combinations
    - Reciprocity of ⇔ and ⇎
    - Temporal clashes and precedence cycles
    """
    from armflow.arm.errors import ARMValidationError
    from armflow.arm.validator import validate_matrix

    console.print(f"\n[bold cyan]Validating ARM: {path}[/bold cyan]\n")
    matrix = _load(path)
    allowed = [a.strip() for a in activities.split(",") if a.strip()] if activities else None

    try:
        report = validate_matrix(matrix, allowed)
    except ARMValidationError as e:
        _fail_validation(e)

    console.print(f"  Activities: {len(report.activities)}")
    console.print(f"  Order: {' → '.join(report.order)}")
    console.print("\n[bold green]ARM is valid[/bold green]")


@app.command("layers")
def layers(
    path: Path = typer.Argument(..., help="ARM file (JSON or YAML)", dir_okay=False),
):
    """Show the stable order and level of every activity."""
    from armflow.arm.classifier import classify_relations
    from armflow.arm.errors import ARMValidationError
    from armflow.arm.layering import get_level_strategy
    from armflow.arm.validator import validate_matrix
    from config.settings import get_settings

    matrix = _load(path)
    try:
        report = validate_matrix(matrix)
    except ARMValidationError as e:
        _fail_validation(e)

    relations = classify_relations(matrix, report.order)
    strategy = get_level_strategy(get_settings().level_strategy)
    levels = strategy.compute_levels(list(relations.activities), list(relations.temporal_chains))

    table = Table(title=f"Layers ({strategy.name})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Activity", style="cyan")
    table.add_column("Level", style="green", justify="right")
    table.add_column("Direct successors", style="white")

    for i, activity in enumerate(report.order):
        table.add_row(
            str(i),
            activity,
            str(levels[activity]),
            ", ".join(relations.direct_successors(activity)) or "[dim]-[/dim]",
        )

    console.print(table)


@app.command("bpmn")
def bpmn(
    path: Path = typer.Argument(..., help="ARM file (JSON or YAML)", dir_okay=False),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write XML to this file"),
):
    """Translate an ARM into process XML."""
    from armflow.arm.errors import ARMValidationError
    from armflow.pipeline import matrix_to_bpmn, options_from_settings
    from config.settings import get_settings

    settings = get_settings()
    matrix = _load(path)
    try:
        xml, result = matrix_to_bpmn(
            matrix, options=options_from_settings(settings), pretty=settings.pretty_xml
        )
    except ARMValidationError as e:
        _fail_validation(e)

    if output:
        _write(xml, output)
    else:
        console.print(xml, markup=False, highlight=False, soft_wrap=True)
    _print_diagnostics(result.diagnostics)


@app.command("declare")
def declare(
    path: Path = typer.Argument(..., help="ARM file (JSON or YAML)", dir_okay=False),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON to this file"),
    save: bool = typer.Option(False, "--save", help="Hand the model to the Declare store"),
):
    """Translate an ARM into a Declare model."""
    from armflow.arm.errors import ARMValidationError
    from armflow.declare.store import DeclareModelStore, publish_declare_model
    from armflow.pipeline import matrix_to_declare
    from config.settings import get_settings

    settings = get_settings()
    matrix = _load(path)
    try:
        model = matrix_to_declare(matrix)
    except ARMValidationError as e:
        _fail_validation(e)

    if output:
        _write(model.to_json(), output)
    else:
        console.print(model.to_json(), markup=False, highlight=False, soft_wrap=True)

    if save:
        store = DeclareModelStore(settings.declare_store_dir)
        if store.save(model):
            console.print(f"[green]Saved to {store.path}[/green]")
        else:
            console.print("[yellow]Declare store unavailable; model not saved[/yellow]")
        if settings.declare_store_url:
            if publish_declare_model(model, settings.declare_store_url, timeout=settings.http_timeout):
                console.print(f"[green]Published to {settings.declare_store_url}[/green]")
            else:
                console.print("[yellow]Declare modeler unreachable; model not published[/yellow]")


@app.command("translate")
def translate(
    path: Path = typer.Argument(..., help="ARM file (JSON or YAML)", dir_okay=False),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-d", help="Directory for both artifacts (default: settings.output_dir)"
    ),
):
    """Write both the process XML and the Declare model."""
    from armflow.arm.errors import ARMValidationError
    from armflow.pipeline import translate_matrix
    from config.settings import get_settings

    settings = get_settings()
    matrix = _load(path)
    try:
        result = translate_matrix(matrix, settings=settings)
    except ARMValidationError as e:
        _fail_validation(e)

    out = output_dir or settings.output_dir
    _write(result.xml, out / f"{path.stem}.bpmn")
    _write(result.declare.to_json(), out / f"{path.stem}.declare.json")

    table = Table(title="Translation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Activities", str(len(result.report.activities)))
    table.add_row("Flows", str(len(result.synthesis.graph.flows)))
    table.add_row("Gateways", str(len(result.synthesis.graph.gateways())))
    table.add_row("Declare constraints", str(len(result.declare.constraints)))
    table.add_row("Unmapped pairs", str(len(result.unmapped_pairs)))
    console.print(table)

    _print_diagnostics(result.diagnostics)


@config_app.command("show")
def config_show():
    """Show current configuration."""
    from config.settings import get_settings

    settings = get_settings()

    table = Table(title="armflow Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("gateway_grouping", settings.gateway_grouping)
    table.add_row("level_strategy", settings.level_strategy)
    table.add_row("allow_fallback_join", str(settings.allow_fallback_join))
    table.add_row("pretty_xml", str(settings.pretty_xml))
    table.add_row("", "")
    table.add_row("output_dir", str(settings.output_dir))
    table.add_row("declare_store_dir", str(settings.declare_store_dir))
    table.add_row("declare_store_url", settings.declare_store_url or "[dim]<not set>[/dim]")
    table.add_row("http_timeout", str(settings.http_timeout))
    table.add_row("log_level", settings.log_level)

    console.print(table)


if __name__ == "__main__":
    app()
