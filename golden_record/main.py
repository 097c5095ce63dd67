"""
Golden Record Simulator CLI

Command-line interface for running the record-linkage pipeline over synthetic
customer data.
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table

# Initialize console for rich output
console = Console()


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging with rich handler."""
    handlers = [RichHandler(console=console, show_path=False)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        handlers=handlers,
        force=True,
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--log-file", default=None, type=click.Path(dir_okay=False), help="Also write logs to this file")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, log_file: Optional[str]) -> None:
    """Golden Record Simulator - Clean, link and unify messy customer data."""
    ctx.ensure_object(dict)

    # Unset values fall back to the logging section of config.yaml in commands that load it
    if verbose:
        ctx.obj["log_level"] = "DEBUG"
    elif quiet:
        ctx.obj["log_level"] = "WARNING"
    else:
        ctx.obj["log_level"] = None
    ctx.obj["log_file"] = log_file

    setup_logging(ctx.obj["log_level"] or "INFO", log_file)


@cli.command()
@click.option(
    "--source", "-s",
    "sources",
    multiple=True,
    help="Catalog key of a source to ingest (repeatable)",
)
@click.option(
    "--preset", "-p",
    default=None,
    help="Scenario preset (retail, b2bSaas, healthcare, media)",
)
@click.option(
    "--mode", "-m",
    type=click.Choice(["deterministic", "probabilistic"]),
    default=None,
    help="Identity matching mode",
)
@click.option("--records", "-n", type=int, default=None, help="Records generated per source")
@click.option("--seed", type=int, default=None, help="Random seed for reproducible runs")
@click.option("--step", is_flag=True, help="Pause after each stage until a key is pressed")
@click.option("--delay", type=float, default=None, help="Seconds between stages in auto mode")
@click.option("--no-normalize-phone", is_flag=True, help="Disable phone normalization")
@click.option("--no-lowercase-email", is_flag=True, help="Disable email lowercasing")
@click.option("--no-trim-whitespace", is_flag=True, help="Disable whitespace trimming")
@click.option("--no-proper-case", is_flag=True, help="Disable proper-casing of names")
@click.option("--missing-email", is_flag=True, help="Strip email from every third record")
@click.option("--duplicate-crm", is_flag=True, help="Inject perturbed duplicate CRM records")
@click.option("--mismatched-phones", is_flag=True, help="Reshape phones into inconsistent formats")
@click.option(
    "--output", "-o",
    "output_dir",
    default=None,
    type=click.Path(file_okay=False, dir_okay=True),
    help="Output directory for reports",
)
@click.option(
    "--format", "-f",
    "formats",
    multiple=True,
    type=click.Choice(["csv", "markdown", "json"]),
    help="Output formats to generate",
)
@click.option("--no-output", is_flag=True, help="Skip writing output files")
@click.pass_context
def run(
    ctx: click.Context,
    sources: tuple[str, ...],
    preset: Optional[str],
    mode: Optional[str],
    records: Optional[int],
    seed: Optional[int],
    step: bool,
    delay: Optional[float],
    no_normalize_phone: bool,
    no_lowercase_email: bool,
    no_trim_whitespace: bool,
    no_proper_case: bool,
    missing_email: bool,
    duplicate_crm: bool,
    mismatched_phones: bool,
    output_dir: Optional[str],
    formats: tuple[str, ...],
    no_output: bool,
) -> None:
    """Run the full pipeline and print the resulting golden records."""
    from golden_record.models.entities import SimulationMode
    from golden_record.pipeline.narration import source_selection_message
    from golden_record.pipeline.orchestrator import PipelineOrchestrator
    from golden_record.pipeline.outputs import generate_outputs
    from golden_record.utils.config import load_config

    try:
        config = load_config()

        # Command-line options override config.yaml
        if sources:
            config.sources.selected = list(sources)
        elif preset:
            config.sources.selected = []
            config.sources.preset = preset
        if mode:
            config.identity.mode = mode
        if records is not None:
            config.simulation.records_per_source = records
        if seed is not None:
            config.simulation.seed = seed
        if delay is not None:
            config.simulation.step_delay_seconds = delay
        if step:
            config.simulation.mode = SimulationMode.STEP
        for flag, field in (
            (no_normalize_phone, "normalize_phone"),
            (no_lowercase_email, "lowercase_email"),
            (no_trim_whitespace, "trim_whitespace"),
            (no_proper_case, "proper_case_names"),
        ):
            if flag:
                setattr(config.hygiene, field, False)
        for flag, field in (
            (missing_email, "missing_email"),
            (duplicate_crm, "duplicate_crm"),
            (mismatched_phones, "mismatched_phones"),
        ):
            if flag:
                setattr(config.edge_cases, field, True)

        setup_logging(
            ctx.obj.get("log_level") or config.logging.level,
            ctx.obj.get("log_file") or config.logging.file,
        )

        context = config.to_context()
    except KeyError as e:
        console.print(f"[red]Error: {e.args[0] if e.args else e}[/red]")
        sys.exit(1)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        sys.exit(1)

    console.print("\n[bold blue]Golden Record Simulator[/bold blue]")
    console.print("=" * 50)
    console.print(source_selection_message(context.selected_sources))

    if not context.selected_sources:
        console.print("[yellow]![/yellow] No sources selected, nothing to run")
        return

    orchestrator = PipelineOrchestrator(context)

    async def drive():
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Starting pipeline...", total=100)
            async for snapshot in orchestrator.run():
                progress.update(task, completed=snapshot.progress, description=snapshot.stage.value.title())
                if snapshot.message:
                    console.print(f"  [green]✓[/green] {snapshot.message}")
                if snapshot.step_pending:
                    progress.stop()
                    click.pause(info="  Press any key to advance...")
                    progress.start()
                    orchestrator.advance()

    asyncio.run(drive())
    final = orchestrator.snapshot()

    if final.quality is not None:
        console.print(
            f"\n[bold]Data Quality:[/bold] {final.quality.before_score} -> "
            f"{final.quality.after_score} (+{final.quality.improvement})"
        )

    if not no_output:
        output_files = generate_outputs(
            final,
            output_dir=output_dir or config.output.directory,
            formats=list(formats) or config.output.formats,
            timestamp_filenames=config.output.timestamp_filenames,
            max_items_per_section=config.output.max_items_per_section,
        )
        console.print("\n[bold]Reports Generated:[/bold]")
        for fmt, path in output_files.items():
            console.print(f"  • {fmt}: [cyan]{path}[/cyan]")

    console.print(f"\n[bold]Top Golden Records:[/bold] ({len(final.profiles)} total)")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Records", justify="right")
    table.add_column("Sources", justify="right")
    table.add_column("LTV", justify="right")
    table.add_column("Confidence")

    top = sorted(final.profiles, key=lambda p: p.record_count, reverse=True)[:10]
    for profile in top:
        table.add_row(
            profile.display_name,
            profile.email or "-",
            str(profile.record_count),
            str(len(profile.sources)),
            f"${profile.ltv:,}",
            profile.match_confidence.value,
        )

    console.print(table)
    console.print()


@cli.command()
@click.option("--preset", "-p", default=None, help="Only show sources in this preset")
@click.pass_context
def sources(ctx: click.Context, preset: Optional[str]) -> None:
    """List the source catalog."""
    from golden_record.pipeline.ingest import SOURCE_CATALOG, SCENARIO_PRESETS, get_preset

    try:
        selected = get_preset(preset) if preset else list(SOURCE_CATALOG)
    except KeyError as e:
        console.print(f"[red]Error: {e.args[0]}[/red]")
        console.print(f"Available presets: {', '.join(SCENARIO_PRESETS)}")
        sys.exit(1)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Key")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Ingestion")
    table.add_column("Data Class")

    for source_id in selected:
        definition = SOURCE_CATALOG[source_id]
        table.add_row(
            source_id.value,
            definition.name,
            definition.category,
            definition.ingestion_type.value,
            definition.data_class.value,
        )

    console.print(table)


@cli.command()
@click.option("--source", "-s", "source_id", required=True, help="Catalog key of the source")
@click.option("--count", "-n", type=int, default=8, help="Number of records")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.option("--json", "as_json", is_flag=True, help="Print records as JSON")
@click.pass_context
def generate(
    ctx: click.Context,
    source_id: str,
    count: int,
    seed: Optional[int],
    as_json: bool,
) -> None:
    """Print a raw sample for one source."""
    from golden_record.pipeline.ingest import RecordGenerator, parse_source_id

    if parse_source_id(source_id) is None:
        console.print(f"[red]Unknown source: {source_id}[/red]")
        sys.exit(1)

    records = RecordGenerator(seed=seed).generate(source_id, count)

    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json", exclude_none=True) for r in records], indent=2))
        return

    table = Table(show_header=True, header_style="bold", title=records[0].source if records else source_id)
    table.add_column("First")
    table.add_column("Last")
    table.add_column("Email")
    table.add_column("Phone")
    table.add_column("IDs")

    for record in records:
        ids = ", ".join(
            str(getattr(record, field))
            for field in ("crm_id", "customer_id", "marketo_id", "cookie_id", "device_id", "loyalty_id", "master_id")
            if getattr(record, field)
        )
        table.add_row(
            repr(record.first_name) if record.first_name else "-",
            repr(record.last_name) if record.last_name else "-",
            repr(record.email) if record.email else "-",
            repr(record.phone) if record.phone else "-",
            ids,
        )

    console.print(table)


@cli.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show version information."""
    from golden_record import __version__

    console.print(f"Golden Record Simulator v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
