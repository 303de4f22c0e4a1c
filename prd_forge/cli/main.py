"""
CLI interface for PRD Forge.

Provides command-line access to generation, analytics and Notion export.
"""

import logging
import platform
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from prd_forge import __version__
from prd_forge.config.loader import AppConfig, load_config
from prd_forge.core.analytics import AnalyticsLoadError, AnalyticsSummary, compute_analytics
from prd_forge.core.export import ExportProgress, ExportReport, NotionExporter
from prd_forge.core.generation import GenerationOutcome, GenerationService
from prd_forge.core.limits import FreeTierGate, FreeTierLimitReached
from prd_forge.core.prompts import PRD_TEMPLATES, USER_STORY_TEMPLATES, PrdForm
from prd_forge.core.recorder import AnalyticsRecorder, UsageCounter
from prd_forge.core.session import SessionContext
from prd_forge.core.story_parser import split_stories
from prd_forge.demo.seed_demo_data import seed_demo_data
from prd_forge.sdk.generator import GenerationError, create_generator
from prd_forge.sdk.notion_client import NotionClient, NotionError
from prd_forge.storage.repository import (
    KeyValueStore,
    SqliteKeyValueStore,
    StorageError,
    get_store,
    reset_all_data,
)

app = typer.Typer()
notion_app = typer.Typer(help="Manage the Notion export connection.")
app.add_typer(notion_app, name="notion")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1
EXIT_CODE_LIMIT = 2


@dataclass
class Runtime:
    """Objects shared by the commands of one CLI invocation."""
    config: AppConfig
    store: KeyValueStore
    context: SessionContext
    recorder: AnalyticsRecorder
    counter: UsageCounter
    gate: FreeTierGate

    def generation_service(self) -> GenerationService:
        generator = create_generator(
            self.config.generator.api_key,
            model=self.config.generator.model,
            base_url=self.config.generator.base_url
        )
        return GenerationService(
            generator=generator,
            recorder=self.recorder,
            counter=self.counter,
            gate=self.gate,
            max_tokens=self.config.generator.max_tokens
        )

    def notion_client(self) -> NotionClient:
        return NotionClient(
            self.context.get_notion_credentials(),
            api_url=self.config.notion.api_url,
            version=self.config.notion.version,
            timeout=self.config.notion.timeout_seconds
        )


def build_runtime(config_path: Optional[str]) -> Runtime:
    """Load configuration and wire stores and services together."""
    config = load_config(config_path)
    store = get_store(config.storage.db_path, fallback_path=config.storage.local_path)
    context = SessionContext(SqliteKeyValueStore(config.storage.local_path))
    counter = UsageCounter(store, context)
    return Runtime(
        config=config,
        store=store,
        context=context,
        recorder=AnalyticsRecorder(store, context),
        counter=counter,
        gate=FreeTierGate(
            counter,
            limits=dict(config.limits.limits),
            warnings=dict(config.limits.warnings)
        )
    )


def _runtime(ctx: typer.Context) -> Runtime:
    try:
        return build_runtime(ctx.obj)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


def _start_session(runtime: Runtime, referrer: Optional[str]) -> None:
    size = shutil.get_terminal_size()
    runtime.recorder.start_session(
        referrer=referrer,
        user_agent=f"prd-forge/{__version__} ({platform.system()}; Python {platform.python_version()})",
        screen_size=f"{size.columns}x{size.lines}"
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging"
    )
):
    """PRD Forge CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )
    ctx.obj = config
    if ctx.invoked_subcommand is None:
        console.print("PRD Forge - Use --help to see available commands")


@app.command()
def story(
    ctx: typer.Context,
    description: str = typer.Argument(..., help="Feature description"),
    template: str = typer.Option("scrum", "--template", "-t", help="scrum, jtbd or simple"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the story to a file"),
    referrer: Optional[str] = typer.Option(None, "--referrer", help="Where this session came from")
):
    """Generate a user story from a feature description."""
    if template not in USER_STORY_TEMPLATES:
        console.print(f"[red]Unknown template:[/] {template}. Choose from {', '.join(USER_STORY_TEMPLATES)}")
        sys.exit(EXIT_CODE_FAIL)

    runtime = _runtime(ctx)
    _start_session(runtime, referrer)
    _run_generation(lambda: runtime.generation_service().generate_user_story(description, template), output)


@app.command()
def workflow(
    ctx: typer.Context,
    description: str = typer.Argument(..., help="Workflow description"),
    count: int = typer.Option(3, "--count", "-n", help="Number of stories to generate"),
    template: str = typer.Option("scrum", "--template", "-t", help="scrum, jtbd or simple"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the stories to a file"),
    export: bool = typer.Option(False, "--export", help="Export the stories to Notion"),
    referrer: Optional[str] = typer.Option(None, "--referrer", help="Where this session came from")
):
    """Generate a set of user stories covering a workflow."""
    if template not in USER_STORY_TEMPLATES:
        console.print(f"[red]Unknown template:[/] {template}. Choose from {', '.join(USER_STORY_TEMPLATES)}")
        sys.exit(EXIT_CODE_FAIL)

    runtime = _runtime(ctx)
    _start_session(runtime, referrer)
    outcome = _run_generation(
        lambda: runtime.generation_service().generate_workflow(description, template, count),
        output,
        exit_on_success=False
    )
    console.print(f"\n[bold]{len(outcome.stories)}[/] stories generated")

    if export:
        report = _export_stories(runtime, outcome.stories)
        sys.exit(EXIT_CODE_PASS if report.failed == 0 else EXIT_CODE_FAIL)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def prd(
    ctx: typer.Context,
    form_file: Path = typer.Argument(..., help="YAML file with the PRD form fields"),
    template: str = typer.Option("comprehensive", "--template", "-t", help="PRD template"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the PRD to a file"),
    referrer: Optional[str] = typer.Option(None, "--referrer", help="Where this session came from")
):
    """Generate a PRD from a YAML form file."""
    if template not in PRD_TEMPLATES:
        console.print(f"[red]Unknown template:[/] {template}. Choose from {', '.join(PRD_TEMPLATES)}")
        sys.exit(EXIT_CODE_FAIL)

    try:
        with open(form_file, 'r', encoding='utf-8') as f:
            form = PrdForm.from_dict(yaml.safe_load(f) or {})
    except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
        console.print(f"[red]Invalid PRD form:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    runtime = _runtime(ctx)
    _start_session(runtime, referrer)
    _run_generation(lambda: runtime.generation_service().generate_prd(form, template), output)


def _run_generation(generate, output: Optional[Path], exit_on_success: bool = True) -> GenerationOutcome:
    try:
        outcome = generate()
    except FreeTierLimitReached as e:
        console.print(f"[yellow]{e}[/]")
        sys.exit(EXIT_CODE_LIMIT)
    except (GenerationError, ValueError) as e:
        console.print(f"[red]Error generating content:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(outcome.content, markup=False)
    console.print(
        f"\n[dim]Model: {outcome.model} | Tokens: {outcome.usage.input_tokens} in / "
        f"{outcome.usage.output_tokens} out | Cost: {_format_currency(outcome.cost, 4)}[/]"
    )
    if not outcome.validation.passed:
        console.print(
            f"[yellow]Quality checks failed:[/] {', '.join(outcome.validation.failed_checks)}"
        )
    if outcome.limit is not None and outcome.used is not None:
        console.print(f"Free generations: {outcome.used} / {outcome.limit} used")
    if outcome.warning:
        console.print(f"[yellow]{outcome.warning}[/]")

    if output is not None:
        output.write_text(outcome.content, encoding='utf-8')
        console.print(f"[green]✓[/] Saved to {output}")

    if exit_on_success:
        sys.exit(EXIT_CODE_PASS)
    return outcome


@app.command()
def usage(ctx: typer.Context):
    """Show free-tier usage for this installation."""
    runtime = _runtime(ctx)
    table = Table(title="Free-tier usage")
    table.add_column("Type")
    table.add_column("Used", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Remaining", justify="right")

    for generation_type, limit in runtime.gate.limits.items():
        used = runtime.counter.count_by_type(generation_type).value_or(0)
        table.add_row(generation_type, str(used), str(limit), str(max(limit - used, 0)))

    console.print(table)
    total = runtime.counter.count_all().value_or(0)
    console.print(f"Total generations this session: {total}")


@app.command()
def dashboard(ctx: typer.Context):
    """Show analytics for all sessions and generations."""
    runtime = _runtime(ctx)
    try:
        summary = compute_analytics(runtime.store)
    except AnalyticsLoadError as e:
        console.print(f"[red]Failed to load analytics:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    _display_summary(summary)


def _format_currency(amount: float, places: int = 2) -> str:
    """Format currency with a dollar sign and thousands separators."""
    return f"${abs(amount):,.{places}f}"


def _display_summary(summary: AnalyticsSummary) -> None:
    console.print("\n[bold]Analytics Dashboard[/bold]")
    console.print("-" * 40)
    console.print(f"Total sessions: {summary.total_sessions}")
    console.print(f"Total generations: {summary.total_generations}")
    console.print(f"User stories: {summary.user_stories} | PRDs: {summary.prds}")
    console.print(f"Today: {summary.today_generations} | This week: {summary.this_week_generations}")
    console.print(f"Avg per session: {summary.avg_per_session}")

    costs = summary.cost_metrics
    console.print(f"\nTotal cost: {_format_currency(costs.total_cost)}")
    console.print(f"Avg cost/generation: {_format_currency(costs.avg_cost_per_generation, 4)}")
    console.print(f"Projected monthly cost: {_format_currency(costs.projected_monthly_cost)}")

    for title, items in (("Top referrers", summary.top_referrers), ("Top goals", summary.top_goals)):
        table = Table(title=title)
        table.add_column("Name")
        table.add_column("Count", justify="right")
        for item in items:
            table.add_row(escape(item.name), str(item.count))
        console.print(table)

    table = Table(title="Recent activity")
    table.add_column("Time")
    table.add_column("Type")
    table.add_column("Template")
    table.add_column("Goal")
    for record in summary.recent_activity:
        table.add_row(record.timestamp, record.type, record.template, escape(record.business_goal or "-"))
    console.print(table)


@app.command()
def export(
    ctx: typer.Context,
    stories_file: Path = typer.Argument(..., help="Text file with stories separated by --- lines")
):
    """Export user stories from a file to Notion."""
    try:
        stories = split_stories(stories_file.read_text(encoding='utf-8'))
    except OSError as e:
        console.print(f"[red]Cannot read stories:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    if not stories:
        console.print("[yellow]No stories found in file[/]")
        sys.exit(EXIT_CODE_PASS)

    runtime = _runtime(ctx)
    report = _export_stories(runtime, stories)
    sys.exit(EXIT_CODE_PASS if report.failed == 0 else EXIT_CODE_FAIL)


def _export_stories(runtime: Runtime, stories: List[str]) -> ExportReport:
    try:
        exporter = NotionExporter(
            runtime.notion_client(),
            delay_seconds=runtime.config.notion.request_delay_seconds
        )
        report = exporter.export_all(stories, on_progress=_print_progress)
    except NotionError as e:
        console.print(f"[red]Notion export failed:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    if report.failed == 0:
        console.print(f"[green]✓[/] Exported {report.success} stories to Notion")
    elif report.success == 0:
        console.print(f"[red]All {report.total} exports failed[/]")
    else:
        console.print(
            f"[yellow]Exported {report.success} of {report.total} stories; {report.failed} failed[/]"
        )
    return report


def _print_progress(progress: ExportProgress) -> None:
    if progress.error:
        console.print(f"[{progress.current}/{progress.total}] [red]failed:[/] {escape(progress.error)}")
    else:
        title = getattr(progress.latest_result, "title", "")
        console.print(f"[{progress.current}/{progress.total}] [green]✓[/] {escape(title)}")


@notion_app.command("set")
def notion_set(
    ctx: typer.Context,
    token: str = typer.Argument(..., help="Notion integration token"),
    database_id: str = typer.Argument(..., help="Target database id")
):
    """Save Notion credentials locally."""
    runtime = _runtime(ctx)
    try:
        runtime.context.save_notion_credentials(token, database_id)
    except StorageError as e:
        console.print(f"[red]Could not save credentials:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    console.print("[green]✓[/] Notion credentials saved")


@notion_app.command("test")
def notion_test(ctx: typer.Context):
    """Check that the saved credentials can read the database."""
    runtime = _runtime(ctx)
    try:
        info = runtime.notion_client().test_connection()
    except NotionError as e:
        console.print(f"[red]Notion connection failed:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Connected to [bold]{info.title}[/]")
    if info.property_names:
        console.print(f"Properties: {', '.join(info.property_names)}")


@notion_app.command("clear")
def notion_clear(ctx: typer.Context):
    """Remove the saved Notion credentials."""
    runtime = _runtime(ctx)
    try:
        runtime.context.clear_notion_credentials()
    except StorageError as e:
        console.print(f"[red]Could not clear credentials:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    console.print("[green]✓[/] Notion credentials cleared")


@app.command()
def reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt")
):
    """Delete ALL session and generation records."""
    if not yes and not typer.confirm("This will delete ALL data. Are you sure?"):
        console.print("Aborted")
        sys.exit(EXIT_CODE_PASS)

    runtime = _runtime(ctx)
    try:
        deleted = reset_all_data(runtime.store)
    except StorageError as e:
        console.print(f"[red]Error resetting data:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] All data cleared ({deleted} records)")


@app.command("seed-demo")
def seed_demo(ctx: typer.Context):
    """Insert demo analytics data."""
    runtime = _runtime(ctx)
    try:
        written = seed_demo_data(runtime.store)
    except StorageError as e:
        console.print(f"[red]Error generating demo data:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Demo data generated ({written} records)")


if __name__ == "__main__":
    app()
