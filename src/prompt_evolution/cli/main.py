from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from prompt_evolution.config.loader import build_run_config, create_generator, run_config_from_dict
from prompt_evolution.config.schema import load_document, load_rubric, load_state
from prompt_evolution.core.backup import BackupManager
from prompt_evolution.core.errors import OptimizationError
from prompt_evolution.core.loop import MutationOptimizer
from prompt_evolution.core.scorer import RubricScorer
from prompt_evolution.core.types import Decision, OptimizationState
from prompt_evolution.domains import get_domain, list_domains
from prompt_evolution.logging.report import format_criterion_name, format_score_report
from prompt_evolution.logging.run_tracker import STATE_FILE, RunTracker

console = Console()


@click.group()
def cli() -> None:
    """Prompt Evolution: hill-climb document templates against an objective rubric."""
    load_dotenv()


@cli.command("run")
@click.option("--domain", default=None, help="Document type (e.g. prd). Required unless resuming")
@click.option("--corpus", default="default", help="Test case corpus name")
@click.option("--mutations", default="default", help="Candidate mutation list name")
@click.option("--baseline-dir", default=None, help="Pristine template directory (defaults to the domain's)")
@click.option(
    "--generator",
    type=click.Choice(["simulated", "llm"]),
    default="simulated",
    help="Document generator: deterministic simulator or a live model",
)
@click.option(
    "--model",
    default="anthropic/claude-sonnet-4-20250514",
    help="LiteLLM model string for the llm generator",
)
@click.option("--template", default=None, help="Template file rendered by the llm generator")
@click.option("--max-rounds", default=20, help="Max rounds")
@click.option("--min-improvement", default=0.01, help="Diminishing-returns threshold")
@click.option("--window", default=5, help="Rounds inspected by the diminishing-returns check")
@click.option("--timeout", default=120.0, help="Seconds allowed per document generation")
@click.option("--concurrency", default=4, help="Test cases generated in parallel")
@click.option("--output-dir", default="./runs", help="Output directory for runs")
@click.option(
    "--resume",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Continue an interrupted run directory",
)
@click.option("--verbose", "-v", is_flag=True, help="Log prompts, responses and edits to debug.log in run dir")
def run_cmd(
    domain: str | None,
    corpus: str,
    mutations: str,
    baseline_dir: str | None,
    generator: str,
    model: str,
    template: str | None,
    max_rounds: int,
    min_improvement: float,
    window: int,
    timeout: float,
    concurrency: int,
    output_dir: str,
    resume: Path | None,
    verbose: bool,
) -> None:
    """Run mutation optimization."""
    try:
        state: OptimizationState | None = None
        if resume is not None:
            config = run_config_from_dict(load_document(resume / "config.json"))
            state = load_state(resume / STATE_FILE)
        elif domain is None:
            raise click.UsageError("--domain is required unless --resume is given")
        else:
            config = build_run_config(
                domain_name=domain,
                corpus=corpus,
                mutations=mutations,
                baseline_dir=baseline_dir,
                generator=generator,
                model=model,
                template=template,
                max_rounds=max_rounds,
                min_improvement=min_improvement,
                convergence_window=window,
                generation_timeout=timeout,
                max_concurrency=concurrency,
                output_dir=output_dir,
            )

        plugin = get_domain(config.domain)
        test_cases = plugin.load_corpus(config.corpus)
        candidates = plugin.load_mutations(config.mutations)
        scorer = plugin.create_scorer()
        document_generator = create_generator(config)

        console.print(f"[bold]Domain:[/bold] {config.domain}")
        console.print(f"[bold]Corpus:[/bold] {config.corpus} ({len(test_cases)} test cases)")
        console.print(f"[bold]Mutations:[/bold] {config.mutations} ({len(candidates)} candidates)")
        console.print(f"[bold]Baseline templates:[/bold] {config.baseline_dir}")
        console.print(f"[bold]Generator:[/bold] {config.generator}")
        if config.generator == "llm":
            console.print(f"[bold]Model:[/bold] {config.model}")

        tracker = RunTracker(config, resume)

        if verbose:
            log_path = tracker.run_dir / "debug.log"
            pe_logger = logging.getLogger("prompt_evolution")
            pe_logger.setLevel(logging.DEBUG)
            fh = logging.FileHandler(log_path)
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s\n%(message)s\n"))
            pe_logger.addHandler(fh)

        console.print(f"\n[dim]Run directory: {tracker.run_dir}[/dim]")

        optimizer = MutationOptimizer(scorer, document_generator, test_cases, tracker, config, state)
        if resume is not None:
            optimizer.recover_in_flight_round()
        final_state = asyncio.run(optimizer.optimize(candidates))
    except OptimizationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    console.print(_rounds_table(final_state))
    console.print(f"\n[bold]Report:[/bold] {tracker.run_dir / 'optimization-report.md'}")
    console.print(f"[bold]Trajectory:[/bold] {tracker.run_dir / 'trajectory.html'}")


def _rounds_table(state: OptimizationState) -> Table:
    table = Table(title="Rounds")
    table.add_column("Round", justify="right")
    table.add_column("Mutation", style="cyan")
    table.add_column("Previous", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Delta", justify="right")
    table.add_column("Decision")
    table.add_column("Reason")

    for r in state.history:
        new = f"{r.new_score:.2f}" if r.new_score is not None else "-"
        delta = f"{r.improvement:+.3f}" if r.new_score is not None else "-"
        decision = (
            "[green]KEEP[/green]" if r.decision is Decision.KEEP else "[yellow]DISCARD[/yellow]"
        )
        table.add_row(
            str(r.round_number), r.mutation.name, f"{r.previous_score:.2f}", new, delta, decision, r.reason.value
        )
    return table


@cli.command("score")
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--domain", default=None, help="Score with a built-in rubric (e.g. prd)")
@click.option(
    "--rubric",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Score with a pattern rubric YAML file instead",
)
@click.option("--details", is_flag=True, help="List every check")
@click.option(
    "--output",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write a markdown score report to this file",
)
def score_cmd(
    document: Path, domain: str | None, rubric: Path | None, details: bool, output: Path | None
) -> None:
    """Score one document against a rubric."""
    try:
        if rubric is not None:
            scorer = RubricScorer(load_rubric(rubric))
        elif domain is not None:
            scorer = get_domain(domain).create_scorer()
        else:
            raise click.UsageError("Pass --domain or --rubric")
    except OptimizationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    result = scorer.score(document.read_text())

    table = Table(title=f"Score: {document.name}")
    table.add_column("Criterion", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Passed", justify="right")
    for name, value in result.per_criterion.items():
        outcomes = result.detail[name]
        passed = sum(1 for o in outcomes if o.passed)
        table.add_row(format_criterion_name(name), f"{value:.2f}", f"{passed}/{len(outcomes)}")
    table.add_row("[bold]Overall[/bold]", f"[bold]{result.overall:.2f}[/bold]", "")
    console.print(table)

    if details:
        for name, outcomes in result.detail.items():
            console.print(f"\n[bold]{format_criterion_name(name)}[/bold]")
            for outcome in outcomes:
                mark = "[green]pass[/green]" if outcome.passed else "[red]fail[/red]"
                console.print(f"  {mark}  {outcome.name}")

    if output is not None:
        output.write_text(format_score_report(result, title=document.stem))
        console.print(f"\n[green]Score report written:[/green] {output}")


@cli.command("report")
@click.argument("run_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
def report_cmd(run_dir: Path) -> None:
    """Regenerate the report and trajectory HTML from a run directory."""
    try:
        config = run_config_from_dict(load_document(run_dir / "config.json"))
        state = load_state(run_dir / STATE_FILE)
        path = RunTracker(config, run_dir).save_report(state)
    except (OptimizationError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e
    console.print(f"[green]Report generated:[/green] {path}")

    snapshots = BackupManager(run_dir / "working", run_dir / "backups").list_snapshots()
    if snapshots:
        rounds = ", ".join(str(h.round_number) for h in snapshots)
        console.print(f"[dim]Snapshots retained for rounds: {rounds}[/dim]")


@cli.command("list-domains")
def list_domains_cmd() -> None:
    """List available document types."""
    table = Table(title="Available Domains")
    table.add_column("Name", style="cyan")
    table.add_column("Criteria")
    table.add_column("Description")

    for name in list_domains():
        plugin = get_domain(name)
        criteria = ", ".join(c.name for c in plugin.criteria())
        table.add_row(name, criteria, plugin.description)

    console.print(table)


@cli.command("list-corpora")
@click.option("--domain", required=True, help="Document type (e.g. prd)")
def list_corpora_cmd(domain: str) -> None:
    """List test case corpora for a domain."""
    plugin = get_domain(domain)

    table = Table(title=f"Test Case Corpora ({domain})")
    table.add_column("Name", style="cyan")
    table.add_column("Test cases", justify="right")
    table.add_column("Ids")

    for name in plugin.list_configs("test_cases"):
        cases = plugin.load_corpus(name)
        table.add_row(name, str(len(cases)), ", ".join(c.id for c in cases))

    console.print(table)


@cli.command("list-mutations")
@click.option("--domain", required=True, help="Document type (e.g. prd)")
def list_mutations_cmd(domain: str) -> None:
    """List candidate mutation lists for a domain."""
    plugin = get_domain(domain)

    for name in plugin.list_configs("mutations"):
        table = Table(title=f"Mutations: {name} ({domain})")
        table.add_column("#", justify="right")
        table.add_column("Name", style="cyan")
        table.add_column("Target")
        table.add_column("Edits", justify="right")
        for i, mutation in enumerate(plugin.load_mutations(name), 1):
            table.add_row(str(i), mutation.name, mutation.target_criterion, str(len(mutation.edits)))
        console.print(table)


if __name__ == "__main__":
    cli()
