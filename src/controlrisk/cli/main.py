"""controlrisk - score assessments and run the risk scoring agent.

Exit codes: 0 success, 1 failed agent run, 2 configuration or input error.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ..models.assessment import AssessmentResult

console = Console()

RISK_COLORS = {"low": "green", "medium": "yellow", "high": "red", "critical": "bold red"}


def _print_result(result: AssessmentResult) -> None:
    level = result.risk_level.value
    color = RISK_COLORS.get(level, "white")

    console.print()
    console.print(f"  Assessment: [white]{result.assessment_id or '-'}[/white]")
    console.print(f"  Score:      [{color}]{result.overall_score} ({level.upper()})[/{color}]")
    console.print(f"  Confidence: {result.confidence:.2f}")
    console.print(
        f"  Assessed:   {result.total_controls_assessed}/{result.total_controls} "
        f"({result.completion_percentage}%)"
    )

    if result.category_scores:
        table = Table(title="Categories", show_edge=False)
        table.add_column("Category")
        table.add_column("Score", justify="right")
        table.add_column("Weight", justify="right")
        table.add_column("Controls", justify="right")
        table.add_column("Compliant", justify="right")
        for cat in result.category_scores:
            table.add_row(
                cat.category,
                str(cat.score),
                f"{cat.weight:.2f}",
                str(cat.control_count),
                f"{cat.compliance_percentage}%",
            )
        console.print()
        console.print(table)

    if result.key_findings:
        console.print("\n  [bold]Key findings[/bold]")
        for f in result.key_findings:
            console.print(
                f"  [{f.criticality.value.upper()}] {f.control_id}: {f.control_title} "
                f"({f.status.value}) - {f.impact}"
            )

    if result.recommendations:
        console.print("\n  [bold]Recommendations[/bold]")
        for rec in result.recommendations:
            console.print(
                f"  {rec.priority} {rec.title} "
                f"[dim]({rec.estimated_effort.value}, ~{rec.estimated_days}d)[/dim]"
            )
    console.print()


@click.group()
def cli() -> None:
    """Compliance risk scoring."""


@cli.command()
@click.option("--framework", "-F", "framework_path", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--responses", "-r", "responses_path", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--assessment-id", "-a", default="adhoc", help="Assessment identifier")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def score(ctx: click.Context, framework_path: str, responses_path: str, assessment_id: str, as_json: bool) -> None:
    """Score a responses file against a framework definition."""
    from ..compliance.loader import get_all_controls, load_framework_file, load_responses
    from ..scoring.engine import compute_score

    try:
        controls = get_all_controls(load_framework_file(Path(framework_path)))
        responses = load_responses(Path(responses_path))
    except (ValueError, KeyError, yaml.YAMLError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)
        return

    result = compute_score(responses, controls, assessment_id=assessment_id)
    if as_json:
        click.echo(json.dumps(result.to_store(), indent=2, ensure_ascii=False))
    else:
        _print_result(result)


@cli.command()
@click.option("--project", "-p", type=click.Path(exists=True, file_okay=False), default=".", help="Project path")
@click.option("--framework", "-F", "framework_path", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--responses", "-r", "responses_path", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--assessment-id", "-a", required=True, help="Assessment identifier")
@click.option("--store", "store_backend", type=click.Choice(["memory", "json"]), help="Store backend override")
@click.option("--max-retries", type=int, help="Retry budget override")
@click.option("--timeout-ms", type=int, help="Per-attempt timeout override")
@click.pass_context
def run(
    ctx: click.Context,
    project: str,
    framework_path: str,
    responses_path: str,
    assessment_id: str,
    store_backend: str | None,
    max_retries: int | None,
    timeout_ms: int | None,
) -> None:
    """Run the risk scoring agent under supervision and store its result."""
    from ..compliance.loader import get_all_controls, load_framework_file, load_responses, to_framework
    from ..core.config import get_agent_config, get_effective_config
    from ..core.manager import AgentManager
    from ..core.risk_agent import RiskScoringAgent
    from ..core.store import AssessmentRepository, create_store

    cli_overrides: dict = {}
    if store_backend:
        cli_overrides.setdefault("store", {})["backend"] = store_backend
    if max_retries is not None:
        cli_overrides.setdefault("agents", {}).setdefault("risk-scoring", {})["max_retries"] = max_retries
    if timeout_ms is not None:
        cli_overrides.setdefault("agents", {}).setdefault("risk-scoring", {})["timeout_ms"] = timeout_ms

    try:
        config = get_effective_config(Path(project).resolve(), cli_overrides=cli_overrides or None)
        agent_config = get_agent_config(config, "risk-scoring")
        repository = AssessmentRepository(create_store(config))

        framework_def = load_framework_file(Path(framework_path))
        framework = to_framework(framework_def)
        repository.save_framework(framework, get_all_controls(framework_def))
        for response in load_responses(Path(responses_path)).values():
            repository.record_response(assessment_id, response)
    except (ValueError, KeyError, yaml.YAMLError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)
        return

    agent = RiskScoringAgent(repository, assessment_id, framework.id, config=agent_config)
    manager = AgentManager(repository)
    manager.register(agent)

    console.print(f"\n  [cyan]Running {agent.name}...[/cyan]")
    run_result = asyncio.run(manager.run_agent(agent.name))

    if run_result.status.value == "completed":
        _print_result(run_result.data)
        ctx.exit(0)
    elif run_result.status.value == "idle":
        console.print(f"  [yellow]SKIPPED[/yellow] {run_result.error}")
        ctx.exit(0)
    else:
        console.print(
            f"  [red]FAILED[/red] after {(run_result.retry_count or 0) + 1} attempt(s): "
            f"{run_result.error}"
        )
        ctx.exit(1)


@cli.command()
@click.option("--project", "-p", type=click.Path(exists=True, file_okay=False), default=".", help="Project path")
def frameworks(project: str) -> None:
    """List framework definitions available to a project."""
    from ..compliance.loader import get_available_frameworks
    from ..core.config import get_effective_config

    project_path = Path(project).resolve()
    config = get_effective_config(project_path)
    frameworks_dir = project_path / config.get("frameworks", {}).get("path", "frameworks")

    found = get_available_frameworks(frameworks_dir)
    if not found:
        click.echo(f"No frameworks found in {frameworks_dir}")
        return
    for fw in found:
        version = f" v{fw['version']}" if fw["version"] else ""
        click.echo(f"{fw['id']}: {fw['name']}{version}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
