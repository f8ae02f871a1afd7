"""CLI output formatting helpers."""

import json
from typing import Any

import click
import yaml

from .config import CONFIG_KEYS, HarnessConfig
from .executor import ScenarioReport, StepResult, StepStatus
from .harness import HarnessRun
from .shared.auth import mask_secret
from .steps import Step

STATUS_MARKS = {
    StepStatus.PASSED: "✓",
    StepStatus.FAILED: "✗",
    StepStatus.PRECONDITION_FAILED: "⊘",
    StepStatus.ERROR: "!",
}


def format_step_line(result: StepResult) -> str:
    """One line per step: mark, order, name, status codes, message."""
    mark = STATUS_MARKS[result.status]
    actual = result.actual_status if result.actual_status is not None else "-"
    line = (
        f"  {mark} {result.order}. {result.name} "
        f"[{result.method} {result.path}] expected {result.expected_status}, got {actual}"
    )
    if result.status != StepStatus.PASSED:
        line += f" ({result.status.value}: {result.message})"
    return line


def print_report(report: ScenarioReport, title: str | None = None) -> None:
    """Print one round's step results.

    Args:
        report: Scenario report
        title: Optional header line
    """
    if title:
        click.echo(title)
    for result in report.results:
        click.echo(format_step_line(result))
    passed = len(report.results) - len(report.failed)
    click.echo(f"\n{passed}/{len(report.results)} steps passed in {report.duration_ms:.0f}ms")


def print_run(run: HarnessRun) -> None:
    """Print a full harness run."""
    click.echo(f"Target: {run.base_url}")
    click.echo(f"Credential: {run.credential.status.value}\n")

    for index, report in enumerate(run.rounds, 1):
        title = f"Round {index}:" if len(run.rounds) > 1 else None
        print_report(report, title)
        if index < len(run.rounds):
            click.echo()

    if len(run.rounds) > 1:
        verdict = "identical" if run.consistent else "DIFFERENT"
        click.echo(f"\nPass/fail pattern across {len(run.rounds)} rounds: {verdict}")

    click.echo("\n✓ Scenario passed" if run.passed else "\n✗ Scenario failed")


def print_run_json(run: HarnessRun) -> None:
    click.echo(json.dumps(run.to_dict(), indent=2))


def step_to_dict(step: Step) -> dict[str, Any]:
    return {
        "order": step.order,
        "name": step.name,
        "method": step.request.method,
        "path": step.request.path,
        "expected_status": step.expected_status,
        "assertion": step.assertion.describe() if step.assertion else None,
        "needs": list(step.needs),
        "produces": list(step.produces),
        "description": step.description,
    }


def print_steps(steps: list[Step]) -> None:
    """Print the ordered step plan.

    Args:
        steps: Steps in execution order
    """
    click.echo(f"Steps ({len(steps)}):\n")
    for step in steps:
        click.echo(
            f"  {step.order}. {step.name}: "
            f"{step.request.method} {step.request.path} -> {step.expected_status}"
        )
        if step.description:
            click.echo(f"     {step.description}")
        if step.assertion:
            click.echo(f"     body: {step.assertion.describe()}")
        if step.needs:
            click.echo(f"     needs: {', '.join(step.needs)}")
        if step.produces:
            click.echo(f"     produces: {', '.join(step.produces)}")


def config_to_dict(config: HarnessConfig) -> dict[str, Any]:
    """Config values with the password masked, plus sources."""
    values = {key: getattr(config, key) for key in CONFIG_KEYS}
    values["password"] = mask_secret(config.password, visible=0) if config.password else None
    return {
        "values": values,
        "sources": {key: config.get_source(key) for key in CONFIG_KEYS},
    }


def print_config(config: HarnessConfig) -> None:
    """Print config as YAML with value sources."""
    data = config_to_dict(config)
    click.echo("Story Harness Configuration\n")
    yaml_str = yaml.dump(data["values"], default_flow_style=False, sort_keys=False)
    for line in yaml_str.splitlines():
        key = line.split(":", 1)[0]
        source = data["sources"].get(key)
        click.echo(f"  {line}" + (f"  # {source}" if source else ""))
