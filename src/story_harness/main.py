"""CLI main entry point."""

import json
import sys

import click
import yaml
from rich.console import Console

from .config import CONFIG_KEYS, ENV_VARS, load_config, save_config, unset_config
from .errors import HarnessError
from .formatters import (
    config_to_dict,
    print_config,
    print_run,
    print_run_json,
    print_steps,
    step_to_dict,
)
from .harness import run_harness
from .shared.logging import configure_logging, verbosity_to_level
from .steps import build_story_scenario

console = Console(stderr=True)


def _version() -> str:
    from . import __version__

    return __version__


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug)")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON lines")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write logs to a file")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: int,
    json_output: bool,
    log_json: bool,
    log_file: str | None,
) -> None:
    """Story service conformance harness."""
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json_output
    configure_logging(verbosity_to_level(verbose), log_file=log_file, json_output=log_json)


@cli.command()
@click.option("--url", help=f"Story service URL (env: {ENV_VARS['base_url']})")
@click.option("-u", "--username", help=f"Login username (env: {ENV_VARS['username']})")
@click.option("-p", "--password", help=f"Login password (env: {ENV_VARS['password']})")
@click.option("-t", "--timeout", type=float, help="Request timeout in seconds")
@click.option("-k", "--insecure", is_flag=True, help="Skip TLS verification")
@click.option(
    "--repeat",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Run the scenario this many times in one session",
)
@click.option(
    "--include-redelete",
    is_flag=True,
    help="Also delete the created story a second time (expects 400)",
)
@click.pass_context
def run(
    ctx: click.Context,
    url: str | None,
    username: str | None,
    password: str | None,
    timeout: float | None,
    insecure: bool,
    repeat: int,
    include_redelete: bool,
) -> None:
    """Run the story lifecycle scenario against the service."""
    config = load_config().override(
        base_url=url,
        username=username,
        password=password,
        timeout=timeout,
        insecure=True if insecure else None,
    )
    if not config.username or not config.password:
        raise click.UsageError(
            f"Username and password are required (--username/--password, "
            f"{ENV_VARS['username']}/{ENV_VARS['password']}, or config file)"
        )

    json_output = ctx.obj["json_output"] or config.output_format == "json"

    try:
        harness_run = run_harness(
            config,
            repeat=repeat,
            include_redelete=include_redelete,
        )
    except HarnessError as e:
        if json_output:
            click.echo(json.dumps({"passed": False, "error": e.to_dict()}, indent=2))
        else:
            console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)

    if json_output:
        print_run_json(harness_run)
    else:
        print_run(harness_run)

    if not harness_run.passed:
        sys.exit(1)


@cli.command()
@click.option("--include-redelete", is_flag=True, help="Include the delete-again step")
@click.pass_context
def steps(ctx: click.Context, include_redelete: bool) -> None:
    """Show the ordered step plan."""
    plan = build_story_scenario(include_redelete)
    if ctx.obj["json_output"]:
        click.echo(json.dumps([step_to_dict(s) for s in plan], indent=2))
    else:
        print_steps(plan)


@cli.command()
def version() -> None:
    """Show version."""
    click.echo(f"story-harness {_version()}")


@cli.group()
def config() -> None:
    """Manage harness configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show effective configuration and where each value came from."""
    harness_config = load_config()
    if ctx.obj["json_output"]:
        click.echo(json.dumps(config_to_dict(harness_config), indent=2))
    else:
        print_config(harness_config)


@config.command("set")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value."""
    try:
        save_config(key, value)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Config file is not valid YAML: {e}") from e
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="value") from e
    shown = "********" if key == "password" else value
    click.echo(f"Set {key} = {shown}")


@config.command("unset")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
def config_unset(key: str) -> None:
    """Remove a persisted configuration value."""
    try:
        removed = unset_config(key)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Config file is not valid YAML: {e}") from e
    if removed:
        click.echo(f"Unset {key}")
    else:
        click.echo(f"{key} is not set in the config file")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
