"""CLI entrypoint for iacguard."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import OUTPUT_FORMATS, ConfigError, ValidateConfig, load_config


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, show_time=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="iacguard")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file (defaults to ./.iacguard.toml when present)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log rule loading and evaluation decisions")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """iacguard - Policy-as-code checks for infrastructure templates.

    Evaluate rule files written in the guard rule language against
    CloudFormation-style YAML/JSON documents.
    """
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    _configure_logging(verbose or config.verbose)
    ctx.obj["config"] = config


@cli.command()
@click.option(
    "--rules",
    "-r",
    "rules",
    multiple=True,
    type=click.Path(exists=True, path_type=Path),
    help="Rule file or directory of *.guard files (repeatable)",
)
@click.option(
    "--data",
    "-d",
    "data",
    multiple=True,
    type=click.Path(exists=True, path_type=Path),
    help="Data file or directory of templates (repeatable)",
)
@click.option(
    "--show-summary",
    "-s",
    "show_summary",
    multiple=True,
    metavar="TYPES",
    help="Summary rows to print: pass, fail, skip, all or none (comma separated, repeatable)",
)
@click.option(
    "--output",
    "-o",
    "output",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Output format",
)
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON (same as --output json)")
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=None, help="Documents evaluated in parallel")
@click.pass_context
def validate(
    ctx: click.Context,
    rules: tuple[Path, ...],
    data: tuple[Path, ...],
    show_summary: tuple[str, ...],
    output: str | None,
    output_json: bool,
    jobs: int | None,
) -> None:
    """Evaluate rules against data documents.

    Exit codes: 0 when every rule passes or is skipped, 1 when any rule
    fails, 2 when a rule file, rule or document could not be loaded.

    Examples:

        iacguard validate -r rules/s3.guard -d template.yaml

        iacguard validate -r rules/ -d templates/ --show-summary all
    """
    from .commands.validate import run_validate

    config: ValidateConfig = ctx.obj["config"]
    rule_paths = list(rules) or config.rules
    data_paths = list(data) or config.data
    if not rule_paths:
        raise click.UsageError("No rules given. Pass --rules or set validate.rules in the config file.")
    if not data_paths:
        raise click.UsageError("No data given. Pass --data or set validate.data in the config file.")

    fmt = "json" if output_json else (output or config.output)
    exit_code = run_validate(
        rule_paths,
        data_paths,
        show_summary=list(show_summary) or config.show_summary,
        output_json=fmt == "json",
        jobs=jobs or config.jobs,
    )
    sys.exit(exit_code)


@cli.command("parse-tree")
@click.option(
    "--rules",
    "-r",
    "rules",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Rule file to parse",
)
@click.option("--json", "output_json", is_flag=True, help="Output the tree as JSON")
def parse_tree(rules: Path, output_json: bool) -> None:
    """Print the parsed rule file (lets, rules, clauses and messages)."""
    from .commands.parse_tree import run_parse_tree

    sys.exit(run_parse_tree(rules, output_json))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
