"""
Command-line interface for elmcoupling.

Provides commands for dumping coupling metrics as JSON and for viewing or
exporting them as a table.
"""
import functools
import json
import logging
from pathlib import Path

import click

from elmcoupling.config import AnalysisConfig, ConfigError
from elmcoupling.dump import dump
from elmcoupling.metrics import export_to_csv, export_to_json, rank_modules, to_dataframe


def analysis_options(command):
    """Attach the options shared by every analysis command."""

    @click.argument("source_dir", required=False, type=click.Path(path_type=Path))
    @click.option("--package-dir", type=click.Path(path_type=Path), help="Root of the installed package cache (e.g. ~/.elm)")
    @click.option("--elm-json", type=click.Path(path_type=Path), help="Path to the application's elm.json")
    @click.option("--encoding", help="Text encoding of source files and elm.json")
    @click.option("--fluidity", help="Fluidity provider: none, churn, or package.module:callable")
    @click.option("--builtin-prefix", "builtin_prefixes", multiple=True, help="Import prefix treated as built-in (repeatable)")
    @click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="YAML configuration file")
    @functools.wraps(command)
    def wrapper(source_dir, package_dir, elm_json, encoding, fluidity, builtin_prefixes, config_file, **kwargs):
        try:
            config = AnalysisConfig.from_yaml(config_file) if config_file else AnalysisConfig()
            config = config.merged_with(
                source_dir=source_dir,
                package_dir=package_dir,
                elm_json=elm_json,
                encoding=encoding,
                fluidity=fluidity,
                builtin_prefixes=builtin_prefixes,
            )
        except ConfigError as e:
            raise click.UsageError(str(e))

        if config.source_dir is None:
            raise click.UsageError("SOURCE_DIR is required (as an argument or in the configuration file)")

        return command(config=config, **kwargs)

    return wrapper


def run_analysis(config: AnalysisConfig):
    """Run dump() and turn its failure modes into CLI errors."""
    if not config.source_dir.is_dir():
        click.echo(f"Error: {config.source_dir} is not directory", err=True)
        raise SystemExit(1)

    try:
        result = dump(config)
    except ConfigError as e:
        raise click.ClickException(str(e))

    click.echo(f"  ✓ Found {result.stats['project_modules']} project modules", err=True)
    if config.scans_packages:
        click.echo(f"  ✓ Found {result.stats['package_modules']} package modules", err=True)
    if result.stats["errors"] > 0:
        click.echo(f"  ! Encountered {result.stats['errors']} scanning errors", err=True)
    return result


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug diagnostics")
def main(verbose):
    """elmcoupling - ossification and instability metrics for Elm modules."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command(name="dump")
@analysis_options
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write JSON to this file instead of stdout")
def dump_command(config: AnalysisConfig, output):
    """
    Dump coupling metrics and the module registry as JSON.

    Scans SOURCE_DIR (and installed packages when --package-dir and
    --elm-json are given) and writes {"counts": ..., "modules": ...}.
    """
    result = run_analysis(config)
    text = json.dumps(result.to_dict(), indent=2, default=str)

    if output:
        output.write_text(text + "\n", encoding="utf-8")
        click.echo(f"Exported to {output}", err=True)
    else:
        click.echo(text)


@main.command()
@analysis_options
@click.option(
    "--sort-by",
    type=click.Choice(["ossification", "instability", "fluidity", "module"]),
    default="ossification",
    show_default=True,
    help="Metric to rank modules by",
)
@click.option("--top", type=int, default=10, show_default=True, help="Number of modules to show (0 for all)")
@click.option("--export-csv", type=click.Path(path_type=Path), help="Export to CSV file")
@click.option("--export-json", type=click.Path(path_type=Path), help="Export to JSON file")
def show_metrics(config: AnalysisConfig, sort_by, top, export_csv, export_json):
    """
    Display coupling metrics as a table.

    Modules that are both heavily depended upon (high ossification) and hard
    to change rank first when sorting by ossification.
    """
    result = run_analysis(config)
    df = to_dataframe(result.counts)

    try:
        ranked = rank_modules(df, sort_by, top or None)
    except TypeError:
        raise click.ClickException("Fluidity values cannot be ordered; choose another --sort-by")

    if export_csv:
        export_to_csv(rank_modules(df, sort_by), export_csv)
        click.echo(f"Exported to {export_csv}")
    elif export_json:
        export_to_json(rank_modules(df, sort_by), export_json)
        click.echo(f"Exported to {export_json}")
    else:
        click.echo(f"Coupling Metrics (Top {len(ranked)} by {sort_by}):")
        click.echo("-" * 50)
        if len(ranked) > 0:
            click.echo(ranked.to_string(index=False))
        else:
            click.echo("No modules found")


if __name__ == "__main__":
    main()
