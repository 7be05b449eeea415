"""
Command-line interface for the cultivar SNP phylogeny pipeline.

Exit status is 0 on success (a failed tree search only leaves its error
sentinel), 1 on configuration, precondition, data or merge failures, and 2
on usage errors reported by click.
"""

import functools
import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config.settings import ExecutionMode, RuntimeEnvironment, load_settings
from .core.exceptions import PipelineError
from .core.steps import PIPELINE_STEPS, StepSelection
from .genomics.subsample import subsample_vcf
from .pipeline import STEP_TITLES, PipelineJobConfig, SnpTreePipeline
from .utils.logging import setup_logging

console = Console(stderr=True)

STEP_NAMES = ", ".join(step.value for step in PIPELINE_STEPS)


def handle_errors(func):
    """Decorator to report pipeline errors and exit non-zero."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PipelineError as e:
            console.print(f"[red]Error: {escape(e.message)}[/red]")
            if e.hint:
                console.print(f"[yellow]Hint: {escape(e.hint)}[/yellow]")
            logger.debug(f"{type(e).__name__}: {e}")
            sys.exit(1)
        except Exception as e:
            console.print(f"[red]Unexpected error: {escape(str(e))}[/red]")
            logger.exception("Unexpected error in CLI")
            sys.exit(1)
    return wrapper


@click.group()
@click.version_option(package_name="cultivar-snp-tree")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, log_file: Optional[str]):
    """
    Cultivar SNP phylogeny pipeline.

    Merges per-cultivar chromosome VCFs, filters to SNPs, subsamples them into
    a FASTA alignment and builds a bootstrapped maximum-likelihood tree.
    """
    ctx.ensure_object(dict)

    if quiet:
        level = "ERROR"
    elif verbose:
        level = "DEBUG"
    else:
        level = "INFO"
    ctx.obj["log_level"] = level
    ctx.obj["log_file"] = log_file
    setup_logging(level=level, log_file=Path(log_file) if log_file else None)


@cli.command()
@click.argument("cultivar_list", type=click.Path(dir_okay=False))
@click.option("--output-dir", "-o", type=click.Path(file_okay=False),
              help="Output root holding splitchromosomefiles/ (default: working directory)")
@click.option("--threads", "-t", type=int, help="Threads for the tree builder")
@click.option("--subsample-size", "-n", type=int, help="Number of SNPs in the alignment")
@click.option("--seed", type=int, help="Random seed for SNP subsampling")
@click.option("--start-from-step", metavar="STEP", help=f"First step to run ({STEP_NAMES})")
@click.option("--stop-at-step", metavar="STEP", help=f"Last step to run ({STEP_NAMES})")
@click.option("--run-only-step", metavar="STEP", help="Run only this step; overrides start/stop")
@click.option("--config", "-c", "config_file", type=click.Path(dir_okay=False),
              help="key=value configuration file (default: pipeline.conf if present)")
@click.option("--environment", "-e", type=click.Choice([mode.value for mode in ExecutionMode]),
              default=ExecutionMode.LOCAL.value, show_default=True,
              envvar="CULTIVAR_SNP_TREE_ENVIRONMENT",
              help="local workstation or batch-scheduled cluster execution")
@click.option("--dry-run", is_flag=True, help="Show what would be run without executing")
@click.pass_context
@handle_errors
def run(
    ctx: click.Context,
    cultivar_list: str,
    output_dir: Optional[str],
    threads: Optional[int],
    subsample_size: Optional[int],
    seed: Optional[int],
    start_from_step: Optional[str],
    stop_at_step: Optional[str],
    run_only_step: Optional[str],
    config_file: Optional[str],
    environment: str,
    dry_run: bool,
):
    """
    Run the pipeline for the cultivars listed in CULTIVAR_LIST.

    CULTIVAR_LIST is a text file with one cultivar identifier per line.
    """
    selection = StepSelection.from_flags(
        start=start_from_step, stop=stop_at_step, only=run_only_step
    )

    list_path = Path(cultivar_list).resolve()
    settings = load_settings(
        config_file,
        search_dir=list_path.parent,
        threads=threads,
        subsample_size=subsample_size,
        subsample_seed=seed,
    )
    if settings.logging.log_file and not ctx.obj.get("log_file"):
        setup_logging(
            level=ctx.obj["log_level"],
            log_file=settings.logging.log_file,
            format_string=settings.logging.format,
            rotation=settings.logging.rotation,
            retention=settings.logging.retention,
        )

    runtime = RuntimeEnvironment.resolve(
        ExecutionMode(environment), settings, script_location=list_path.parent
    )

    job = PipelineJobConfig(
        cultivar_list=list_path,
        output_dir=Path(output_dir) if output_dir else runtime.work_dir,
        selection=selection,
        settings=settings,
        environment=runtime,
    )
    pipeline = SnpTreePipeline(job, console=console)

    if dry_run:
        click.echo("Dry run mode - showing what would be executed:")
        for line in pipeline.describe():
            click.echo(line)
        return

    console.print(f"[bold blue]Running steps: {', '.join(selection.names())}[/bold blue]")
    result = pipeline.run()

    table = Table(title="Pipeline outputs")
    table.add_column("Output", style="cyan")
    table.add_column("Path", style="green")
    for name, path in result.outputs.items():
        table.add_row(name, str(path))
    console.print(table)

    if result.tree_failed:
        console.print(
            f"[yellow]Tree building failed; see {result.tree.error_sentinel} "
            f"and {result.tree.log_file}[/yellow]"
        )
    else:
        console.print("[bold green]Pipeline completed[/bold green]")


@cli.command()
def steps():
    """List the pipeline steps in execution order."""
    for index, step in enumerate(PIPELINE_STEPS, start=1):
        click.echo(f"{index}. {step.value:<9} {STEP_TITLES[step]}")


@cli.command()
@click.argument("vcf", type=click.Path(exists=True, dir_okay=False))
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--size", "-n", type=int, required=True, help="Number of records to draw")
@click.option("--seed", type=int, help="Random seed")
@handle_errors
def subsample(vcf: str, output: str, size: int, seed: Optional[int]):
    """Draw SIZE random records from VCF into OUTPUT, keeping the header."""
    result = subsample_vcf(vcf, output, size=size, seed=seed)
    click.echo(f"Wrote {result.written} of {result.available} records to {result.output}")


if __name__ == "__main__":
    cli()
