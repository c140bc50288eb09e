"""Click CLI entry point for the ``txconvert`` command.

Handles argument parsing, config loading, file handling, and error display.
All business logic is delegated to ``config``, ``pipeline``, and ``export``.
"""

from __future__ import annotations

import logging
import sys
from contextlib import ExitStack
from pathlib import Path

import click

from transaction_converter import __version__
from transaction_converter.errors import ParseError, TransactionConverterError
from transaction_converter.models import RunOverrides, SortBy, SortOrder

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool, debug: bool) -> None:
    """Set up logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _describe_error(exc: TransactionConverterError) -> str:
    if isinstance(exc, ParseError) and exc.row is not None:
        return f"Error: row {exc.row}: {exc}"
    return f"Error: {exc}"


def _flag(value: bool) -> bool | None:
    # An unset flag defers to the account or format default.
    return True if value else None


@click.group()
@click.version_option(version=__version__, prog_name="txconvert")
def cli() -> None:
    """Convert bank transaction exports between configurable CSV formats."""


@cli.command()
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="Config document (.toml or .json).",
)
@click.option("--account", "account_id", required=True, help="Source account id.")
@click.option("--dst-format", "dst_format_id", required=True, help="Destination format id.")
@click.option(
    "-i",
    "--input",
    "input_path",
    type=click.Path(dir_okay=False),
    help="Source file (default: stdin).",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False),
    help="Destination file (default: stdout).",
)
@click.option(
    "--sort-by",
    type=click.Choice([s.value for s in SortBy]),
    default=None,
    help="Sort key for the output.",
)
@click.option(
    "--sort-order",
    type=click.Choice([s.value for s in SortOrder]),
    default=None,
    help="Sort direction for the output.",
)
@click.option("--include-header", is_flag=True, default=False, help="Write a header row.")
@click.option("--exclude-header", is_flag=True, default=False, help="Omit the header row.")
@click.option(
    "--ignore-pending", is_flag=True, default=False, help="Drop pending transactions."
)
@click.option(
    "--skip-prompts", is_flag=True, default=False, help="Never ask to choose a category."
)
@click.option(
    "--skip-invalid-rows",
    is_flag=True,
    default=False,
    help="Skip malformed rows instead of aborting.",
)
@click.option("--verbose", is_flag=True, default=False, help="Detailed progress output.")
@click.option("--debug", is_flag=True, default=False, help="Developer-level diagnostics.")
def convert(
    config_path: str,
    account_id: str,
    dst_format_id: str,
    input_path: str | None,
    output_path: str | None,
    sort_by: str | None,
    sort_order: str | None,
    include_header: bool,
    exclude_header: bool,
    ignore_pending: bool,
    skip_prompts: bool,
    skip_invalid_rows: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Convert one account's export into the destination format."""
    _configure_logging(verbose, debug)

    if include_header and exclude_header:
        click.echo(
            "Error: --include-header and --exclude-header are mutually exclusive.", err=True
        )
        sys.exit(1)

    from transaction_converter.config import RunConfig, load_config
    from transaction_converter.export import export_transactions, print_summary
    from transaction_converter.pipeline import import_transactions
    from transaction_converter.prompts import console_prompt_select
    from transaction_converter.tabular import (
        check_destination,
        open_destination,
        open_source,
    )

    overrides = RunOverrides(
        sort_by=SortBy(sort_by) if sort_by else None,
        sort_order=SortOrder(sort_order) if sort_order else None,
        include_header=True if include_header else (False if exclude_header else None),
        ignore_pending=_flag(ignore_pending),
        skip_prompts=_flag(skip_prompts),
        skip_invalid_rows=_flag(skip_invalid_rows),
    )

    try:
        config = load_config(Path(config_path))
        run = RunConfig(config, account_id, dst_format_id, overrides)
    except TransactionConverterError as exc:
        click.echo(_describe_error(exc), err=True)
        sys.exit(1)

    prompt_select = console_prompt_select
    if input_path is None and not run.skip_prompts():
        # The prompt would read from the same stream as the source rows.
        logger.warning("Reading transactions from stdin; category prompts are disabled.")
        prompt_select = None

    # The destination is created only after every source row has been read.
    try:
        check_destination(output_path)
        with ExitStack() as stack:
            source = open_source(input_path)
            if input_path is not None:
                stack.enter_context(source)
            result = import_transactions(run, source, prompt_select=prompt_select)

        with ExitStack() as stack:
            destination = open_destination(output_path)
            if output_path is not None:
                stack.enter_context(destination)
            written = export_transactions(run, result.transactions, destination)
    except TransactionConverterError as exc:
        click.echo(_describe_error(exc), err=True)
        sys.exit(1)

    if verbose or debug:
        print_summary(result, sys.stderr)
    if output_path is not None:
        click.echo(f"Wrote {written} transaction(s) to {output_path}", err=True)


@cli.command()
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="Config document (.toml or .json).",
)
def check(config_path: str) -> None:
    """Load and validate a config document, then list what it declares."""
    from transaction_converter.config import load_config

    try:
        config = load_config(Path(config_path))
    except TransactionConverterError as exc:
        click.echo(_describe_error(exc), err=True)
        sys.exit(1)

    click.echo(f"Config OK: {config_path}")
    click.echo(f"  Categories: {len(config.categories)}")
    click.echo(f"  Formats:    {', '.join(sorted(config.formats)) or '(none)'}")
    click.echo("  Accounts:")
    for account in sorted(config.accounts.values(), key=lambda a: a.id):
        click.echo(
            f"    {account.id} ({account.name}): format {account.format_id}, "
            f"{len(account.payees)} payees, {len(account.normalizers)} normalizer rules"
        )


@cli.command()
@click.option(
    "--dir", "target_dir", default=".", type=click.Path(), help="Directory to initialize."
)
def init(target_dir: str) -> None:
    """Write a starter config.toml into a directory."""
    from transaction_converter.config import initialize

    target = Path(target_dir).resolve()

    try:
        path = initialize(target)
    except OSError as exc:
        click.echo(f"Error initializing config: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Initialized transaction converter config at {path}")
