# renormalizer/cli/__main__.py

"""
SQLite JSON Renormalizer CLI

Usage: python -m renormalizer.cli --input broken.sqlite --output fixed.sqlite [--check-integrity]

Copies every table of the input database into a new output database,
unwrapping JSON values that were serialized more than once.
"""

import click
from pathlib import Path

from renormalizer.core.config import load_repair_config
from renormalizer.core.logging import RenormalizerLogger
from renormalizer.pipeline.repair_pipeline import RepairPipeline
from renormalizer.types import RenormalizerError, RepairSummary


@click.command()
@click.option('--input', '-i', 'input_path', type=click.Path(),
              help='The input sqlite file to fix')
@click.option('--output', '-o', 'output_path', type=click.Path(),
              help='The output sqlite file (must not exist yet)')
@click.option('--check-integrity', '-c', is_flag=True,
              help='Check that every source row exists in the output')
@click.option('--json-column', 'json_columns', multiple=True,
              help='Column holding JSON to renormalize (repeatable, default: json)')
@click.option('--key-column', help='Row key column used for logging and integrity checks (default: ID)')
@click.option('--batch-size', type=int, help='Rows fetched and inserted per batch (default: 500)')
@click.option('--busy-timeout', 'busy_timeout_ms', type=int,
              help='Output database busy timeout in milliseconds (default: 60000)')
@click.option('--keep-going', is_flag=True,
              help='Record unwrap failures and missing rows instead of stopping at the first one')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging (one line per row)')
@click.option('--log-dir', type=click.Path(file_okay=False), help='Also write log files to this directory')
def cli(input_path, output_path, check_integrity, json_columns, key_column, batch_size,
        busy_timeout_ms, keep_going, verbose, log_dir):
    """Repair JSON columns of a SQLite database that were encoded several times"""
    try:
        config = load_repair_config(
            input_path=input_path,
            output_path=output_path,
            check_integrity=check_integrity,
            json_columns=json_columns,
            key_column=key_column,
            batch_size=batch_size,
            busy_timeout_ms=busy_timeout_ms,
            keep_going=keep_going,
            log_level="DEBUG" if verbose else None,
            log_dir=log_dir,
        )

        RenormalizerLogger.configure(
            log_dir=config.log_dir,
            log_level=config.log_level,
            console_enabled=True,
            file_enabled=config.log_dir is not None,
            structured_format=verbose,
            force=True,
        )

        summary = RepairPipeline(config).run()

    except RenormalizerError as e:
        raise click.ClickException(str(e))

    print_summary(summary)

    if not summary.ok:
        raise click.ClickException(f"{len(summary.issues)} issue(s) found, see report above")

    click.echo("Done!")


def print_summary(summary: RepairSummary) -> None:
    click.echo(f"\n{Path(summary.input_path).name} -> {Path(summary.output_path).name}")

    for table_name in summary.tables:
        migration = summary.migrations.get(table_name)
        if migration is None:
            continue
        line = (f"  {table_name}: {migration.rows_written} rows written, "
                f"{migration.rows_changed} renormalized")

        verification = summary.verifications.get(table_name)
        if verification is not None:
            if verification.skipped:
                line += ", integrity skipped (no key)"
            else:
                line += f", {verification.rows_checked} rows checked"
        click.echo(line)

    issues = summary.issues
    if issues:
        click.echo(f"\n⚠️  {len(issues)} issue(s):")
        for issue in issues:
            click.echo(f"  [{issue.stage}] {issue.message}")


if __name__ == '__main__':
    cli()
