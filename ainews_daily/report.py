#!/usr/bin/env python3
"""Dataset report utility."""

import sys
from pathlib import Path

import click
import orjson

from .config import get_settings
from .dataset import load_dataset
from .logging import get_logger
from .ui import FriendlyUI

logger = get_logger(__name__)


@click.command()
@click.option(
    '--path',
    'dataset_path',
    type=click.Path(dir_okay=False, path_type=Path),
    help='Dataset document (default: the configured latest-processed.json)',
)
@click.option('--top', type=click.IntRange(min=0), default=10, show_default=True, help='Articles to list')
@click.option('--json', 'output_json', is_flag=True, help='Output the summary as JSON')
def main(dataset_path: Path | None, top: int, output_json: bool):
    """Show what the published dataset contains."""
    path = dataset_path or get_settings().dataset_path
    ui = FriendlyUI()

    dataset = load_dataset(path)
    if dataset is None:
        ui.error(f"No readable dataset at {path}")
        sys.exit(1)

    if output_json:
        document = dataset.to_document()
        summary = {key: value for key, value in document.items() if key != 'articles'}
        summary['nearDuplicates'] = sum(1 for item in dataset.articles if item.duplicate_of)
        click.echo(orjson.dumps(summary, option=orjson.OPT_INDENT_2).decode())
    else:
        ui.show_dataset_report(dataset, str(path), top=top)


if __name__ == "__main__":
    main()
