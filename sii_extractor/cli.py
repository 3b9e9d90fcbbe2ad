"""
SII Extractor CLI

Command-line interface for the extraction engine.

Commands:
    extract       Classify a document and print its fields as JSON
    detect        Show the detection score of every ranked format
    list-formats  List the formats that can be forced

Examples:

    sii-extract extract boleta.pdf
    sii-extract extract factura.txt --format factura_sii -o factura.json
    sii-extract detect liquidacion.pdf
    sii-extract -c config/engine.yaml list-formats
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import EngineConfig, load_config
from .doctypes.registry import ExtractorRegistry
from .exceptions import ExtractorError, UnknownFormatError
from .logging_setup import setup_logging
from .parser.normalizers import sanitize_text
from .pdf_text import DocumentTextLoader


class EngineContext:
    """State shared by all subcommands."""

    def __init__(self, config: EngineConfig):
        self.config = config
        self.registry = ExtractorRegistry.from_config(config)
        self.loader = DocumentTextLoader(min_text_length=config.min_text_length)

    def read(self, path: Path) -> str:
        return self.loader.load(path)


def _fail(error: ExtractorError) -> None:
    """Report an engine error and exit with status 1."""
    Console(stderr=True).print(f"[bold red]Error:[/] {error.message}")
    logger.debug(f"{type(error).__name__}: {error}")
    sys.exit(1)


def _format_amount(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, int):
        # Chilean thousands separator
        return f"{value:,}".replace(",", ".")
    return str(value)


@click.group()
@click.option(
    '--config', '-c',
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='Path to engine.yaml configuration file'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--log-file',
    type=click.Path(path_type=Path),
    default=None,
    help='Write logs to file'
)
@click.version_option(__version__, prog_name='sii-extract')
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool, log_file: Optional[Path]):
    """
    SII Extractor - classify Chilean tax documents and payslips and
    extract their fields.
    """
    try:
        config = load_config(config_path)
        setup_logging(verbose=verbose, log_file=log_file, level=config.log_level)
        ctx.obj = EngineContext(config)
    except ExtractorError as e:
        _fail(e)


@main.command('extract')
@click.argument('path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '--format', '-f',
    'format_id',
    default=None,
    help='Force a format id instead of classifying ("auto" to classify)'
)
@click.option(
    '--output', '-o',
    'output_path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Write the JSON result to this file instead of stdout'
)
@click.option(
    '--raw-text',
    is_flag=True,
    help='Also print the document text as the engine sees it'
)
@click.pass_obj
def extract_command(
    engine: EngineContext,
    path: Path,
    format_id: Optional[str],
    output_path: Optional[Path],
    raw_text: bool,
):
    """Classify a document and extract its fields."""
    try:
        text = engine.read(path)
    except ExtractorError as e:
        _fail(e)

    if raw_text:
        console = Console(stderr=True)
        console.rule(f"[bold]{path.name}")
        console.print(sanitize_text(text), markup=False, highlight=False)
        console.rule()

    try:
        result = engine.registry.parse(text, forced_format=format_id)
    except UnknownFormatError as e:
        raise click.BadParameter(
            f"unknown format '{e.format_id}'. Available: {', '.join(e.available)}",
            param_hint="'--format'",
        )

    payload = json.dumps(result.to_dict(), ensure_ascii=False, indent=2)

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(payload + "\n", encoding='utf-8')

        console = Console()
        console.print(f"[green]✓ Output written to: {output_path}[/]")

        table = Table(title=f"{result.format_id} (confidence {result.confidence})")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for name, value in result.fields.to_dict().items():
            if name == 'extras':
                continue
            if name.endswith('Amount'):
                value = _format_amount(value)
            table.add_row(name, "-" if value is None else str(value))
        console.print(table)
    else:
        click.echo(payload)


@main.command('detect')
@click.argument('path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def detect_command(engine: EngineContext, path: Path):
    """Show the detection score of every ranked format."""
    try:
        text = engine.read(path)
    except ExtractorError as e:
        _fail(e)

    # Stable sort: the first entry is the winner of the strict ">" rule
    scores = engine.registry.detect_all(text)
    best = scores[0][0]

    table = Table(title=f"Detection scores: {path.name}")
    table.add_column("Format", style="cyan")
    table.add_column("Family")
    table.add_column("Score", justify="right")

    for extractor, score in scores:
        style = "bold green" if extractor is best else None
        table.add_row(extractor.format_id, extractor.family.value, f"{score:.2f}", style=style)

    console = Console()
    console.print(table)
    console.print(f"Detected format: [bold]{best.format_id}[/]")


@main.command('list-formats')
@click.pass_obj
def list_formats_command(engine: EngineContext):
    """List the formats that can be forced with --format."""
    table = Table(title="Supported formats")
    table.add_column("Id", style="cyan")
    table.add_column("Label")
    table.add_column("Automatic", justify="center")

    for format_id, label, ranked in engine.registry.list_formats():
        table.add_row(format_id, label, "yes" if ranked else "forced only")

    Console().print(table)


if __name__ == '__main__':
    main()
