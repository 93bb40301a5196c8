"""CLI interface for svgbinder."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from svgbinder import __version__
from svgbinder.model.pipeline_options import DEFAULT_MERGED_NAME, ConversionOptions
from svgbinder.pipeline.runner import EXIT_FATAL, convert_directory
from svgbinder.ui.progress import ProgressReporter

app = typer.Typer(
    name="svgbinder",
    help="Convert a directory of SVG documents into one-page PDFs and a single merged PDF.",
    no_args_is_help=True,
)


def configure_logging(verbose: int) -> None:
    """Route log records to standard error through rich.

    0 → WARNING, 1 (``-v``) → INFO, 2+ (``-vv``) → DEBUG.
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)


@app.command()
def convert(
    input_dir: Annotated[
        Path,
        typer.Argument(
            help="Directory containing the .svg files to convert",
            exists=True,
            file_okay=False,
            dir_okay=True,
            readable=True,
        ),
    ],
    out_dir: Annotated[
        Path | None,
        typer.Option(
            "--out-dir",
            help="Write outputs here instead of next to the inputs",
        ),
    ] = None,
    merged_name: Annotated[
        str,
        typer.Option("--merged-name", help="File name of the merged document"),
    ] = DEFAULT_MERGED_NAME,
    workers: Annotated[
        int,
        typer.Option(
            "--workers",
            help="Number of worker processes for rendering (default: 1, sequential)",
        ),
    ] = 1,
    recursive: Annotated[
        bool,
        typer.Option("--recursive", help="Also convert .svg files in sub-directories"),
    ] = False,
    pages: Annotated[
        bool,
        typer.Option(
            "--pages/--no-pages",
            help="Write one PDF per input next to the merged document (default: yes)",
        ),
    ] = True,
    bookmarks: Annotated[
        bool,
        typer.Option(
            "--bookmarks/--no-bookmarks",
            help="Add one bookmark per page, titled after its file (default: yes)",
        ),
    ] = True,
    dedupe: Annotated[
        bool,
        typer.Option(
            "--dedupe/--no-dedupe",
            help="Store identical fonts and images once in the merged document (default: yes)",
        ),
    ] = True,
    default_size: Annotated[
        str,
        typer.Option(
            "--default-size",
            help="Page size for documents that declare none: 'a4' or 'letter'",
        ),
    ] = "a4",
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)"),
    ] = 0,
) -> None:
    """
    Convert every SVG in INPUT_DIR to PDF and merge them into one document.

    Files are processed in lexical order of their path; that order is the page
    order of the merged document.

    Exit status: 0 on success, 1 when some files failed or kept undecodable
    embedded images, 2 when no merged document could be produced.

    Examples:

        # Convert ./drawings into ./drawings/*.pdf and ./drawings/merged.pdf
        svgbinder convert drawings

        # Four workers, outputs elsewhere, no per-file PDFs
        svgbinder convert drawings --workers 4 --out-dir build --no-pages
    """
    configure_logging(verbose)

    try:
        options = ConversionOptions.from_cli(
            workers=workers,
            out_dir=out_dir,
            merged_name=merged_name,
            write_pages=pages,
            recursive=recursive,
            dedupe=dedupe,
            bookmarks=bookmarks,
            default_size=default_size,
        )
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_FATAL) from exc

    with ProgressReporter() as pr:
        summary = convert_directory(input_dir, options, on_progress=pr.emit)

    for failure in summary.failures:
        typer.echo(f"❌ {failure.path}: {failure.message}", err=True)
    for result in summary.degraded:
        typer.echo(
            f"⚠️  {result.source}: {len(result.decode_failures)} embedded image(s) "
            "could not be decoded and were kept as-is",
            err=True,
        )
    for skipped in summary.skipped_outputs:
        typer.echo(f"⚠️  Skipped {skipped}: name collides with the merged output", err=True)

    if summary.fatal is not None:
        typer.echo(f"Error: {summary.fatal}", err=True)
    else:
        typer.echo(f"✅ Wrote {summary.merged_path} ({summary.page_count} pages)")

    raise typer.Exit(summary.exit_code)


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"svgbinder version {__version__}")


def version_callback(value: bool) -> None:
    """Version callback for --version flag."""
    if value:
        typer.echo(f"svgbinder version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """
    svgbinder - Convert directories of SVG documents into PDF.

    Embedded images are normalized before rendering so renderers that mishandle
    them still produce faithful pages. Each SVG becomes one PDF page; all pages
    are merged into one document with bookmarks.

    For detailed usage, run: svgbinder convert --help
    """
    pass


@app.command()
def doctor() -> None:
    """Check that the rendering and PDF libraries are installed and working.

    Performs one tiny test render; no files are read or written.
    """
    from svgbinder.backend_env import format_report_lines, probe_environment, report_is_ok

    report = probe_environment()
    for line in format_report_lines(report):
        typer.echo(line)

    if not report_is_ok(report):
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover - executed only via `python -m`
    app()
