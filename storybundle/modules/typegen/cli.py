from __future__ import annotations

import logging
from pathlib import Path

import typer

from storybundle.config import generation_options_from_settings, settings
from storybundle.modules.typegen.service import BundleWatcher, run_generation

app = typer.Typer(help="Generate TypeScript declarations from compiled story bundles", add_completion=False)

LOG_FORMAT = "[bundle-types] %(message)s"


def configure_logging(*, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, str(settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("storybundle").setLevel(level)


@app.command()
def generate(
    input_path: str = typer.Option(settings.bundles_input_path, "--input", help="Bundle file or directory of bundles"),
    output_path: str = typer.Option(settings.types_output_path, "--output", help="Directory for declaration files"),
    watch: bool = typer.Option(False, "--watch", help="Watch for bundle changes and regenerate"),
    verbose: bool = typer.Option(False, "--verbose", help="Log per-bundle generation stats"),
) -> None:
    configure_logging(verbose=verbose)
    options = generation_options_from_settings(settings)
    source = Path(input_path)
    output_dir = Path(output_path)

    typer.echo("Story Bundle Type Generator")
    typer.echo("===========================")
    typer.echo(f"Input: {source}")
    typer.echo(f"Output: {output_dir}")
    typer.echo("")

    results = run_generation(
        source,
        output_dir,
        options,
        suffix=settings.bundle_file_suffix,
        extension=settings.declaration_extension,
    )
    skipped = [item for item in results if not item.ok]
    if skipped:
        typer.echo(f"{len(skipped)} bundle(s) skipped, see errors above.")

    if watch:
        watcher = BundleWatcher(
            source,
            output_dir,
            options,
            suffix=settings.bundle_file_suffix,
            extension=settings.declaration_extension,
            poll_interval_s=settings.watch_poll_interval_s,
        )
        watcher.run()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
