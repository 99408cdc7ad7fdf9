"""
main.py — command-line entry point.

  python main.py analyze photos/selfie.jpg     print the analysis as JSON
  python main.py check                         check the OpenRouter connection

Configuration comes from the environment / .env (see config.py).
"""
import asyncio
import json
import logging
import sys
from pathlib import Path

import typer

from config import AnalyzerConfig
from hair_analyzer import HairAnalyzer
from providers.base import ImageUpload
from providers.errors import ConfigurationError

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
    handlers=[logging.StreamHandler(sys.stderr)],
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, help="Hair photo analysis over an OpenRouter model cascade.")


def _analyzer() -> HairAnalyzer:
    try:
        return HairAnalyzer(AnalyzerConfig.from_env())
    except ConfigurationError as exc:
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)


@app.command()
def analyze(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Photo to analyze."),
    indent: int = typer.Option(2, help="JSON indentation."),
) -> None:
    """Analyze one hair photo and print the result as JSON."""
    analyzer = _analyzer()
    image = ImageUpload(data=path.read_bytes(), filename=path.name)
    result = asyncio.run(analyzer.analyze(image))
    typer.echo(json.dumps(result.to_dict(), indent=indent))
    if result.is_offline:
        logger.warning("Showing offline estimate: %s", result.message)


@app.command()
def check() -> None:
    """Check that at least one model answers."""
    analyzer = _analyzer()
    if not asyncio.run(analyzer.test_connection()):
        typer.secho("All API connection tests failed", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo("OK")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
