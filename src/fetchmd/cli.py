"""Command-line interface for fetchmd."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

from . import __version__
from .core.fetcher import Fetcher
from .exceptions import FetchMdError
from .logging_config import setup_logging
from .models.config import FetchMdConfig


def _positive_int(value: str) -> int:
    try:
        number = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number of milliseconds: {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="fetchmd",
        description="Fetch a URL as clean Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Notes:
  Prints Markdown to stdout by default.
  Writes to OUTPUT when provided.

Examples:
  # Print a page as Markdown
  fetchmd https://docs.example.com/guide/

  # Save to a file and show which strategy was used
  fetchmd --debug https://docs.example.com/guide/ guide.md
        """,
    )

    parser.add_argument("url", help="http(s) URL to fetch")
    parser.add_argument(
        "output",
        nargs="?",
        type=Path,
        help="File to write the Markdown to (default: stdout)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print which cascade stage fired and why (stderr)",
    )
    parser.add_argument(
        "--no-abs-links",
        action="store_false",
        dest="absolutize_links",
        default=None,
        help="Keep relative links and images as they are in HTML pages",
    )
    parser.add_argument(
        "--timeout-ms",
        type=_positive_int,
        default=None,
        metavar="MS",
        help="Per-request timeout in milliseconds (default: 30000)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="FILE",
        help="YAML configuration file; command-line flags take precedence",
    )

    return parser


def build_config(args: argparse.Namespace) -> FetchMdConfig:
    """
    Merge the optional YAML file with command-line flags.

    Raises:
        OSError: If the config file cannot be read
        pydantic.ValidationError: If the resulting settings are invalid
    """
    base = FetchMdConfig.from_yaml_file(args.config) if args.config else FetchMdConfig()

    overrides: dict[str, Any] = {}
    if args.debug:
        overrides["debug"] = True
    if args.absolutize_links is not None:
        overrides["absolutize_links"] = args.absolutize_links
    if args.timeout_ms is not None:
        overrides["timeout_ms"] = args.timeout_ms

    if not overrides:
        return base
    return FetchMdConfig.model_validate({**base.model_dump(), **overrides})


def write_output(markdown: str, output: Optional[Path]) -> None:
    """Write Markdown to a UTF-8 file, or to stdout when no file is given."""
    if output is not None:
        output.write_text(markdown, encoding="utf-8")
        return
    sys.stdout.write(markdown)
    sys.stdout.flush()


def run_fetcher(args: argparse.Namespace, console: Console) -> int:
    """Run the fetcher with given arguments."""
    try:
        config = build_config(args)
    except Exception as e:
        # Unreadable file, bad YAML or invalid settings
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}", highlight=False)
        return 2

    setup_logging(
        level=config.effective_log_level,
        log_file=str(config.log_file) if config.log_file else None,
        force=True,
    )

    async def run() -> str:
        async with Fetcher(config) as fetcher:
            return await fetcher.fetch(args.url)

    try:
        markdown = asyncio.run(run())
        write_output(markdown, args.output)
    except (FetchMdError, OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        if config.debug:
            console.print_exception()
        return 1

    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    console = Console(stderr=True)
    return run_fetcher(args, console)


if __name__ == "__main__":
    sys.exit(main())
