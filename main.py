# main.py

"""Entry point for the rental_search command-line tool."""

import argparse
import asyncio
import logging
import sys

from rental_search.config.logging_config import setup_logging
from rental_search.config.settings import Settings

logger = logging.getLogger("rental_search.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="rental_search",
        description=(
            "Search vacation-rental sites for stays near a point, "
            "within budget."
        ),
        epilog=f"Available sources: {valid_ids}",
    )
    parser.add_argument(
        "--criteria",
        default=None,
        metavar="PATH",
        help=(
            "Criteria JSON file "
            f"(default: $RENTAL_SEARCH_CRITERIA or {Settings.CRITERIA_PATH})."
        ),
    )
    parser.add_argument(
        "-s",
        "--sources",
        default=None,
        help="Comma-separated source IDs (default: all).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        dest="output_dir",
        help="Custom output directory (default: results/).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, run the search and exit with its status."""
    log_file = setup_logging()
    logger.info("rental_search starting, log file: %s", log_file)

    args = _build_parser().parse_args(argv)

    from rental_search.cli.runner import cli_search

    try:
        exit_code = asyncio.run(
            cli_search(
                criteria_path=args.criteria,
                source_csv=args.sources,
                output_format=args.output_format,
                output_dir=args.output_dir,
            )
        )
    except Exception:
        logger.critical("Fatal error during search", exc_info=True)
        raise
    finally:
        logger.info("rental_search shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
