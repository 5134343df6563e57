"""CLI entry-point for running the aggregation proxy."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

import uvicorn
from pydantic import ValidationError

from aggregate_exporter import __version__
from aggregate_exporter.core.config import ConfigError, load_config
from aggregate_exporter.main import create_app

logger = logging.getLogger("aggregate_exporter")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scrape several Prometheus endpoints and serve their merged metrics.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--verbose", action="store_true", default=None, help="Log more information")
    parser.add_argument("--log-level", dest="log_level", help="Root logging level (default INFO)")
    parser.add_argument(
        "--server.bind",
        dest="server_bind",
        help="Bind the HTTP server to this address e.g. 127.0.0.1:8080 or just :8080",
    )
    parser.add_argument(
        "--targets",
        dest="targets",
        help="Comma separated list of targets e.g. http://localhost:8081/metrics,http://localhost:8082/metrics",
    )
    parser.add_argument(
        "--targets.scrape.timeout",
        dest="targets_scrape_timeout",
        type=int,
        help="If a target metrics page does not respond within this many milliseconds then timeout",
    )
    parser.add_argument(
        "--targets.label",
        dest="targets_label",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Add a label to metrics to show their origin target",
    )
    parser.add_argument(
        "--targets.label.name",
        dest="targets_label_name",
        help="Label name to use if a target name label is appended to metrics",
    )
    parser.add_argument(
        "--insecure-skip-verify",
        dest="insecure_skip_verify",
        action="store_true",
        default=None,
        help="Disable verification of TLS certificates",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse flags, resolve configuration and serve until interrupted."""

    args = vars(build_parser().parse_args(argv))
    if args.pop("version"):
        print(__version__)
        return 0

    try:
        config = load_config(**args)
    except (ConfigError, ValidationError) as exc:
        logging.basicConfig(level=logging.INFO)
        logger.critical("%s", exc)
        return 1

    app = create_app(config)
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        timeout_graceful_shutdown=2,
        access_log=config.verbose,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
