"""Command line interface for the contacts mapping demo."""
from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import List, Optional

from dotenv import load_dotenv

from contactmap import demo
from contactmap.config.settings import SettingsError, load_settings
from contactmap.mapping import MappingError
from contactmap.storage import EmbeddedServerError

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MAPPING_ERROR = 1
EXIT_SETTINGS_ERROR = 2
EXIT_SERVER_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MongoDB object mapping demo for people and their contacts")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log mapping decisions as well.")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    run_parser = subparsers.add_parser("run", help="Insert, query and update a person document")
    run_parser.add_argument("--config", help="Path to a YAML settings file (defaults to configs/demo.yaml).")
    run_parser.add_argument("--mongo-url", help="Use this server instead of starting an embedded mongod.")
    run_parser.add_argument(
        "--keep-collection",
        action="store_true",
        help="Leave the collection in place after the run.",
    )
    run_parser.set_defaults(func=_run_demo)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    load_dotenv()
    return args.func(args)


def _run_demo(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.config)
    except SettingsError as exc:
        LOGGER.error("Invalid settings: %s", exc)
        return EXIT_SETTINGS_ERROR
    if args.mongo_url:
        settings = replace(settings, mongo_url=args.mongo_url)
    if args.keep_collection:
        settings = replace(settings, drop_collection=False)

    try:
        mappings = demo.build_mappings()
    except MappingError as exc:
        LOGGER.error("Mapping configuration failed: %s", exc)
        return EXIT_MAPPING_ERROR

    try:
        result = demo.run(settings, mappings)
    except EmbeddedServerError as exc:
        LOGGER.error("%s", exc)
        return EXIT_SERVER_ERROR

    print(result.render())
    LOGGER.info(
        "Phone update for %s %s",
        result.person_id,
        "matched a document" if result.update_matched else "matched nothing",
    )
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
