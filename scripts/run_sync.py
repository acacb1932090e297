"""
Script to run one sync or operator action from the command line
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from connector.bootstrap import open_runner
from core.config import settings
from core.exceptions import ConfigError, ItemEnumerationError, SyncInProgressError
from core.logging import setup_logging
from models.base import SyncStatus

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync glossary terms into the search index")
    parser.add_argument("--full", action="store_true", help="Push every record, ignoring the checkpoint")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--catalog", metavar="ID", help="Restrict the run to one glossary id")
    target.add_argument("--catalog-name", metavar="NAME", help="Restrict the run to one glossary by name")

    action = parser.add_mutually_exclusive_group()
    action.add_argument("--state", action="store_true", help="Print the connection state and exit")
    action.add_argument("--register-schema", action="store_true", help="Register the schema and wait for provisioning")
    action.add_argument("--delete-all", action="store_true", help="Delete every item on the connection")
    action.add_argument("--create-connection", metavar="NAME", help="Create the configured connection with this display name")
    action.add_argument("--delete-connection", action="store_true", help="Delete the configured connection")
    action.add_argument("--check-source", action="store_true", help="Check that the source catalog answers")
    parser.add_argument("--description", help="Description for --create-connection")

    args = parser.parse_args(argv)
    operator_action = (
        args.state or args.register_schema or args.delete_all
        or args.create_connection is not None or args.delete_connection or args.check_source
    )
    if operator_action and (args.full or args.catalog or args.catalog_name):
        parser.error("--full, --catalog and --catalog-name only apply to sync runs")
    if args.description is not None and args.create_connection is None:
        parser.error("--description requires --create-connection")
    return args


async def run(args: argparse.Namespace) -> int:
    async with open_runner(settings) as runner:
        if args.state:
            state = await runner.get_connection_state()
            logger.info(f"Connection {runner.connection_id} state: {state.value if state else 'unknown'}")
            return 0 if state else 1

        if args.register_schema:
            result = await runner.register_schema()
            logger.info(f"Schema registration: {'ok' if result.ok else 'failed'} - {result.message}")
            return 0 if result.ok else 1

        if args.check_source:
            reachable = await runner.check_source()
            logger.info(f"Source catalog {'reachable' if reachable else 'unreachable'}")
            return 0 if reachable else 1

        if args.create_connection is not None:
            result = await runner.create_connection(args.create_connection, args.description)
            logger.info(f"Create connection {runner.connection_id}: {'ok' if result.ok else 'failed'} - {result.message}")
            return 0 if result.ok else 1

        if args.delete_connection:
            result = await runner.delete_connection()
            logger.info(f"Delete connection {runner.connection_id}: {'ok' if result.ok else 'failed'} - {result.message}")
            return 0 if result.ok else 1

        if args.delete_all:
            try:
                result = await runner.delete_all_items()
            except ItemEnumerationError as e:
                logger.error(f"Delete aborted: {e.message}", extra={"error_context": e.to_dict()})
                return 1
            logger.info(f"Deleted {result.succeeded} items, {result.failed} failed")
            return 0 if result.failed == 0 else 1

        catalog_id = args.catalog
        if args.catalog_name:
            catalog_id = await runner.reader.find_catalog_id_by_name(args.catalog_name)
            if catalog_id is None:
                logger.error(f"Glossary '{args.catalog_name}' not found")
                return 1

        if args.full:
            summary = await runner.run_full_sync(catalog_filter=catalog_id)
        else:
            summary = await runner.run_incremental_sync(catalog_filter=catalog_id)

        logger.info(
            f"Sync finished: {summary.status.value} - processed={summary.processed}, "
            f"skipped={summary.skipped}, pushed={summary.succeeded}, failed={summary.failed}"
        )
        return 1 if summary.status == SyncStatus.FAILED else 0


def main(argv=None) -> int:
    setup_logging()
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except ConfigError as e:
        logger.error(f"Configuration error: {e.message}", extra={"error_context": e.to_dict()})
        return 2
    except SyncInProgressError as e:
        logger.error(e.message)
        return 3


if __name__ == "__main__":
    sys.exit(main())
