"""Command line tool creating the database schema.

Reads the same configuration file as the daemon.
"""
import asyncio
import logging
import sys

from config import load_config, setup_logging
from database.repository import Repository
from errors import MeshError

logger = logging.getLogger("wg-mesh-create-schema")


async def create_schema(database_url: str) -> None:
    repository = Repository(database_url)
    try:
        await repository.connect()
        await repository.bootstrap_schema()
    finally:
        await repository.close()


def main() -> None:
    setup_logging()
    try:
        config = load_config()
        asyncio.run(create_schema(config.database_url))
    except MeshError as e:
        logger.error(str(e))
        sys.exit(1)
    logger.info("Schema created")


if __name__ == "__main__":
    main()
