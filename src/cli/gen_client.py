"""Command line tool printing the WireGuard configuration of a client."""
import asyncio
import logging
import sys
from typing import List, Optional

from api.server import client_config
from config import ServerConfig, load_config, setup_logging
from database.repository import Repository
from errors import MeshError
from renderer.wireguard import WireGuardRenderer

logger = logging.getLogger("wg-mesh-gen-client")


async def generate(config: ServerConfig, client: str, private_key: Optional[str] = None) -> str:
    repository = Repository(config.database_url)
    try:
        return await client_config(config, repository, WireGuardRenderer(), client, private_key)
    finally:
        await repository.close()


def main(argv: Optional[List[str]] = None) -> None:
    argv = sys.argv if argv is None else argv
    if len(argv) < 2:
        print(f"Usage: {argv[0]} client [private key]", file=sys.stderr)
        sys.exit(1)

    setup_logging("WARNING")
    try:
        config = load_config()
        conf = asyncio.run(generate(config, argv[1], argv[2] if len(argv) > 2 else None))
    except MeshError as e:
        logger.error(str(e))
        sys.exit(1)
    print(conf)


if __name__ == "__main__":
    main()
