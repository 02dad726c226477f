#!/usr/bin/env python3
"""
WireGuard Mesh Manager - Main Entry Point

Keeps the local WireGuard server in sync with the mesh topology stored in
PostgreSQL:
1. Bootstraps the schema and subscribes to change notifications
2. Creates the WireGuard device and applies the rendered configuration
3. Rewrites the DNS hosts file
4. Re-runs on every database change and on SIGUSR1, tears down on SIGTERM/SIGINT
"""
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent))

from api.server import create_app, start_web_server
from config import ServerConfig, load_config, setup_logging
from daemon.dispatcher import EventDispatcher
from daemon.reconciler import Reconciler
from database.repository import Repository
from errors import MeshError
from executor.dns import DnsExecutor
from executor.interface import InterfaceManager
from executor.wireguard import WireGuardExecutor
from renderer.wireguard import WireGuardRenderer

logger = logging.getLogger("wg-mesh-manager")


async def serve(config: ServerConfig) -> int:
    """Run the manager until shutdown, returning the exit status."""
    logger.info("WireGuard Mesh Manager starting...")
    logger.info(f"Server: {config.name}")
    logger.info(f"Device: {config.device_name}")

    repository = Repository(config.database_url)
    interfaces = InterfaceManager(timeout=config.command_timeout)
    wg_renderer = WireGuardRenderer()
    reconciler = Reconciler(
        config=config,
        repository=repository,
        interfaces=interfaces,
        wg_executor=WireGuardExecutor(timeout=config.command_timeout),
        dns_executor=DnsExecutor(),
        wg_renderer=wg_renderer,
    )
    dispatcher = EventDispatcher(reconciler, interfaces, config.device_name)

    loop = asyncio.get_running_loop()
    web_runner = None
    handlers_installed = False
    try:
        # Default signal actions apply until the database is set up
        await repository.connect()
        await repository.bootstrap_schema()
        await repository.subscribe(dispatcher.notify)

        web_runner = await start_web_server(
            create_app(config, repository, wg_renderer),
            config.web_listen_address,
            config.web_listen_port,
        )
        dispatcher.install_signal_handlers(loop)
        handlers_installed = True
        return await dispatcher.run()
    finally:
        if handlers_installed:
            dispatcher.remove_signal_handlers(loop)
        if web_runner is not None:
            await web_runner.cleanup()
        await repository.close()
        logger.info("WireGuard Mesh Manager stopped")


def run() -> None:
    setup_logging()
    try:
        config = load_config()
        status = asyncio.run(serve(config))
    except MeshError as e:
        logger.error(f"Fatal: {e}")
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    run()
