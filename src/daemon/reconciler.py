"""WireGuard Mesh Manager - Reconciler

One reconciliation cycle: make the device, the WireGuard configuration and
the DNS hosts file match what the database currently says.
"""
import logging
from dataclasses import dataclass
from typing import List

from config import ServerConfig
from database.models import ClientConnection, Server
from database.repository import Repository
from errors import NotRegistered
from executor.dns import DnsExecutor
from executor.interface import InterfaceManager
from executor.wireguard import WireGuardExecutor
from renderer.dns import DnsRenderer
from renderer.wireguard import WireGuardRenderer

logger = logging.getLogger(__name__)


@dataclass
class DesiredState:
    local: Server
    servers: List[Server]
    connections: List[ClientConnection]


class Reconciler:
    def __init__(
        self,
        config: ServerConfig,
        repository: Repository,
        interfaces: InterfaceManager,
        wg_executor: WireGuardExecutor,
        dns_executor: DnsExecutor,
        wg_renderer: WireGuardRenderer = None,
        dns_renderer: DnsRenderer = None,
    ):
        self.config = config
        self.repository = repository
        self.interfaces = interfaces
        self.wg = wg_executor
        self.dns = dns_executor
        self.wg_renderer = wg_renderer or WireGuardRenderer()
        self.dns_renderer = dns_renderer or DnsRenderer()
        self.cycles = 0

    async def fetch_state(self) -> DesiredState:
        """Query the latest topology, not a snapshot tied to the trigger."""
        servers = await self.repository.list_servers()
        local = next((s for s in servers if s.name == self.config.name), None)
        if local is None:
            raise NotRegistered(self.config.name)
        connections = await self.repository.list_client_connections(self.config.name)
        return DesiredState(local=local, servers=servers, connections=connections)

    async def run_cycle(self, trigger: str = "startup") -> DesiredState:
        """Run every step in order; the first failure aborts the cycle."""
        device = self.config.device_name
        logger.info(f"Updating server configuration ({trigger})")

        await self.interfaces.ensure_interface_up(device)

        state = await self.fetch_state()
        logger.info(
            f"Desired state: {len(state.servers)} servers, "
            f"{len(state.connections)} clients on {self.config.name}"
        )

        wg_config = self.wg_renderer.render_server_config(self.config, state.servers, state.connections)
        logger.debug(
            "WireGuard configuration:\n%s", wg_config.replace(self.config.private_key, "<redacted>")
        )
        await self.wg.apply_config(wg_config, device)
        await self.interfaces.ensure_address(device, state.local.address, self.config.netmask_len)

        hosts = self.dns_renderer.render_hosts(self.config, state.servers, state.connections)
        logger.debug("DNS configuration:\n%s", hosts)
        self.dns.write_hosts(hosts, self.config.dns_hosts_file)

        self.cycles += 1
        logger.info(f"Server configuration updated ({trigger})")
        return state
