"""WireGuard Mesh Manager - DNS Hosts Renderer"""
from pathlib import Path
from typing import Sequence

from config import ServerConfig
from database.models import ClientConnection, Server
from renderer.wireguard import TEMPLATE_DIR, template_env


class DnsRenderer:
    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        self.env = template_env(template_dir)

    def render_hosts(
        self,
        config: ServerConfig,
        servers: Sequence[Server],
        connections: Sequence[ClientConnection],
    ) -> str:
        """Hosts file: every server, then the clients connected to this server."""
        return self.env.get_template("hosts.j2").render(
            base_domain=config.base_domain,
            servers=servers,
            connections=connections,
        )
