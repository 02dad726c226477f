"""WireGuard Mesh Manager - WireGuard Renderer

Pure functions of their inputs. Output is fed to `wg setconf`, so stanza
order and blank lines are part of the format.
"""
from pathlib import Path
from typing import List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from config import ServerConfig
from database.models import ClientConnection, Server, ServerConnection
from errors import NotRegistered

TEMPLATE_DIR = Path(__file__).parent / "templates"


def template_env(template_dir: Path = TEMPLATE_DIR) -> Environment:
    return Environment(loader=FileSystemLoader(str(template_dir)), trim_blocks=True, lstrip_blocks=True)


class WireGuardRenderer:
    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        self.env = template_env(template_dir)

    def render_server_config(
        self,
        config: ServerConfig,
        servers: Sequence[Server],
        connections: Sequence[ClientConnection],
    ) -> str:
        """Interface stanza, then one peer per other server, then one per client."""
        local = next((s for s in servers if s.name == config.name), None)
        if local is None:
            raise NotRegistered(config.name)
        return self.env.get_template("wireguard_server.conf.j2").render(
            listen_port=local.public_port,
            private_key=config.private_key,
            servers=[s for s in servers if s.name != config.name],
            keepalive=config.keepalive,
            connections=connections,
        )

    def render_client_config(
        self,
        config: ServerConfig,
        connections: Sequence[ServerConnection],
        private_key: Optional[str] = None,
    ) -> str:
        """Client configuration with one peer per server the client may reach.

        Without `private_key` a placeholder is emitted for the user to fill.
        """
        addresses: List[str] = [f"{c.address}/{config.netmask_len}" for c in connections]
        return self.env.get_template("wireguard_client.conf.j2").render(
            private_key=private_key,
            addresses=addresses,
            connections=connections,
            keepalive=config.keepalive,
        )
