"""
WireGuard Mesh Manager - Test Fixtures

Shared pytest fixtures for manager tests.
"""
import ipaddress
import sys
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config import ServerConfig  # noqa: E402
from database.models import Client, ClientConnection, Server  # noqa: E402
from executor.command import CommandResult  # noqa: E402


def make_server(name, subnet, address, public, port=51820, key=None, subnet_len=24):
    return Server(
        name=name,
        subnet_addr=ipaddress.ip_address(subnet),
        subnet_len=subnet_len,
        address=ipaddress.ip_address(address),
        public_address=ipaddress.ip_address(public),
        public_port=port,
        public_key=key or f"K{name.lower()}",
    )


def make_connection(server, client, address, key=None):
    return ClientConnection(
        server=server,
        client=Client(name=client, public_key=key or f"K{client.lower()}"),
        address=ipaddress.ip_address(address),
    )


class FakeRunner:
    """Records commands and answers them from a table of canned results.

    Keys are command prefixes, the longest matching prefix wins; anything
    unmatched succeeds with empty output.
    """

    def __init__(self, responses: Dict[Tuple[str, ...], Tuple[int, str]] = None):
        self.responses = dict(responses or {})
        self.calls: List[List[str]] = []

    def set(self, prefix, returncode=0, stdout=""):
        self.responses[tuple(prefix)] = (returncode, stdout)

    async def __call__(self, *args, timeout=None):
        command = list(args)
        self.calls.append(command)
        match = None
        for prefix, response in self.responses.items():
            if tuple(command[:len(prefix)]) == prefix and (match is None or len(prefix) > len(match[0])):
                match = (prefix, response)
        returncode, stdout = match[1] if match else (0, "")
        return CommandResult(command=command, returncode=returncode, stdout=stdout, stderr="")

    def commands(self, *prefix):
        return [c for c in self.calls if tuple(c[:len(prefix)]) == prefix]


@pytest.fixture
def server_config(tmp_path):
    """Config of S1 from the end-to-end example."""
    return ServerConfig(
        name="S1",
        private_key="S1PRIVATEKEY=",
        device_name="wg0",
        database_url="postgresql://localhost/wireguard",
        base_domain="mesh.local",
        dns_hosts_file=str(tmp_path / "hosts"),
        network="10.0.0.0/16",
        netmask_len=16,
        keepalive=25,
    )


@pytest.fixture
def s1():
    return make_server("S1", "10.0.1.0", "10.0.1.1", "203.0.113.1", key="Ks1")


@pytest.fixture
def s2():
    return make_server("S2", "10.0.2.0", "10.0.2.1", "203.0.113.2", port=51821, key="Ks2")


@pytest.fixture
def c1():
    return make_connection("S1", "C1", "10.0.1.2", key="Kc1")


@pytest.fixture
def fake_runner():
    return FakeRunner()
