"""WireGuard Mesh Manager - Domain Entities

Immutable snapshots of database rows, re-fetched on every cycle.
"""
import ipaddress
from dataclasses import dataclass
from typing import Union

from errors import MalformedAddress

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def parse_ip(text: str) -> IPAddress:
    """Parse textual address from the database or a command output."""
    try:
        return ipaddress.ip_address(str(text).strip())
    except ValueError as e:
        raise MalformedAddress(f"Cannot parse address {text!r}") from e


def host_prefix_len(address: IPAddress) -> int:
    """/32 for IPv4, /128 for IPv6."""
    return address.max_prefixlen


@dataclass(frozen=True)
class Server:
    """A server of the mesh."""
    name: str
    subnet_addr: IPAddress
    subnet_len: int
    address: IPAddress
    public_address: IPAddress
    public_port: int
    public_key: str

    @property
    def subnet(self) -> str:
        return f"{self.subnet_addr}/{self.subnet_len}"

    @property
    def endpoint(self) -> str:
        if self.public_address.version == 6:
            return f"[{self.public_address}]:{self.public_port}"
        return f"{self.public_address}:{self.public_port}"


@dataclass(frozen=True)
class Client:
    """A user authorized to connect to some servers."""
    name: str
    public_key: str


@dataclass(frozen=True)
class ClientConnection:
    """A client authorized on a server, with its address there."""
    server: str
    client: Client
    address: IPAddress

    @property
    def host_route(self) -> str:
        return f"{self.address}/{host_prefix_len(self.address)}"


@dataclass(frozen=True)
class ServerConnection:
    """Client side view: a server the client may reach, and its address there."""
    server: Server
    address: IPAddress
