"""WireGuard Mesh Manager - Interface Lifecycle

Creates, addresses and removes the WireGuard network device with `ip`.
Every operation is idempotent: it inspects first and only issues the
commands needed to reach the desired state.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from database.models import IPAddress
from errors import InterfaceError
from executor.addresses import parse_addresses, parse_link_flags
from executor.command import CommandResult, run_command

logger = logging.getLogger(__name__)

Runner = Callable[..., Awaitable[CommandResult]]


class InterfaceManager:
    """Manage the local WireGuard device."""

    def __init__(self, runner: Runner = run_command, timeout: Optional[float] = None):
        self.runner = runner
        self.timeout = timeout

    async def _run(self, step: str, *args: str, check: bool = True) -> CommandResult:
        command = list(args)
        try:
            result = await self.runner(*command, timeout=self.timeout)
        except OSError as e:
            raise InterfaceError(step, command, reason=f"could not be spawned: {e}") from e
        except asyncio.TimeoutError as e:
            raise InterfaceError(step, command, reason=f"timed out after {self.timeout}s") from e
        if check and not result.ok:
            raise InterfaceError(step, command, result.returncode, result.stderr)
        return result

    async def _bring_up(self, device: str) -> None:
        await self._run("bring device up", "ip", "link", "set", "up", "dev", device)

    async def ensure_interface_up(self, device: str) -> bool:
        """Create the device if it does not exist and make sure it is up.

        Returns True if the device had to be created.
        """
        result = await self._run("inspect device", "ip", "link", "show", "dev", device, check=False)
        if result.ok:
            if "UP" in parse_link_flags(result.stdout):
                logger.debug(f"Interface {device} already up")
            else:
                logger.info(f"Interface {device} is down, bringing it up")
                await self._bring_up(device)
            return False

        logger.info(f"Creating WireGuard interface {device}")
        await self._run("create device", "ip", "link", "add", "dev", device, "type", "wireguard")
        await self._bring_up(device)
        return True

    async def ensure_address(self, device: str, address: IPAddress, prefix_len: int) -> None:
        """Leave exactly `address/prefix_len` assigned to `device`.

        All stale addresses are removed before the desired one is added.
        """
        result = await self._run("list addresses", "ip", "addr", "show", "dev", device)
        desired = (address, prefix_len)

        present = False
        for current in parse_addresses(result.stdout):
            if current == desired:
                present = True
                continue
            cidr = f"{current[0]}/{current[1]}"
            logger.info(f"Removing stale address {cidr} from {device}")
            await self._run("remove address", "ip", "addr", "del", cidr, "dev", device)

        if present:
            logger.debug(f"Address {address}/{prefix_len} already on {device}")
            return

        logger.info(f"Adding address {address}/{prefix_len} to {device}")
        await self._run("add address", "ip", "addr", "add", f"{address}/{prefix_len}", "dev", device)

    async def teardown(self, device: str) -> None:
        """Delete the device."""
        logger.info(f"Removing interface {device}")
        await self._run("delete device", "ip", "link", "delete", "dev", device)
