"""WireGuard Mesh Manager - External Command Runner"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    command: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(*args: str, timeout: Optional[float] = None) -> CommandResult:
    """Run a command and capture its output.

    Raises OSError if it cannot be spawned and asyncio.TimeoutError if it
    outlives `timeout` (the process is killed first). Without a timeout a
    hung command blocks the caller indefinitely.
    """
    command = [str(a) for a in args]
    logger.debug(f"Running: {' '.join(command)}")
    proc = await asyncio.create_subprocess_exec(
        *command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise
    return CommandResult(
        command=command,
        returncode=proc.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )
