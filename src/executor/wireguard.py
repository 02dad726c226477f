"""WireGuard Mesh Manager - WireGuard Executor"""
import asyncio
import logging
import os
import tempfile
from typing import Optional

from errors import ApplyError
from executor.command import run_command
from executor.interface import Runner

logger = logging.getLogger(__name__)


class WireGuardExecutor:
    def __init__(self, runner: Runner = run_command, timeout: Optional[float] = None):
        self.runner = runner
        self.timeout = timeout

    async def apply_config(self, config: str, device: str) -> None:
        """Replace the running configuration of `device` with `config`.

        The config is staged in a private temp file (mode 0600, it holds the
        private key) that is closed before `wg setconf` reads it and removed
        afterwards whatever the outcome.
        """
        fd, path = tempfile.mkstemp(prefix=f"{device}-", suffix=".conf")
        try:
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(config)
            except OSError as e:
                raise ApplyError("stage wireguard config", reason=f"could not write {path}: {e}") from e

            command = ["wg", "setconf", device, path]
            try:
                result = await self.runner(*command, timeout=self.timeout)
            except OSError as e:
                raise ApplyError("apply wireguard config", command, reason=f"could not be spawned: {e}") from e
            except asyncio.TimeoutError as e:
                raise ApplyError("apply wireguard config", command, reason=f"timed out after {self.timeout}s") from e

            if not result.ok:
                raise ApplyError("apply wireguard config", command, result.returncode, result.stderr)
            logger.info(f"Applied WireGuard configuration to {device}")
        finally:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
