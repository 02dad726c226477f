"""WireGuard Mesh Manager - DNS Hosts Executor"""
import logging
import os
import tempfile
from pathlib import Path

from errors import ApplyError

logger = logging.getLogger(__name__)


class DnsExecutor:
    def write_hosts(self, content: str, hosts_file: str) -> None:
        """Replace the hosts file watched by the DNS forwarder.

        Written next to the target and renamed into place, so a watcher
        never sees a partial file.
        """
        path = Path(hosts_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(content)
                os.chmod(temp, 0o644)
                os.replace(temp, path)
            except BaseException:
                os.unlink(temp)
                raise
        except OSError as e:
            raise ApplyError("write dns hosts", reason=f"could not write {path}: {e}") from e
        logger.info(f"Wrote DNS hosts file {path}")
