"""WireGuard Mesh Manager - Interface Output Parsers

Grammar, one match per assigned address anywhere in the text:

    inet[6]? <addr>/<prefixlen>

which is what `ip addr show` prints. Everything else on the line (scope,
flags, lifetimes) is ignored.

Link flags come from the first `<FLAG,FLAG,...>` group of `ip link show`.
"""
import re
from typing import List, Tuple

from database.models import IPAddress, parse_ip

ADDRESS_RE = re.compile(r"\binet6?\s+([0-9A-Fa-f.:]+)/(\d+)")


def parse_addresses(text: str) -> List[Tuple[IPAddress, int]]:
    """Extract (address, prefix length) pairs in output order."""
    return [(parse_ip(m.group(1)), int(m.group(2))) for m in ADDRESS_RE.finditer(text)]


LINK_FLAGS_RE = re.compile(r"<([A-Z0-9_,-]*)>")


def parse_link_flags(text: str) -> List[str]:
    """Flags of the first `<...>` group in `ip link show` output."""
    match = LINK_FLAGS_RE.search(text)
    return match.group(1).split(",") if match and match.group(1) else []
