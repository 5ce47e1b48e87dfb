"""Dev-server port allocation."""

from __future__ import annotations

from collections.abc import Iterable

from athena.errors import PortsExhausted

DEFAULT_PORT_BASE = 3001
DEFAULT_PORT_CEILING = 5000


def allocate_port(
    used_ports: Iterable[int],
    *,
    base: int = DEFAULT_PORT_BASE,
    ceiling: int = DEFAULT_PORT_CEILING,
) -> int:
    """Lowest port >= ``base`` not in ``used_ports``.

    Best effort only: nothing is reserved, so two callers reading the same
    listing can pick the same port.
    """
    used = set(used_ports)
    port = base
    while port in used:
        port += 1
    if port > ceiling:
        msg = f"No free port between {base} and {ceiling}"
        raise PortsExhausted(msg)
    return port
