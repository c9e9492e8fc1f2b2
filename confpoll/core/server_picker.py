from __future__ import annotations

import random
from collections.abc import Sequence

from ..datastructures.notification import ServiceEndpoint
from ..exceptions import NoAvailableServerError


def pick_server(
    servers: Sequence[ServiceEndpoint], rng: random.Random
) -> ServiceEndpoint:
    """Choose one config server uniformly at random."""
    if not servers:
        raise NoAvailableServerError("No available config service")
    return servers[rng.randrange(len(servers))]
