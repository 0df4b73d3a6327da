"""
Resource pool lookup for template conversion.
"""
import re
from typing import List, Optional

from ..MODELS.inventory import ResourcePool


def host_pool_pattern(host_name: str):
    """
    Pattern for the default resource pool of a host, ``/<any>/<host>/Resources[/<any>]``.
    """
    return re.compile(rf"/.*/{re.escape(host_name)}/Resources(?:/.*)?")


class PoolResolver:
    """
    Finds the resource pool a template on a given host can be converted into.

    Templates do not remember the pool they came from, so the pool is derived
    from the inventory path: the first pool nested under the host's name wins.
    """

    def __init__(self, pools: List[ResourcePool]):
        self.pools = list(pools)

    def find(self, host_name: str) -> Optional[ResourcePool]:
        pattern = host_pool_pattern(host_name)
        for pool in self.pools:
            if pattern.fullmatch(pool.inventory_path):
                return pool
        return None

    def describe(self) -> str:
        return "[" + ", ".join(pool.inventory_path for pool in self.pools) + "]"
