# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
In-memory inventory backend.
Used by the test-suite and for rehearsing a cleanup against an inventory snapshot.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from ..errors import (
    ConversionError,
    DescribeError,
    DestroyError,
    HostResolutionError,
    InventoryError,
)
from ..MODELS.inventory import Host, ImageDescription, InventoryObject, ResourcePool

FAILURE_OPERATIONS = ("describe", "host", "convert", "destroy")


@dataclass
class MemoryObject:
    """A virtual machine or template held by the in-memory inventory."""
    name: str
    template: bool = False
    host: Optional[str] = None
    destroyed: bool = False


class MemoryInventory:
    """
    Inventory provider and actuator backed by plain Python objects.

    References handed out are indexes into the internal object table.
    Every actuator call is appended to ``calls`` so tests can assert on it.
    """

    def __init__(self,
                 objects: Optional[List[MemoryObject]] = None,
                 pools: Optional[List[str]] = None,
                 failures: Optional[Dict[str, List[str]]] = None):
        """
        Args:
            objects: Initial virtual machines and templates.
            pools: Resource pool inventory paths, in listing order.
            failures: Operation name ('describe', 'host', 'convert', 'destroy')
                mapped to the object names for which it should fail.
        """
        self._objects: List[MemoryObject] = list(objects or [])
        self.pools: List[str] = list(pools or [])
        self.failures: Dict[str, Set[str]] = {op: set() for op in FAILURE_OPERATIONS}
        for op, names in (failures or {}).items():
            if op not in self.failures:
                raise ValueError(f"Unknown failure operation '{op}', expected one of {', '.join(FAILURE_OPERATIONS)}")
            self.failures[op].update(names)

        self.fail_listing = False
        self.fail_pool_listing = False
        self.calls: List[Tuple[Any, ...]] = []
        self.pool_listings = 0

    def add(self, name: str, template: bool = False, host: Optional[str] = None) -> MemoryObject:
        obj = MemoryObject(name=name, template=template, host=host)
        self._objects.append(obj)
        return obj

    def get(self, name: str) -> Optional[MemoryObject]:
        for obj in self._objects:
            if obj.name == name and not obj.destroyed:
                return obj
        return None

    @property
    def names(self) -> List[str]:
        """Names of all objects that still exist."""
        return [obj.name for obj in self._objects if not obj.destroyed]

    def _lookup(self, ref: Any) -> MemoryObject:
        if not isinstance(ref, int) or not 0 <= ref < len(self._objects):
            raise KeyError(f"Unknown reference {ref!r}")
        return self._objects[ref]

    def _should_fail(self, op: str, obj: MemoryObject) -> bool:
        return obj.name in self.failures[op]

    # Inventory provider

    def list_candidates(self) -> List[InventoryObject]:
        if self.fail_listing:
            raise InventoryError("Unable to retrieve virtual machines: inventory unavailable")
        return [
            InventoryObject(name=obj.name, ref=index)
            for index, obj in enumerate(self._objects)
            if not obj.destroyed
        ]

    def list_resource_pools(self) -> List[ResourcePool]:
        self.pool_listings += 1
        if self.fail_pool_listing:
            raise InventoryError("Unable to retrieve resource pools: inventory unavailable")
        return [ResourcePool(inventory_path=path, ref=path) for path in self.pools]

    def host_of(self, ref: Any) -> Host:
        obj = self._lookup(ref)
        if self._should_fail("host", obj) or not obj.host:
            raise HostResolutionError(obj.name, "object is not registered on any host")
        return Host(name=obj.host, ref=obj.host)

    def describe(self, ref: Any) -> ImageDescription:
        obj = self._lookup(ref)
        if self._should_fail("describe", obj) or obj.destroyed:
            raise DescribeError(obj.name, "object properties could not be retrieved")
        return ImageDescription(is_template=obj.template)

    # Actuator

    def convert_to_vm(self, ref: Any, pool: ResourcePool, host: Host) -> None:
        obj = self._lookup(ref)
        self.calls.append(("convert_to_vm", obj.name, pool.inventory_path, host.name))
        if self._should_fail("convert", obj):
            raise ConversionError(obj.name, "template could not be marked as virtual machine")
        obj.template = False

    def destroy(self, ref: Any) -> None:
        obj = self._lookup(ref)
        self.calls.append(("destroy", obj.name))
        if self._should_fail("destroy", obj):
            raise DestroyError(obj.name, "destroy task failed")
        if obj.template:
            raise DestroyError(obj.name, "templates cannot be destroyed, convert to a virtual machine first")
        obj.destroyed = True
