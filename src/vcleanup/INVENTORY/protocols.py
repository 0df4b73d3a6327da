"""
Interfaces the cleanup engine uses to reach the virtualization platform.

Both are kept narrow so the engine can run against vCenter or against an
in-memory inventory in tests and rehearsal runs.
"""
from typing import Any, List, Protocol, runtime_checkable

from ..MODELS.inventory import Host, ImageDescription, InventoryObject, ResourcePool


@runtime_checkable
class InventoryProvider(Protocol):
    """
    Read access to the platform inventory.
    """

    def list_candidates(self) -> List[InventoryObject]:
        """All virtual machines and templates, unfiltered. Raises InventoryError."""

    def list_resource_pools(self) -> List[ResourcePool]:
        """All resource pools with their inventory paths. Raises InventoryError."""

    def host_of(self, ref: Any) -> Host:
        """Host the object is registered on. Raises HostResolutionError."""

    def describe(self, ref: Any) -> ImageDescription:
        """Current template/VM status of the object. Raises DescribeError."""


@runtime_checkable
class Actuator(Protocol):
    """
    Destructive lifecycle operations.
    """

    def convert_to_vm(self, ref: Any, pool: ResourcePool, host: Host) -> None:
        """Marks a template as a virtual machine in ``pool``. Raises ConversionError."""

    def destroy(self, ref: Any) -> None:
        """Destroys the object. Raises DestroyError."""
