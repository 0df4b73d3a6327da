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
vCenter inventory backend.
Implements the inventory provider and actuator interfaces on top of pyVmomi.
"""

import http.client
import logging
import threading
from typing import Any, List, Optional

from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vim, vmodl
from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, stop_any, wait_fixed

from ..errors import (
    ConnectivityError,
    ConversionError,
    DescribeError,
    DestroyError,
    HostResolutionError,
    InventoryError,
)
from ..MODELS.cleanup_config import CleanupConfig
from ..MODELS.inventory import Host, ImageDescription, InventoryObject, ResourcePool

logger = logging.getLogger(__name__)

TASK_PENDING_STATES = ("queued", "running")

# Faults raised by vCenter and failures of the connection carrying the call.
API_ERRORS = (vmodl.MethodFault, OSError, http.client.HTTPException)


def fault_message(error: Exception) -> str:
    """Human readable text of a vSphere fault or any other exception."""
    msg = getattr(error, "msg", None)
    return msg or str(error) or error.__class__.__name__


def inventory_path(entity: Any) -> str:
    """
    Builds the inventory path of a managed entity from its parents,
    e.g. ``/DC/host/esx01/Resources``. The root folder is not part of the path.
    """
    names = []
    while entity is not None and entity.parent is not None:
        names.append(entity.name)
        entity = entity.parent
    return "/" + "/".join(reversed(names))


def display_name(ref: Any) -> str:
    try:
        return ref.name
    except API_ERRORS:
        return str(ref)


class VsphereInventory:
    """
    Inventory provider and actuator for one datacenter of a vCenter session.
    """

    def __init__(self,
                 content: Any,
                 datacenter: Any,
                 task_timeout: float = 300.0,
                 poll_interval: float = 1.0,
                 cancel: Optional[threading.Event] = None):
        """
        Args:
            content: The service content of a connected service instance.
            datacenter: The vim.Datacenter to operate on.
            task_timeout: Seconds to wait for a destroy task to finish.
            poll_interval: Seconds between task state polls.
            cancel: Event that aborts waiting on a running task when set.
        """
        self.content = content
        self.datacenter = datacenter
        self.task_timeout = task_timeout
        self.poll_interval = poll_interval
        self.cancel = cancel

    def _list(self, container: Any, vim_type: Any) -> List[Any]:
        view = self.content.viewManager.CreateContainerView(container, [vim_type], True)
        try:
            return list(view.view)
        finally:
            view.Destroy()

    def list_candidates(self) -> List[InventoryObject]:
        try:
            machines = self._list(self.datacenter.vmFolder, vim.VirtualMachine)
            return [InventoryObject(name=vm.name, ref=vm) for vm in machines]
        except API_ERRORS as e:
            raise InventoryError(f"Unable to retrieve virtual machines: {fault_message(e)}") from e

    def list_resource_pools(self) -> List[ResourcePool]:
        try:
            pools = self._list(self.datacenter.hostFolder, vim.ResourcePool)
            return [ResourcePool(inventory_path=inventory_path(pool), ref=pool) for pool in pools]
        except API_ERRORS as e:
            raise InventoryError(f"Unable to retrieve resource pools: {fault_message(e)}") from e

    def host_of(self, ref: Any) -> Host:
        try:
            host = ref.runtime.host
            if host is None:
                raise HostResolutionError(display_name(ref), "object is not registered on any host")
            return Host(name=host.name, ref=host)
        except API_ERRORS as e:
            raise HostResolutionError(display_name(ref), fault_message(e)) from e

    def describe(self, ref: Any) -> ImageDescription:
        try:
            config = ref.config
            if config is None:
                raise DescribeError(display_name(ref), "virtual machine configuration is not available")
            return ImageDescription(is_template=bool(config.template))
        except API_ERRORS as e:
            raise DescribeError(display_name(ref), fault_message(e)) from e

    def convert_to_vm(self, ref: Any, pool: ResourcePool, host: Host) -> None:
        logger.debug("MarkAsVirtualMachine(%s, pool=%s, host=%s)", display_name(ref), pool.inventory_path, host.name)
        try:
            ref.MarkAsVirtualMachine(pool=pool.ref, host=host.ref)
        except API_ERRORS as e:
            raise ConversionError(display_name(ref), fault_message(e)) from e

    def destroy(self, ref: Any) -> None:
        name = display_name(ref)
        logger.debug("Destroy_Task(%s)", name)
        try:
            task = ref.Destroy_Task()
            self._wait_for_task(task, name)
        except API_ERRORS as e:
            raise DestroyError(name, fault_message(e)) from e

    def _cancelled(self, retry_state) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def _wait_for_task(self, task: Any, name: str) -> None:
        """
        Polls a task until it leaves the queued/running states.

        :raises DestroyError: If the task fails, times out or the run is cancelled.
        """
        retrying = Retrying(
            retry=retry_if_result(lambda state: state in TASK_PENDING_STATES),
            wait=wait_fixed(self.poll_interval),
            stop=stop_any(stop_after_delay(self.task_timeout), self._cancelled),
        )
        try:
            state = retrying(lambda: task.info.state)
        except RetryError as e:
            if self.cancel is not None and self.cancel.is_set():
                raise DestroyError(name, "cancelled while waiting for the destroy task") from e
            raise DestroyError(name, f"destroy task did not finish within {self.task_timeout}s") from e

        if state != "success":
            error = task.info.error
            raise DestroyError(name, fault_message(error) if error else f"destroy task ended in state '{state}'")


class VsphereSession:
    """
    Context manager for an authenticated vCenter session bound to one datacenter.

    Example:
        with VsphereSession(config) as inventory:
            inventory.list_candidates()
    """

    def __init__(self, config: CleanupConfig, cancel: Optional[threading.Event] = None):
        self.config = config
        self.cancel = cancel
        self.service_instance = None

    def __enter__(self) -> VsphereInventory:
        config = self.config
        logger.info("Connecting to vCenter '%s' as '%s'", config.vcenter_server, config.username)
        try:
            self.service_instance = SmartConnect(
                host=config.vcenter_server,
                user=config.username,
                pwd=config.password,
                disableSslCertValidation=config.insecure_connection,
            )
        except API_ERRORS as e:
            raise ConnectivityError(
                f"unable to create vsphere client with: vcenter_server='{config.vcenter_server}', "
                f"username='{config.username}', insecure_connection='{config.insecure_connection}': "
                f"{fault_message(e)}"
            ) from e

        try:
            content = self.service_instance.RetrieveContent()
            datacenter = self._find_datacenter(content)
        except BaseException:
            self.close()
            raise

        return VsphereInventory(content, datacenter, task_timeout=config.task_timeout, cancel=self.cancel)

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self.service_instance is None:
            return
        try:
            Disconnect(self.service_instance)
        except API_ERRORS as e:
            logger.warning("Logout from '%s' failed: %s", self.config.vcenter_server, fault_message(e))
        finally:
            self.service_instance = None

    def _find_datacenter(self, content: Any) -> Any:
        """
        Returns the configured datacenter, or the only one if none is configured.
        """
        wanted = self.config.vcenter_dc
        try:
            datacenters = [e for e in content.rootFolder.childEntity if isinstance(e, vim.Datacenter)]
        except API_ERRORS as e:
            raise ConnectivityError(f"unable to list datacenters: {fault_message(e)}") from e

        if wanted:
            for datacenter in datacenters:
                if datacenter.name == wanted:
                    return datacenter
            raise ConnectivityError(f"unable to find vsphere datacenter '{wanted}'")
        if len(datacenters) == 1:
            return datacenters[0]
        raise ConnectivityError(f"vcenter_dc is required, {len(datacenters)} datacenters found")
