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
Reclamation of images selected for deletion.
Templates are converted back to virtual machines before they are destroyed.
"""
import logging
import threading
from typing import List, Optional

from ..errors import ConversionError, DescribeError, DestroyError, HostResolutionError
from ..INVENTORY.protocols import Actuator, InventoryProvider
from ..MODELS.cleanup_report import PerImageResult, ReclaimOutcome
from ..MODELS.managed_image import ManagedImage
from .pool_resolver import PoolResolver

logger = logging.getLogger(__name__)


class Reclaimer:
    """
    Converts and destroys images one at a time.

    A failure on one image is recorded in its result and the batch moves on;
    nothing is retried.
    """

    def __init__(self,
                 provider: InventoryProvider,
                 actuator: Actuator,
                 cancel: Optional[threading.Event] = None):
        """
        Initializes the reclaimer.

        :param provider: Inventory access used for status, host and pool lookups.
        :param actuator: Performs the conversion and destroy operations.
        :param cancel: When set, no further image is started.
        """
        self.provider = provider
        self.actuator = actuator
        self.cancel = cancel

    def reclaim(self, to_delete: List[ManagedImage]) -> List[PerImageResult]:
        """
        Reclaims every image in order.

        Resource pools are listed once, before the first image. A listing
        failure raises InventoryError and leaves every image untouched.

        :param to_delete: Images selected for deletion.
        :return: One result per visited image.
        """
        if not to_delete:
            return []

        resolver = PoolResolver(self.provider.list_resource_pools())
        results = []
        for image in to_delete:
            if self.cancel is not None and self.cancel.is_set():
                logger.warning("Cleanup cancelled, %d image(s) left untouched", len(to_delete) - len(results))
                break
            result = self._reclaim_one(image, resolver)
            if result.ok:
                logger.info("Deleted '%s'", image.name)
            else:
                logger.error("'%s': %s", image.name, result.reason)
            results.append(result)
        return results

    def _reclaim_one(self, image: ManagedImage, resolver: PoolResolver) -> PerImageResult:
        logger.info("Deleting virtual machine '%s'", image.name)
        ref = image.source_ref

        try:
            description = self.provider.describe(ref)
        except DescribeError as e:
            return PerImageResult.failed(
                image.name, ReclaimOutcome.INFO_RETRIEVAL_FAILED,
                f"unable to retrieve information, skipping deletion: {e.reason}",
            )

        if description.is_template:
            logger.info("'%s' is a template, trying to convert it to virtual machine", image.name)
            try:
                host = self.provider.host_of(ref)
            except HostResolutionError as e:
                return PerImageResult.failed(
                    image.name, ReclaimOutcome.CONVERSION_FAILED,
                    f"unable to resolve host: {e.reason}",
                )
            logger.info("Template '%s' is registered on host '%s'", image.name, host.name)

            pool = resolver.find(host.name)
            if pool is None:
                return PerImageResult.failed(
                    image.name, ReclaimOutcome.SKIPPED_NO_POOL,
                    f"cannot find relevant resource pool on host '{host.name}' for conversion, "
                    f"available pools: {resolver.describe()}",
                )
            logger.info("Using resource pool '%s' for conversion", pool.inventory_path)

            try:
                self.actuator.convert_to_vm(ref, pool, host)
            except ConversionError as e:
                return PerImageResult.failed(
                    image.name, ReclaimOutcome.CONVERSION_FAILED,
                    f"template conversion failed: {e.reason}",
                )

        try:
            self.actuator.destroy(ref)
        except DestroyError as e:
            return PerImageResult.failed(
                image.name, ReclaimOutcome.DELETION_FAILED,
                f"deletion failed: {e.reason}",
            )
        return PerImageResult.deleted(image.name)


def reclaim(to_delete: List[ManagedImage],
            provider: InventoryProvider,
            actuator: Actuator,
            cancel: Optional[threading.Event] = None) -> List[PerImageResult]:
    """
    Reclaims a batch of images. See Reclaimer.reclaim.
    """
    return Reclaimer(provider, actuator, cancel=cancel).reclaim(to_delete)
