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
Orchestration of a cleanup run: match, rank, select and reclaim.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from ..INVENTORY.protocols import Actuator, InventoryProvider
from ..MODELS.cleanup_config import CleanupConfig
from ..MODELS.cleanup_report import CleanupReport
from ..MODELS.managed_image import ManagedImage
from ..POLICY.matcher import ImageMatcher
from ..POLICY.ranker import rank
from ..POLICY.retention import select
from ..RUNNERS.reclaimer import Reclaimer

logger = logging.getLogger(__name__)


def format_names(images: List[ManagedImage]) -> str:
    return "[" + ", ".join(image.name for image in images) + "]"


@dataclass
class RunContext:
    """
    Everything a single run talks to. Built once per run and passed down.
    """
    provider: InventoryProvider
    actuator: Actuator
    cancel: threading.Event = field(default_factory=threading.Event)


class CleanupRunner:
    """
    Runs the retention policy of one image family against a live inventory.
    """

    def __init__(self, config: CleanupConfig, context: RunContext):
        """
        Initializes the runner. The policy is validated here, before any
        inventory access.

        :param config: Run configuration.
        :param context: Inventory provider, actuator and cancellation signal.
        :raises ConfigError: If the policy settings are invalid.
        """
        config.validate_policy()
        self.config = config
        self.context = context
        self.matcher = ImageMatcher(config.image_name_regex)

    def run(self, current_artifact_id: Optional[str] = None) -> CleanupReport:
        """
        Executes the run.

        :param current_artifact_id: Name of the image produced by the calling build, if any.
        :return: The decision and, unless dry-running, the per-image results.
        :raises InventoryError: If the inventory or the resource pools cannot be listed.
        """
        config = self.config
        logger.info("Using image name regexp: %s", self.matcher.pattern)

        objects = self.context.provider.list_candidates()
        images = rank(self.matcher.collect(objects))
        logger.debug("%d of %d inventory objects match", len(images), len(objects))

        decision = select(images, config.keep_images, current_artifact_id)
        logger.info("Virtual machines selected for deletion: %s", format_names(decision.to_delete))
        logger.info("Virtual machines will be kept: %s", format_names(decision.to_keep))

        report = CleanupReport(
            pattern=self.matcher.pattern,
            dry_run=config.dry_run,
            current_artifact=current_artifact_id,
            to_delete=decision.delete_names,
            to_keep=decision.keep_names,
        )

        if config.dry_run:
            logger.info("Dry run, nothing deleted")
            return report

        reclaimer = Reclaimer(self.context.provider, self.context.actuator, cancel=self.context.cancel)
        report.results = reclaimer.reclaim(decision.to_delete)
        logger.info("Cleanup finished: %s", report.summary())
        return report
