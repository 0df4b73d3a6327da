"""
Models for the cleanup run configuration.
"""
import re
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from ..errors import ConfigError, collect_problems

DEFAULT_KEEP_IMAGES = 2


class CleanupConfig(BaseModel):
    """
    Complete configuration for a cleanup run.
    Equivalent to a parsed vcleanup.yml file merged with command line options.
    """
    model_config = ConfigDict(extra="forbid")

    # Connection
    vcenter_server: Optional[str] = None
    vcenter_dc: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    insecure_connection: bool = True
    task_timeout: float = 300.0

    # Policy
    image_name_regex: Optional[str] = None
    keep_images: int = DEFAULT_KEEP_IMAGES
    dry_run: bool = False

    def with_overrides(self, **overrides) -> "CleanupConfig":
        """
        Returns a copy with every override that is not None applied.
        """
        update = {key: value for key, value in overrides.items() if value is not None}
        return self.model_copy(update=update)

    def policy_problems(self) -> List[str]:
        problems = []
        if not self.image_name_regex:
            problems.append("image_name_regex is required")
        else:
            try:
                re.compile(self.image_name_regex)
            except re.error as e:
                problems.append(f"image_name_regex '{self.image_name_regex}' is not a valid regular expression: {e}")
        if self.keep_images < 1:
            problems.append(f"keep_images must be a positive integer, got {self.keep_images}")
        return problems

    def connection_problems(self) -> List[str]:
        problems = []
        for field in ("vcenter_server", "vcenter_dc", "username", "password"):
            if not getattr(self, field):
                problems.append(f"{field} is required")
        if self.task_timeout <= 0:
            problems.append(f"task_timeout must be positive, got {self.task_timeout}")
        return problems

    def validate_policy(self) -> None:
        """
        Checks the retention policy fields.

        :raises ConfigError: listing every problem found.
        """
        problems = self.policy_problems()
        if problems:
            raise ConfigError(problems)

    def validate_all(self) -> None:
        """
        Checks the policy and the vCenter connection fields together.

        :raises ConfigError: listing every problem found.
        """
        problems = collect_problems(self.policy_problems(), self.connection_problems())
        if problems:
            raise ConfigError(problems)
