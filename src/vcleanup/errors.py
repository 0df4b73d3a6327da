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
Exceptions raised by the cleanup engine and its inventory backends.

Run-fatal errors (configuration, connectivity, listing) propagate to the
caller. Per-image errors are raised by the inventory backends and turned into
report entries by the reclaimer.
"""
from typing import Iterable, List, Optional


class CleanupError(Exception):
    """Base class for all vcleanup errors."""


class ConfigError(CleanupError):
    """
    Invalid or missing configuration. Raised before any platform access.

    Several problems can be reported at once; they are kept in ``problems``.
    """

    def __init__(self, problems, message: Optional[str] = None):
        if isinstance(problems, str):
            problems = [problems]
        self.problems: List[str] = list(problems)
        super().__init__(message or "; ".join(self.problems))


class InvalidPolicyError(ConfigError):
    """The retention policy itself is unusable (e.g. keep count below 1)."""


class ConnectivityError(CleanupError):
    """The platform session could not be established."""


class InventoryError(CleanupError):
    """Listing virtual machines or resource pools failed."""


class ImageOperationError(CleanupError):
    """Base class for failures scoped to a single inventory object."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"{name}: {reason}")


class DescribeError(ImageOperationError):
    """Template/VM status of an object could not be retrieved."""


class HostResolutionError(ImageOperationError):
    """The host an object is registered on could not be resolved."""


class ConversionError(ImageOperationError):
    """A template could not be marked as a virtual machine."""


class DestroyError(ImageOperationError):
    """An object could not be destroyed."""


def collect_problems(*groups: Iterable[str]) -> List[str]:
    """Flatten several problem lists into one, dropping empty entries."""
    return [problem for group in groups for problem in group if problem]
