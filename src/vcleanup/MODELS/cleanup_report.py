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
Models for the outcome of a cleanup run.
"""
from typing import List, Optional
from pydantic import BaseModel
from enum import Enum


class ReclaimOutcome(str, Enum):
    """
    What happened to a single image selected for deletion.
    """
    DELETED = "deleted"
    CONVERSION_FAILED = "conversion_failed"
    DELETION_FAILED = "deletion_failed"
    INFO_RETRIEVAL_FAILED = "info_retrieval_failed"
    SKIPPED_NO_POOL = "skipped_no_pool"


class PerImageResult(BaseModel):
    """
    Result of reclaiming one image. ``reason`` is set for every outcome
    except ``deleted``.
    """
    name: str
    outcome: ReclaimOutcome
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == ReclaimOutcome.DELETED

    @classmethod
    def deleted(cls, name: str) -> "PerImageResult":
        return cls(name=name, outcome=ReclaimOutcome.DELETED)

    @classmethod
    def failed(cls, name: str, outcome: ReclaimOutcome, reason: str) -> "PerImageResult":
        return cls(name=name, outcome=outcome, reason=reason)


class CleanupReport(BaseModel):
    """
    Everything a run decided and did, in the order it happened.
    ``results`` stays empty for dry runs.
    """
    pattern: str
    dry_run: bool = False
    current_artifact: Optional[str] = None
    to_delete: List[str] = []
    to_keep: List[str] = []
    results: List[PerImageResult] = []

    @property
    def failures(self) -> List[PerImageResult]:
        return [result for result in self.results if not result.ok]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def summary(self) -> str:
        """One line overview, e.g. ``2 selected, 3 kept, 1 deleted, 1 failed``."""
        deleted = len(self.results) - len(self.failures)
        line = f"{len(self.to_delete)} selected, {len(self.to_keep)} kept"
        if self.dry_run:
            return f"{line} (dry run)"
        return f"{line}, {deleted} deleted, {len(self.failures)} failed"
