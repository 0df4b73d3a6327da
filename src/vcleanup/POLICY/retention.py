"""
Keep-count retention policy.
"""
import logging
from typing import List, Optional

from ..errors import InvalidPolicyError
from ..MODELS.managed_image import ManagedImage, RetentionDecision

logger = logging.getLogger(__name__)


def select(ranked: List[ManagedImage],
           keep_count: int,
           current_artifact_name: Optional[str] = None) -> RetentionDecision:
    """
    Splits a ranked image set into images to delete and images to keep.

    The ``keep_count`` highest versions are kept and everything below is
    selected for deletion. The image produced by the current build, if it ended
    up on the deletion side, is moved to the end of the kept list, so a run may
    keep more than ``keep_count`` images.

    Args:
        ranked: Images sorted ascending by version.
        keep_count: Number of newest images to keep, at least 1.
        current_artifact_name: Name of the image built by the calling pipeline.

    Returns:
        RetentionDecision.

    Raises:
        InvalidPolicyError: If keep_count is below 1.
    """
    if keep_count < 1:
        raise InvalidPolicyError(f"keep count must be a positive integer, got {keep_count}")

    extra = len(ranked) - keep_count
    if extra <= 0:
        return RetentionDecision(to_delete=[], to_keep=list(ranked))

    to_delete = list(ranked[:extra])
    to_keep = list(ranked[extra:])

    if current_artifact_name:
        for index, image in enumerate(to_delete):
            if image.name == current_artifact_name:
                logger.info("Keeping '%s': it was produced by the current build", image.name)
                to_keep.append(to_delete.pop(index))
                break

    return RetentionDecision(to_delete=to_delete, to_keep=to_keep)
