"""
Models for the members of an image family and the retention decision over them.
"""
from typing import Any, List
from pydantic import BaseModel, Field


class ManagedImage(BaseModel):
    """
    An inventory object whose name fully matches the image name pattern.

    ``version`` is taken from the last capture group of the pattern and is 0
    when the group is missing or not a number.
    """
    name: str
    version: int = Field(default=0, ge=0)
    source_ref: Any = Field(default=None, exclude=True, repr=False)


class RetentionDecision(BaseModel):
    """
    Partition of a ranked image set into images to delete and images to keep.
    """
    to_delete: List[ManagedImage] = []
    to_keep: List[ManagedImage] = []

    @property
    def delete_names(self) -> List[str]:
        return [image.name for image in self.to_delete]

    @property
    def keep_names(self) -> List[str]:
        return [image.name for image in self.to_keep]
