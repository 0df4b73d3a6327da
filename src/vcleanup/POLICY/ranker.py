"""
Ordering of image family members by version.
"""
from typing import Iterable, List

from ..MODELS.managed_image import ManagedImage


def rank(images: Iterable[ManagedImage]) -> List[ManagedImage]:
    """
    Sorts images ascending by version.

    The sort is stable: images sharing a version keep their scan order. Two
    builds with the same version are a naming problem of the caller and are
    deliberately not tie-broken here.
    """
    return sorted(images, key=lambda image: image.version)
