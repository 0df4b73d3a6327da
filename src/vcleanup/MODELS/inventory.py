"""
Models describing the platform inventory as seen by the cleanup engine.
"""
from typing import Any
from pydantic import BaseModel, Field


class InventoryObject(BaseModel):
    """
    A virtual machine or template listed by an inventory provider.
    ``ref`` is owned by the provider and never inspected by the engine.
    """
    name: str
    ref: Any = Field(default=None, exclude=True, repr=False)


class ResourcePool(BaseModel):
    """
    A resource pool and its inventory path, e.g. ``/DC/host/esx01/Resources``.
    """
    inventory_path: str
    ref: Any = Field(default=None, exclude=True, repr=False)


class Host(BaseModel):
    """
    The host system an object is registered on.
    """
    name: str
    ref: Any = Field(default=None, exclude=True, repr=False)


class ImageDescription(BaseModel):
    """
    Live status of an inventory object.
    """
    is_template: bool = False
