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
Image family matching.
Decides which inventory objects belong to an image family and extracts their version.

Examples, with the pattern ``img-(\\d+)``:
    - img-12 -> version 12
    - img-12-extra -> not a member (the match does not cover the whole name)
    - base-img-12 -> not a member
"""
import re
from typing import Iterable, List, Optional, Union

from ..errors import ConfigError
from ..MODELS.inventory import InventoryObject
from ..MODELS.managed_image import ManagedImage


def compile_pattern(pattern: Union[str, re.Pattern]) -> re.Pattern:
    """
    Compiles an image name pattern.

    :raises ConfigError: If the pattern is empty or not a valid regular expression.
    """
    if isinstance(pattern, re.Pattern):
        return pattern
    if not pattern:
        raise ConfigError("image_name_regex is required")
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"image_name_regex '{pattern}' is not a valid regular expression: {e}")


def parse_version(value: Optional[str]) -> int:
    """
    Converts a captured version string to an integer, 0 if it is not a plain number.
    """
    if value is None or not value.isdecimal():
        return 0
    return int(value)


def match(pattern: Union[str, re.Pattern], name: str) -> Optional[int]:
    """
    Matches a single name against an image name pattern.

    The leftmost match must span the whole name; a pattern that only matches
    part of it does not make the name a member.

    Args:
        pattern: Regular expression, as a string or compiled.
        name: Inventory object name.

    Returns:
        The extracted version, or None if the name is not a member of the family.
    """
    regex = compile_pattern(pattern)
    found = regex.search(name)
    if found is None or found.start() != 0 or found.end() != len(name):
        return None
    if not found.groups():
        return 0
    return parse_version(found.group(regex.groups))


class ImageMatcher:
    """
    Matches inventory listings against one image name pattern, compiled once.
    """

    def __init__(self, pattern: Union[str, re.Pattern]):
        self.regex = compile_pattern(pattern)

    @property
    def pattern(self) -> str:
        return self.regex.pattern

    def match(self, name: str) -> Optional[int]:
        return match(self.regex, name)

    def collect(self, objects: Iterable[InventoryObject]) -> List[ManagedImage]:
        """
        Builds managed images for every object whose name matches.
        Non-matching objects are dropped; scan order is preserved.

        :param objects: Inventory listing.
        :return: The family members found in the listing.
        """
        images = []
        for obj in objects:
            version = self.match(obj.name)
            if version is None:
                continue
            images.append(ManagedImage(name=obj.name, version=version, source_ref=obj.ref))
        return images
