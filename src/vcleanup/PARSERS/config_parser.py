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
Parser for vcleanup YAML configuration files.
"""
import os
from typing import Any, Dict, Iterator, List, Optional

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from ..errors import ConfigError
from ..MODELS.cleanup_config import CleanupConfig
from ..UTILS.string_interpolation import EnvironmentInterpolator


def validation_problems(error: ValidationError) -> List[str]:
    """
    Flattens a pydantic validation error into one problem per invalid field.
    """
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        problems.append(f"{location}: {item['msg']}")
    return problems


class ConfigParser:
    """
    Parser for vcleanup.yml files.

    Values may reference environment variables as ``${VAR}`` or
    ``${VAR:-default}``; variables from a ``.env`` file are available too,
    with the process environment taking precedence.
    """

    def __init__(self, context: Optional[Dict[str, str]] = None, env_file: Optional[str] = ".env"):
        """
        Initializes the parser with an optional interpolation context.

        :param context: Variables for interpolation. Defaults to the .env file merged with os.environ.
        :param env_file: Path of the .env file to load when no context is given.
        """
        if context is None:
            context = {}
            if env_file and os.path.exists(env_file):
                context.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
            context.update(os.environ)
        self.context = context

    def parse(self, config_path: str) -> CleanupConfig:
        """
        Parses a configuration file from a path.

        :param config_path: Path to the YAML file.
        :return: Parsed configuration, not yet validated for a run.
        :raises ConfigError: If the file cannot be read or contains invalid settings.
        """
        try:
            with open(config_path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"unable to read configuration file '{config_path}': {e.strerror or e}")
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> CleanupConfig:
        """
        Parses a configuration from YAML text.

        :param content: YAML content.
        :return: Parsed configuration.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"configuration is not valid YAML: {e}")
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("configuration must be a mapping of settings")

        missing = []
        for value in self._strings(data):
            for name in EnvironmentInterpolator.missing(value, self.context):
                if name not in missing:
                    missing.append(name)
        if missing:
            raise ConfigError([f"environment variable {name} is not set" for name in missing])

        return self.from_mapping(self._interpolate(data))

    def _strings(self, value: Any) -> Iterator[str]:
        if isinstance(value, str):
            yield value
        elif isinstance(value, dict):
            for item in value.values():
                yield from self._strings(item)
        elif isinstance(value, list):
            for item in value:
                yield from self._strings(item)

    def _interpolate(self, value: Any) -> Any:
        """
        Substitutes variables in loaded string values, so that the YAML syntax
        never sees them: a value stays a string whatever it contains.
        """
        if isinstance(value, str):
            return EnvironmentInterpolator.interpolate(value, self.context)
        if isinstance(value, dict):
            return {key: self._interpolate(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._interpolate(item) for item in value]
        return value

    @staticmethod
    def from_mapping(data: Dict[str, Any]) -> CleanupConfig:
        try:
            return CleanupConfig(**data)
        except ValidationError as e:
            raise ConfigError(validation_problems(e))
        except TypeError as e:
            raise ConfigError(f"invalid configuration: {e}")
