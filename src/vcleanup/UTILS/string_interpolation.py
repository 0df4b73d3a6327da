"""
Utilities for interpolating environment variables into configuration text.
"""
import re
from typing import Dict, List

# ${VAR} or ${VAR:-default}
PLACEHOLDER = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}')


class EnvironmentInterpolator:
    """
    Replaces ``${VAR}`` and ``${VAR:-default}`` placeholders with values from a context.
    ``$${VAR}`` is left alone and unescaped to ``${VAR}``.
    """

    @staticmethod
    def missing(template: str, context: Dict[str, str]) -> List[str]:
        """
        Names of variables referenced without a default that are not set in the context.
        """
        names = []
        for found in PLACEHOLDER.finditer(template):
            if template[max(found.start() - 1, 0):found.start()] == "$":
                continue
            name, default = found.group(1), found.group(2)
            if default is None and name not in context and name not in names:
                names.append(name)
        return names

    @staticmethod
    def interpolate(template: str, context: Dict[str, str]) -> str:
        """
        :param template: Text containing placeholders.
        :param context: Variables available for substitution.
        :return: The interpolated text.
        :raises KeyError: If a variable without default is not set.
        """
        def replace(found):
            start = found.start()
            if start > 0 and found.string[start - 1] == "$":
                return found.group(0)
            name, default = found.group(1), found.group(2)
            value = context.get(name)
            if value:
                return value
            if default is not None:
                return default
            if value is None:
                raise KeyError(f"Variable {name} not found in context")
            return value

        return PLACEHOLDER.sub(replace, template).replace("$${", "${")
