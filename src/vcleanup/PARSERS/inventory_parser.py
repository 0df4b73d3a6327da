"""
Parser for YAML inventory snapshots, used for offline rehearsal runs.

Example snapshot::

    objects:
      - name: ubuntu-22
        template: true
        host: esx01
      - ubuntu-23
    pools:
      - /DC/host/esx01/Resources
    fail:
      destroy: [ubuntu-22]
"""
from typing import Any, List

import yaml

from ..errors import ConfigError
from ..INVENTORY.memory_inventory import FAILURE_OPERATIONS, MemoryInventory, MemoryObject


class InventoryParser:
    """
    Builds a MemoryInventory from a snapshot file.
    """

    def parse(self, snapshot_path: str) -> MemoryInventory:
        try:
            with open(snapshot_path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"unable to read inventory snapshot '{snapshot_path}': {e.strerror or e}")
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> MemoryInventory:
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"inventory snapshot is not valid YAML: {e}")
        if not isinstance(data, dict):
            raise ConfigError("inventory snapshot must be a mapping")

        objects = [self._parse_object(entry) for entry in data.get('objects') or []]
        pools = [str(path) for path in data.get('pools') or []]

        failures = data.get('fail') or {}
        if not isinstance(failures, dict):
            raise ConfigError("inventory snapshot 'fail' must map operations to object names")
        unknown = [op for op in failures if op not in FAILURE_OPERATIONS]
        if unknown:
            raise ConfigError(
                f"unknown failure operation(s) {', '.join(map(str, unknown))}, expected {', '.join(FAILURE_OPERATIONS)}"
            )

        return MemoryInventory(
            objects=objects,
            pools=pools,
            failures={op: self._to_list(names) for op, names in failures.items()},
        )

    def _parse_object(self, entry: Any) -> MemoryObject:
        """
        Accepts either a bare name or a mapping with name/template/host.
        """
        if isinstance(entry, str):
            return MemoryObject(name=entry)
        if isinstance(entry, dict) and entry.get('name'):
            return MemoryObject(
                name=str(entry['name']),
                template=bool(entry.get('template', False)),
                host=entry.get('host'),
            )
        raise ConfigError(f"invalid inventory object {entry!r}, a name is required")

    def _to_list(self, val: Any) -> List[str]:
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return [str(v) for v in val]
