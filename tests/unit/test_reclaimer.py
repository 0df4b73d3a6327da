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
Unit tests for the reclaimer and resource pool lookup.
"""
import threading
import pytest
from vcleanup.errors import InventoryError
from vcleanup.INVENTORY.memory_inventory import MemoryInventory
from vcleanup.MODELS.cleanup_report import ReclaimOutcome
from vcleanup.MODELS.inventory import ResourcePool
from vcleanup.POLICY.matcher import ImageMatcher
from vcleanup.RUNNERS.pool_resolver import PoolResolver
from vcleanup.RUNNERS.reclaimer import Reclaimer, reclaim

POOLS = ["/DC/host/esx01/Resources", "/DC/host/esx02/Resources"]


def images_of(inventory):
    return ImageMatcher(r"img-(\d+)").collect(inventory.list_candidates())


class TestPoolResolver:
    """Tests for PoolResolver."""

    @pytest.mark.parametrize("host, path", [
        ("esx01", "/DC/host/esx01/Resources"),
        ("esx01", "/DC/host/esx01/Resources/child"),
        ("10.0.0.1", "/DC/host/10.0.0.1/Resources"),
    ])
    def test_finds_pool_under_host(self, host, path):
        assert PoolResolver([ResourcePool(inventory_path=path)]).find(host).inventory_path == path

    @pytest.mark.parametrize("host, path", [
        ("esx01", "/DC/host/esx02/Resources"),
        ("esx01", "/DC/host/myesx01/Resources"),
        ("esx01", "/DC/host/esx01/Other"),
        ("10.0.0.1", "/DC/host/10x0x0x1/Resources"),
    ])
    def test_ignores_pools_of_other_hosts(self, host, path):
        """Test that other hosts, prefixes and regex characters in host names do not match."""
        assert PoolResolver([ResourcePool(inventory_path=path)]).find(host) is None

    def test_first_match_wins(self):
        pools = [
            ResourcePool(inventory_path="/DC/host/esx02/Resources"),
            ResourcePool(inventory_path="/DC/host/esx01/Resources/a"),
            ResourcePool(inventory_path="/DC/host/esx01/Resources"),
        ]
        assert PoolResolver(pools).find("esx01").inventory_path == "/DC/host/esx01/Resources/a"

    def test_no_match(self):
        resolver = PoolResolver([ResourcePool(inventory_path="/DC/host/esx02/Resources")])
        assert resolver.find("esx01") is None
        assert resolver.describe() == "[/DC/host/esx02/Resources]"


class TestReclaimer:
    """Tests for Reclaimer."""

    def test_plain_vm_destroyed(self):
        inventory = MemoryInventory(pools=POOLS)
        inventory.add("img-1")
        results = reclaim(images_of(inventory), inventory, inventory)
        assert [(r.name, r.outcome) for r in results] == [("img-1", ReclaimOutcome.DELETED)]
        assert inventory.calls == [("destroy", "img-1")]
        assert inventory.names == []

    def test_template_converted_in_first_matching_pool(self):
        """Test that a template is converted using the pool of its host, then destroyed."""
        inventory = MemoryInventory(pools=POOLS)
        inventory.add("img-1", template=True, host="esx01")
        results = reclaim(images_of(inventory), inventory, inventory)
        assert results[0].outcome == ReclaimOutcome.DELETED
        assert inventory.calls == [
            ("convert_to_vm", "img-1", "/DC/host/esx01/Resources", "esx01"),
            ("destroy", "img-1"),
        ]

    def test_template_without_pool_left_untouched(self):
        """Test that a template is skipped when no pool sits under its host."""
        inventory = MemoryInventory(pools=["/DC/host/esx02/Resources"])
        inventory.add("img-1", template=True, host="esx01")
        results = reclaim(images_of(inventory), inventory, inventory)
        assert results[0].outcome == ReclaimOutcome.SKIPPED_NO_POOL
        assert "esx01" in results[0].reason
        assert "/DC/host/esx02/Resources" in results[0].reason
        assert inventory.calls == []
        assert inventory.get("img-1").template is True

    def test_describe_failure_skips_destroy(self):
        inventory = MemoryInventory(pools=POOLS, failures={"describe": ["img-1"]})
        inventory.add("img-1")
        results = reclaim(images_of(inventory), inventory, inventory)
        assert results[0].outcome == ReclaimOutcome.INFO_RETRIEVAL_FAILED
        assert inventory.calls == []

    def test_host_failure_is_conversion_failure(self):
        inventory = MemoryInventory(pools=POOLS)
        inventory.add("img-1", template=True, host=None)
        results = reclaim(images_of(inventory), inventory, inventory)
        assert results[0].outcome == ReclaimOutcome.CONVERSION_FAILED
        assert "host" in results[0].reason
        assert inventory.calls == []

    def test_conversion_failure_skips_destroy(self):
        inventory = MemoryInventory(pools=POOLS, failures={"convert": ["img-1"]})
        inventory.add("img-1", template=True, host="esx01")
        results = reclaim(images_of(inventory), inventory, inventory)
        assert results[0].outcome == ReclaimOutcome.CONVERSION_FAILED
        assert [call[0] for call in inventory.calls] == ["convert_to_vm"]

    def test_destroy_failure(self):
        inventory = MemoryInventory(pools=POOLS, failures={"destroy": ["img-1"]})
        inventory.add("img-1")
        results = reclaim(images_of(inventory), inventory, inventory)
        assert results[0].outcome == ReclaimOutcome.DELETION_FAILED
        assert results[0].reason

    def test_failures_do_not_stop_the_batch(self):
        """Test that every image gets a result even when earlier ones fail."""
        inventory = MemoryInventory(pools=POOLS, failures={"describe": ["img-1"], "destroy": ["img-2"]})
        inventory.add("img-1")
        inventory.add("img-2")
        inventory.add("img-3", template=True, host="esx09")
        inventory.add("img-4", template=True, host="esx02")
        results = reclaim(images_of(inventory), inventory, inventory)
        assert [r.outcome for r in results] == [
            ReclaimOutcome.INFO_RETRIEVAL_FAILED,
            ReclaimOutcome.DELETION_FAILED,
            ReclaimOutcome.SKIPPED_NO_POOL,
            ReclaimOutcome.DELETED,
        ]
        assert inventory.names == ["img-1", "img-2", "img-3"]

    def test_pools_listed_once_per_batch(self):
        inventory = MemoryInventory(pools=POOLS)
        for n in range(3):
            inventory.add(f"img-{n}", template=True, host="esx01")
        reclaim(images_of(inventory), inventory, inventory)
        assert inventory.pool_listings == 1

    def test_empty_batch_touches_nothing(self):
        inventory = MemoryInventory(pools=POOLS)
        assert reclaim([], inventory, inventory) == []
        assert inventory.pool_listings == 0

    def test_pool_listing_failure_is_fatal(self):
        inventory = MemoryInventory(pools=POOLS)
        inventory.add("img-1")
        inventory.fail_pool_listing = True
        with pytest.raises(InventoryError):
            reclaim(images_of(inventory), inventory, inventory)
        assert inventory.calls == []

    def test_cancel_stops_before_next_image(self):
        inventory = MemoryInventory(pools=POOLS)
        inventory.add("img-1")
        inventory.add("img-2")
        cancel = threading.Event()
        original_destroy = inventory.destroy

        def destroy_then_cancel(ref):
            original_destroy(ref)
            cancel.set()

        inventory.destroy = destroy_then_cancel
        results = Reclaimer(inventory, inventory, cancel=cancel).reclaim(images_of(inventory))
        assert [r.name for r in results] == ["img-1"]
        assert inventory.names == ["img-2"]
