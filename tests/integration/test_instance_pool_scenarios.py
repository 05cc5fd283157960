"""End-to-end scenarios through the InstancePool facade."""

from unittest.mock import Mock

import pytest

from instance_pool import CanonicalStatus, InstancePool, UnrecoverableProvisioningError


@pytest.fixture
def pool(control_plane, fake_clock):
    return InstancePool(control_plane, Mock(), clock=fake_clock, sleep=fake_clock.sleep)


def _deletions(control_plane):
    return [name for name, _ in control_plane.calls if name.startswith("delete_")]


@pytest.mark.integration
class TestScenarios:
    """Allocation, lookup and deletion scenarios."""

    def test_all_instances_ready(self, pool, basic_template, control_plane):
        instances = pool.allocate(basic_template, ["a", "b"], 2)

        assert sorted(i.logical_id for i in instances) == ["a", "b"]
        assert _deletions(control_plane) == []

    def test_missing_network_below_threshold(self, pool, basic_template, control_plane, behaviour):
        behaviour.no_network.add("b")

        with pytest.raises(UnrecoverableProvisioningError):
            pool.allocate(basic_template, ["a", "b"], 2)

        assert pool.find(basic_template, ["a", "b"]) == []
        assert control_plane.live_instances() == []

    def test_volume_attachment_failure_above_threshold(self, pool, volume_template, behaviour):
        behaviour.stuck_volume_attach.add("b")

        instances = pool.allocate(volume_template, ["a", "b"], 1)

        assert [i.logical_id for i in instances] == ["a"]
        assert pool.get_instance_state(volume_template, ["a", "b"]) == {
            "a": CanonicalStatus.RUNNING,
            "b": CanonicalStatus.DELETED,
        }

    def test_delete_after_out_of_band_deletion(self, pool, volume_template, control_plane):
        pool.allocate(volume_template, ["a"], 1)
        control_plane.remove_out_of_band("a")

        pool.delete(volume_template, ["a"])

        assert control_plane.calls_to("delete_instance") == []


@pytest.mark.integration
class TestProperties:
    """Properties holding across allocate, find, state and delete."""

    def test_allocate_twice_keeps_one_set_of_resources(self, pool, volume_template, control_plane):
        pool.allocate(volume_template, ["a", "b"], 2)
        pool.allocate(volume_template, ["a", "b"], 2)

        for logical_id in ("a", "b"):
            assert len(control_plane.live_instances_for(logical_id)) == 1
            assert len(control_plane.live_volumes_for(logical_id)) == volume_template.volume_count

    def test_rollback_leaves_nothing_tagged(self, pool, basic_template, control_plane, behaviour):
        template = basic_template.model_copy(
            update={"volume_count": 1, "volume_size_gib": 5, "floating_ip_pool": "public"}
        )
        behaviour.fail_association.add("b")

        pool.allocate(template, ["a", "b"], 1)

        assert control_plane.live_instances_for("b") == []
        assert control_plane.live_volumes_for("b") == []
        live_instance_ids = {i.instance_id for i in control_plane.live_instances()}
        assert all(f.instance_id in live_instance_ids for f in control_plane.floating_ips.values())

    def test_threshold_failure_leaves_no_ready_instances(self, pool, basic_template, control_plane, behaviour):
        behaviour.no_network.update({"b", "c"})

        with pytest.raises(UnrecoverableProvisioningError):
            pool.allocate(basic_template, ["a", "b", "c"], 2)

        assert pool.find(basic_template, ["a", "b", "c"]) == []

    def test_find_is_a_subset(self, pool, basic_template):
        pool.allocate(basic_template, ["a", "b", "c"], 3)

        found = pool.find(basic_template, ["a", "x"])

        assert [i.logical_id for i in found] == ["a"]

    def test_state_has_an_entry_per_id(self, pool, basic_template):
        pool.allocate(basic_template, ["a"], 1)

        states = pool.get_instance_state(basic_template, ["a", "b", "c"])

        assert len(states) == 3
        assert states["b"] is CanonicalStatus.DELETED

    def test_delete_releases_everything(self, pool, volume_template, control_plane):
        template = volume_template.model_copy(update={"floating_ip_pool": "public"})
        pool.allocate(template, ["a", "b"], 2)

        pool.delete(template, ["a", "b"])

        assert control_plane.live_instances() == []
        assert control_plane.volumes == {}
        assert control_plane.floating_ips == {}

    def test_delete_surfaces_failed_requests(self, pool, basic_template, behaviour):
        pool.allocate(basic_template, ["a"], 1)
        behaviour.fail_delete.add("a")

        with pytest.raises(UnrecoverableProvisioningError):
            pool.delete(basic_template, ["a"])

    def test_delete_wraps_listing_failures(self, pool, basic_template, behaviour):
        pool.allocate(basic_template, ["a"], 1)
        behaviour.fail_list_instances = True

        with pytest.raises(UnrecoverableProvisioningError) as exc_info:
            pool.delete(basic_template, ["a"])

        assert len(exc_info.value.conditions.errors) == 1
        assert "list failed" in exc_info.value.conditions.errors[0].message
