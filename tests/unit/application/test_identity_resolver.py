"""Tests for logical ID resolution."""

import pytest

from instance_pool.domain.instance.value_objects import LOGICAL_ID_TAG
from tests.fixtures.fake_control_plane import FakeControlPlaneError


def _create(control_plane, logical_id):
    return control_plane.create_instance(
        f"instance-{logical_id}", "img", "small", None, None, [], None, {LOGICAL_ID_TAG: logical_id}
    )


@pytest.mark.unit
class TestIdentityResolver:
    """Test IdentityResolver against the in-memory control plane."""

    def test_empty_input_skips_listing(self, resolver, control_plane):
        assert resolver.resolve([]) == {}
        assert control_plane.calls_to("list_instances") == []

    def test_resolves_by_tag(self, resolver, control_plane):
        a = _create(control_plane, "a")
        b = _create(control_plane, "b")
        assert resolver.resolve(["a", "b"]) == {"a": a, "b": b}

    def test_missing_ids_are_absent(self, resolver, control_plane):
        a = _create(control_plane, "a")
        assert resolver.resolve(["a", "ghost"]) == {"a": a}

    def test_duplicates_ignored_and_single_listing(self, resolver, control_plane):
        _create(control_plane, "a")
        resolver.resolve(["a", "a", "a"])
        assert len(control_plane.calls_to("list_instances")) == 1

    def test_untagged_and_foreign_instances_ignored(self, resolver, control_plane):
        control_plane.add_foreign_instance()
        control_plane.add_foreign_instance({"Name": "a"})
        assert resolver.resolve(["a"]) == {}

    def test_deleted_instances_are_not_resolved(self, resolver, control_plane):
        a = _create(control_plane, "a")
        control_plane.instances[a].status = "DELETED"
        assert resolver.resolve(["a"]) == {}

    def test_resolve_records(self, resolver, control_plane):
        a = _create(control_plane, "a")
        records = resolver.resolve_records(["a"])
        assert records["a"].instance_id == a
        assert records["a"].tags[LOGICAL_ID_TAG] == "a"

    def test_resolve_all_returns_every_tagged_instance(self, resolver, control_plane):
        first = _create(control_plane, "a")
        second = _create(control_plane, "a")
        b = _create(control_plane, "b")
        control_plane.instances[b].status = "DELETED"

        assert resolver.resolve_all(["a", "b", "ghost"]) == {"a": [first, second]}
        assert resolver.resolve(["a"]) == {"a": first}
        assert resolver.resolve_all([]) == {}

    def test_listing_failure_propagates(self, resolver, control_plane, behaviour):
        behaviour.fail_list_instances = True
        with pytest.raises(FakeControlPlaneError):
            resolver.resolve(["a"])
