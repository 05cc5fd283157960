"""Tests for database instance allocation and the database pool."""

from unittest.mock import Mock

import pytest

from instance_pool.application.database_pool import DatabasePool
from instance_pool.config.schemas import PollingConfig
from instance_pool.domain.base.exceptions import UnrecoverableProvisioningError
from instance_pool.domain.instance.value_objects import LOGICAL_ID_TAG, CanonicalStatus
from instance_pool.domain.template.database_template import DatabaseTemplate
from tests.fixtures.fake_control_plane import FakeDatabaseControlPlane


@pytest.fixture
def database_plane(fake_clock, behaviour):
    return FakeDatabaseControlPlane(clock=fake_clock, behaviour=behaviour)


@pytest.fixture
def database_pool(database_plane, fake_clock):
    return DatabasePool(database_plane, Mock(), PollingConfig(), fake_clock, fake_clock.sleep)


@pytest.fixture
def database_template():
    return DatabaseTemplate(
        name="db", type="MySQL", flavorId="db.t3.micro", volumeSize=20, masterPassword="s3cret-pass"
    )


def _lose_after_available(monkeypatch, poller, database_plane, logical_id):
    """Remove ``logical_id`` out of band once the availability wait is over."""
    poll_batch_until = poller.poll_batch_until

    def wait_then_lose(*args, **kwargs):
        available = poll_batch_until(*args, **kwargs)
        database_plane.remove_out_of_band(logical_id)
        return available

    monkeypatch.setattr(poller, "poll_batch_until", wait_then_lose)


@pytest.mark.unit
class TestDatabaseAllocation:
    """Test database allocation against the in-memory database service."""

    def test_creates_tagged_database_instances(self, database_pool, database_template, database_plane):
        instances = database_pool.allocate(database_template, ["a", "b"], 2)

        assert [i.logical_id for i in instances] == ["a", "b"]
        assert database_plane.calls_to("create_database_instance") == ["a", "b"]
        created = database_plane.live_instances()
        assert [i.name for i in created] == ["db-a", "db-b"]
        assert {i.image for i in created} == {"mysql"}
        assert {i.flavor for i in created} == {"db.t3.micro"}
        assert all(i.private_ip_address for i in instances)
        assert database_plane.credentials[instances[0].instance_id] == ("admin", "s3cret-pass")

    def test_missing_password_is_left_to_the_provider(self, database_pool, database_plane):
        template = DatabaseTemplate(name="db", flavorId="db.t3.micro", masterPassword="")

        instances = database_pool.allocate(template, ["a"], 1)

        assert database_plane.credentials[instances[0].instance_id] == ("admin", None)

    def test_arguments_checked_before_anything_is_created(self, database_pool, database_template, database_plane):
        with pytest.raises(UnrecoverableProvisioningError):
            database_pool.allocate(database_template, [], 0)
        with pytest.raises(UnrecoverableProvisioningError):
            database_pool.allocate(database_template, ["a"], 2)
        assert database_plane.calls == []

    def test_leftovers_are_released_first(self, database_pool, database_template, database_plane):
        old = database_plane.create_database_instance(
            "db-a", "mysql", "db.t3.micro", 20, "admin", None, {LOGICAL_ID_TAG: "a"}
        )

        instances = database_pool.allocate(database_template, ["a"], 1)

        assert old not in database_plane.instances
        assert [i.instance_id for i in database_plane.live_instances_for("a")] == [instances[0].instance_id]

    def test_unavailable_instance_rolled_back_after_shared_deadline(
        self, database_pool, database_template, database_plane, behaviour, fake_clock
    ):
        behaviour.no_network.add("b")
        start = fake_clock.now

        instances = database_pool.allocate(database_template, ["a", "b"], 1)

        assert [i.logical_id for i in instances] == ["a"]
        assert database_plane.live_instances_for("b") == []
        assert 600 <= fake_clock.now - start < 700

    def test_failed_instance_is_abandoned_early(
        self, database_pool, database_template, database_plane, behaviour, fake_clock
    ):
        behaviour.error_on_boot.add("b")
        start = fake_clock.now

        instances = database_pool.allocate(database_template, ["a", "b"], 1)

        assert [i.logical_id for i in instances] == ["a"]
        assert database_plane.live_instances_for("b") == []
        assert fake_clock.now - start < 600

    def test_below_threshold_rolls_back_everything(
        self, database_pool, database_template, database_plane, behaviour
    ):
        behaviour.error_on_boot.add("b")

        with pytest.raises(UnrecoverableProvisioningError) as exc_info:
            database_pool.allocate(database_template, ["a", "b"], 2)

        assert database_plane.live_instances() == []
        assert "1 database instance(s)" in exc_info.value.message
        assert [c.key for c in exc_info.value.conditions.warnings] == ["b"]

    def test_create_failure_is_surfaced_even_when_threshold_met(
        self, database_pool, database_template, database_plane, behaviour
    ):
        behaviour.fail_create.add("b")

        with pytest.raises(UnrecoverableProvisioningError) as exc_info:
            database_pool.allocate(database_template, ["a", "b"], 1)

        assert [c.key for c in exc_info.value.conditions.errors] == ["b"]
        assert len(database_plane.live_instances_for("a")) == 1

    def test_deadline_is_configurable(self, database_plane, database_template, behaviour, fake_clock):
        config = PollingConfig(database_ready_timeout_seconds=30)
        pool = DatabasePool(database_plane, Mock(), config, fake_clock, fake_clock.sleep)
        behaviour.no_network.add("a")
        start = fake_clock.now

        with pytest.raises(UnrecoverableProvisioningError):
            pool.allocate(database_template, ["a"], 1)

        assert fake_clock.now - start < 600

    def test_lost_instance_below_threshold_rolls_back_everything(
        self, database_pool, database_template, database_plane, monkeypatch
    ):
        _lose_after_available(monkeypatch, database_pool.poller, database_plane, "b")

        with pytest.raises(UnrecoverableProvisioningError) as exc_info:
            database_pool.allocate(database_template, ["a", "b"], 2)

        assert database_plane.live_instances() == []
        assert [c.key for c in exc_info.value.conditions.warnings] == ["b"]

    def test_duplicate_leftovers_are_all_released(self, database_pool, database_template, database_plane):
        for _ in range(2):
            database_plane.create_database_instance(
                "db-a", "mysql", "db.t3.micro", 20, "admin", None, {LOGICAL_ID_TAG: "a"}
            )

        instances = database_pool.allocate(database_template, ["a"], 1)

        assert [i.instance_id for i in database_plane.live_instances_for("a")] == [instances[0].instance_id]


@pytest.mark.unit
class TestDatabasePool:
    """Test deletion and lookup of database instances."""

    def test_delete_and_lookup(self, database_pool, database_template, database_plane):
        database_pool.allocate(database_template, ["a", "b"], 2)

        assert [i.logical_id for i in database_pool.find(database_template, ["b", "ghost"])] == ["b"]
        assert database_pool.get_instance_state(database_template, ["a", "ghost"]) == {
            "a": CanonicalStatus.RUNNING,
            "ghost": CanonicalStatus.DELETED,
        }

        database_pool.delete(database_template, ["a"])

        assert database_plane.live_instances_for("a") == []
        assert len(database_plane.live_instances_for("b")) == 1

    def test_delete_unknown_ids_is_a_no_op(self, database_pool, database_template, database_plane):
        database_pool.delete(database_template, ["ghost"])
        assert database_plane.calls_to("delete_instance") == []

    def test_delete_failure_raises(self, database_pool, database_template, database_plane, behaviour):
        database_pool.allocate(database_template, ["a"], 1)
        behaviour.fail_delete.add("a")

        with pytest.raises(UnrecoverableProvisioningError) as exc_info:
            database_pool.delete(database_template, ["a"])

        assert [c.key for c in exc_info.value.conditions.errors] == ["a"]

    def test_listing_failure_raises(self, database_pool, database_template, behaviour):
        behaviour.fail_list_instances = True

        with pytest.raises(UnrecoverableProvisioningError) as exc_info:
            database_pool.delete(database_template, ["a"])

        assert "list failed" in exc_info.value.conditions.errors[0].message
