import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from socialgraph.core.errors import AlreadyMember, Forbidden, Full, InvalidArgument, NotFound
from socialgraph.database.base import COLLECTIVES
from socialgraph.modules.collectives.schemas import CollectiveKind, MemberRole
from socialgraph.modules.notifications.schemas import NotificationType


def assert_creator_is_admin(store, collective):
    membership = store.find_membership(collective.id, collective.creator_id)
    assert membership is not None
    assert membership.role == MemberRole.ADMIN


def test_create_adds_creator_as_admin(store, manager):
    collective = manager.create_collective("alice", "Weekend hikes", capacity=10, kind=CollectiveKind.COMMUNITY)
    assert collective.is_active
    assert collective.kind == CollectiveKind.COMMUNITY
    assert store.count_memberships(collective.id) == 1
    assert_creator_is_admin(store, collective)


def test_create_is_atomic(store, manager, monkeypatch):
    def boom(membership):
        raise RuntimeError("storage down")

    monkeypatch.setattr(store, "insert_membership", boom)
    with pytest.raises(RuntimeError):
        manager.create_collective("alice", "Doomed")
    assert store._count(COLLECTIVES, {}) == 0


def test_create_rejects_non_positive_capacity(manager):
    with pytest.raises(InvalidArgument):
        manager.create_collective("alice", "Nobody", capacity=0)


def test_join_notifies_creator(store, manager):
    collective = manager.create_collective("alice", "Chess")
    membership = manager.join(collective.id, "bob")
    assert membership.role == MemberRole.MEMBER

    [notification] = store.list_notifications("alice")
    assert notification.type == NotificationType.MEMBER_JOINED
    assert notification.source_user_id == "bob"
    assert notification.payload.collective_id == collective.id
    assert notification.payload.collective_name == "Chess"
    assert_creator_is_admin(store, collective)


def test_join_twice_is_rejected(manager):
    collective = manager.create_collective("alice", "Chess")
    manager.join(collective.id, "bob")
    with pytest.raises(AlreadyMember):
        manager.join(collective.id, "bob")
    with pytest.raises(AlreadyMember):
        manager.join(collective.id, "alice")


def test_join_missing_or_inactive_collective(manager):
    with pytest.raises(NotFound):
        manager.join("missing", "bob")
    collective = manager.create_collective("alice", "Closed")
    manager.deactivate(collective.id, "alice")
    with pytest.raises(NotFound):
        manager.join(collective.id, "bob")


def test_capacity_counts_the_creator(store, manager):
    collective = manager.create_collective("alice", "Duo", capacity=1)
    with pytest.raises(Full):
        manager.join(collective.id, "bob")
    assert store.count_memberships(collective.id) == 1
    assert store.list_notifications("alice") == []


def test_concurrent_joins_never_exceed_capacity(store, manager):
    capacity = 5
    collective = manager.create_collective("alice", "Limited", capacity=capacity)

    def attempt(i):
        try:
            manager.join(collective.id, f"user-{i}")
            return "joined"
        except Full:
            return "full"

    with ThreadPoolExecutor(max_workers=capacity + 5) as pool:
        outcomes = list(pool.map(attempt, range(capacity + 5)))

    assert outcomes.count("joined") == capacity - 1
    assert outcomes.count("full") == 6
    assert store.count_memberships(collective.id) == capacity
    assert_creator_is_admin(store, collective)


def test_creator_cannot_leave(store, manager):
    collective = manager.create_collective("alice", "Mine")
    with pytest.raises(Forbidden):
        manager.leave(collective.id, "alice")
    assert_creator_is_admin(store, collective)


def test_member_leaves(store, manager):
    collective = manager.create_collective("alice", "Chess")
    manager.join(collective.id, "bob")
    manager.leave(collective.id, "bob")
    assert store.find_membership(collective.id, "bob") is None
    with pytest.raises(NotFound):
        manager.leave(collective.id, "bob")


def test_admin_updates_and_capacity_floor(manager):
    collective = manager.create_collective("alice", "Chess")
    manager.join(collective.id, "bob")
    manager.join(collective.id, "carol")

    updated = manager.update_collective(collective.id, "alice", {"name": "Chess club", "is_public": True})
    assert updated.name == "Chess club"
    assert updated.is_public

    with pytest.raises(Full):
        manager.update_collective(collective.id, "alice", {"capacity": 2})
    with pytest.raises(Forbidden):
        manager.update_collective(collective.id, "bob", {"name": "Hijacked"})


def test_remove_member_and_creator_protection(store, manager):
    collective = manager.create_collective("alice", "Chess")
    manager.join(collective.id, "bob")
    manager.join(collective.id, "carol")
    manager.set_role(collective.id, "alice", "bob", MemberRole.ADMIN)

    manager.remove_member(collective.id, "bob", "carol")
    assert store.find_membership(collective.id, "carol") is None

    with pytest.raises(Forbidden):
        manager.remove_member(collective.id, "bob", "alice")
    with pytest.raises(Forbidden):
        manager.set_role(collective.id, "bob", "alice", MemberRole.MEMBER)
    with pytest.raises(NotFound):
        manager.remove_member(collective.id, "alice", "stranger")
    assert_creator_is_admin(store, collective)


def test_members_listing_and_visibility(manager):
    collective = manager.create_collective("alice", "Secret")
    manager.join(collective.id, "bob")
    assert [m.user_id for m in manager.list_members(collective.id, "bob")] == ["alice", "bob"]
    with pytest.raises(Forbidden):
        manager.list_members(collective.id, "stranger")

    manager.deactivate(collective.id, "alice")
    assert not manager.get_collective(collective.id, "alice").is_active
    with pytest.raises(NotFound):
        manager.get_collective(collective.id, "bob")
    assert manager.list_for_user("bob") == []


def test_update_can_clear_capacity_and_description(store, manager):
    collective = manager.create_collective("alice", "Chess", capacity=2, description="Tuesdays")
    manager.join(collective.id, "bob")
    with pytest.raises(Full):
        manager.join(collective.id, "carol")

    updated = manager.update_collective(collective.id, "alice", {"capacity": None, "description": None})
    assert updated.capacity is None
    assert updated.description is None
    assert updated.name == "Chess"

    manager.join(collective.id, "carol")
    assert store.count_memberships(collective.id) == 3


def test_update_ignores_null_for_required_fields(manager):
    collective = manager.create_collective("alice", "Chess")
    updated = manager.update_collective(collective.id, "alice", {"name": None, "is_public": None})
    assert updated.name == "Chess"
    assert updated.is_public is False


def test_update_rejects_non_positive_capacity(manager):
    collective = manager.create_collective("alice", "Chess")
    with pytest.raises(InvalidArgument):
        manager.update_collective(collective.id, "alice", {"capacity": 0})


def test_deactivate_waits_for_collective_lock(store, manager, locks):
    collective = manager.create_collective("alice", "Chess")
    with ThreadPoolExecutor(max_workers=1) as pool:
        with locks.hold(manager.lock_key(collective.id)):
            future = pool.submit(manager.deactivate, collective.id, "alice")
            time.sleep(0.05)
            assert not future.done()
            assert store.get_collective(collective.id).is_active
        assert future.result(timeout=5).is_active is False


def test_admit_is_idempotent_and_respects_capacity(store, manager):
    collective = manager.create_collective("alice", "Hike crew", capacity=2)
    first = manager.admit(collective.id, "bob")
    assert first.role == MemberRole.MEMBER
    assert manager.admit(collective.id, "bob").id == first.id
    assert manager.admit(collective.id, "alice").role == MemberRole.ADMIN
    assert store.list_notifications("alice") == []

    with pytest.raises(Full):
        manager.admit(collective.id, "carol")
