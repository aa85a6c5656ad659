from concurrent.futures import ThreadPoolExecutor

import pytest

from socialgraph.core.errors import (
    AlreadyDecided, DuplicatePending, Forbidden, Full, InvalidActor, InvalidArgument, NotFound
)
from socialgraph.modules.collectives.schemas import MemberRole
from socialgraph.modules.notifications.schemas import NotificationType
from socialgraph.modules.workflows.schemas import RequestStatus, WorkflowKind


def pending_count(store, subject_id, requester_id, kind=WorkflowKind.LOCATION):
    return len([
        r for r in store.list_requests(requester_id=requester_id, status=RequestStatus.PENDING, kind=kind)
        if r.subject_id == subject_id
    ])


def test_create_notifies_owner(store, workflows):
    request = workflows.create("rita", "olga", "42")
    assert request.status == RequestStatus.PENDING
    assert request.responded_at is None

    [notification] = store.list_notifications("olga")
    assert notification.type == NotificationType.LOCATION_REQUEST
    assert notification.source_user_id == "rita"
    assert notification.payload.request_id == request.id
    assert notification.payload.subject_id == "42"


def test_self_request_is_invalid(store, workflows):
    with pytest.raises(InvalidActor):
        workflows.create("olga", "olga", "42")
    assert store.list_requests(owner_id="olga") == []


def test_duplicate_pending_then_resubmit_after_denial(store, workflows):
    first = workflows.create("rita", "olga", "42")
    with pytest.raises(DuplicatePending):
        workflows.create("rita", "olga", "42")

    workflows.decide(first.id, "olga", RequestStatus.DENIED)
    second = workflows.create("rita", "olga", "42")
    assert second.id != first.id
    assert pending_count(store, "42", "rita") == 1


def test_wrong_decider_is_forbidden(store, workflows):
    request = workflows.create("rita", "olga", "42")
    with pytest.raises(Forbidden):
        workflows.decide(request.id, "mallory", RequestStatus.ACCEPTED)
    assert store.get_request(request.id).status == RequestStatus.PENDING
    assert store.list_notifications("rita") == []


def test_decide_missing_request(workflows):
    with pytest.raises(NotFound):
        workflows.decide("missing", "olga", RequestStatus.ACCEPTED)


def test_decide_is_not_reversible(store, workflows):
    request = workflows.create("rita", "olga", "42")
    decided = workflows.decide(request.id, "olga", RequestStatus.ACCEPTED)
    with pytest.raises(AlreadyDecided):
        workflows.decide(request.id, "olga", RequestStatus.DENIED)

    stored = store.get_request(request.id)
    assert stored.status == RequestStatus.ACCEPTED
    assert stored.responded_at == decided.responded_at


def test_decide_rejects_pending_outcome(workflows):
    request = workflows.create("rita", "olga", "42")
    with pytest.raises(InvalidArgument):
        workflows.decide(request.id, "olga", RequestStatus.PENDING)


def test_accept_round_trip_yields_two_notifications(store, workflows, notifier):
    request = workflows.create("rita", "olga", "42")
    workflows.decide(request.id, "olga", RequestStatus.ACCEPTED)

    to_owner = store.list_notifications("olga")
    to_requester = store.list_notifications("rita")
    assert [n.type for n in to_owner] == [NotificationType.LOCATION_REQUEST]
    assert [n.type for n in to_requester] == [NotificationType.LOCATION_SHARED]

    for notification, user in ((to_owner[0], "olga"), (to_requester[0], "rita")):
        assert notifier.mark_read(notification.id, user).is_read
        assert notifier.mark_read(notification.id, user).is_read


def test_invite_requests_use_invite_tags(store, workflows):
    request = workflows.create("rita", "olga", "invite-7", kind=WorkflowKind.INVITE)
    assert store.list_notifications("olga")[0].type == NotificationType.INVITE_REQUEST
    workflows.decide(request.id, "olga", RequestStatus.DENIED)
    assert store.list_notifications("rita")[0].type == NotificationType.INVITE_DENIED

    # Same subject id under another kind is a separate request
    workflows.create("rita", "olga", "invite-7", kind=WorkflowKind.LOCATION)


def test_decide_is_atomic_with_notification(store, workflows, monkeypatch):
    request = workflows.create("rita", "olga", "42")

    def boom(*args, **kwargs):
        raise RuntimeError("storage down")

    monkeypatch.setattr(workflows.notifier, "emit", boom)
    with pytest.raises(RuntimeError):
        workflows.decide(request.id, "olga", RequestStatus.ACCEPTED)

    stored = store.get_request(request.id)
    assert stored.status == RequestStatus.PENDING
    assert stored.responded_at is None


def test_concurrent_creates_leave_one_pending(store, workflows):
    def attempt(_):
        try:
            workflows.create("rita", "olga", "42")
            return "created"
        except DuplicatePending:
            return "duplicate"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(8)))

    assert outcomes.count("created") == 1
    assert pending_count(store, "42", "rita") == 1


def test_concurrent_decisions_apply_once(store, workflows):
    request = workflows.create("rita", "olga", "42")

    def attempt(outcome):
        try:
            workflows.decide(request.id, "olga", outcome)
            return "decided"
        except AlreadyDecided:
            return "already"

    outcomes_in = [RequestStatus.ACCEPTED, RequestStatus.DENIED] * 4
    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, outcomes_in))

    assert outcomes.count("decided") == 1
    assert len(store.list_notifications("rita")) == 1


def test_visibility_and_listings(workflows):
    request = workflows.create("rita", "olga", "42")
    assert workflows.get(request.id, "rita").id == request.id
    assert workflows.get(request.id, "olga").id == request.id
    with pytest.raises(Forbidden):
        workflows.get(request.id, "mallory")

    assert [r.id for r in workflows.list_incoming("olga", status=RequestStatus.PENDING)] == [request.id]
    assert [r.id for r in workflows.list_outgoing("rita")] == [request.id]
    assert workflows.list_incoming("rita") == []


def test_auto_accepted_invite_notifies_owner(store, workflows):
    request = workflows.create("rita", "olga", "post-7", kind=WorkflowKind.INVITE, auto_accept=True)
    assert request.status == RequestStatus.ACCEPTED
    assert request.responded_at is not None
    assert pending_count(store, "post-7", "rita", kind=WorkflowKind.INVITE) == 0

    [notification] = store.list_notifications("olga")
    assert notification.type == NotificationType.INVITE_AUTO_ACCEPTED
    assert notification.source_user_id == "rita"
    assert notification.payload.request_id == request.id
    assert store.list_notifications("rita") == []

    with pytest.raises(AlreadyDecided):
        workflows.decide(request.id, "olga", RequestStatus.DENIED)


def test_auto_accept_and_linked_collective_are_invite_only(manager, workflows):
    collective = manager.create_collective("olga", "Sunday ride")
    with pytest.raises(InvalidArgument):
        workflows.create("rita", "olga", "42", auto_accept=True)
    with pytest.raises(InvalidArgument):
        workflows.create("rita", "olga", "42", collective_id=collective.id)


def test_linked_collective_must_be_administered_by_owner(store, manager, workflows):
    collective = manager.create_collective("alice", "Not olga's")
    with pytest.raises(Forbidden):
        workflows.create("rita", "olga", "post-7", kind=WorkflowKind.INVITE, collective_id=collective.id)
    with pytest.raises(NotFound):
        workflows.create("rita", "olga", "post-7", kind=WorkflowKind.INVITE, collective_id="missing")
    assert store.list_requests(owner_id="olga") == []


def test_accepting_linked_invite_adds_requester_to_collective(store, manager, workflows):
    collective = manager.create_collective("olga", "Sunday ride")
    request = workflows.create("rita", "olga", "post-7", kind=WorkflowKind.INVITE, collective_id=collective.id)
    assert request.collective_id == collective.id
    assert store.find_membership(collective.id, "rita") is None

    workflows.decide(request.id, "olga", RequestStatus.ACCEPTED)
    membership = store.find_membership(collective.id, "rita")
    assert membership is not None
    assert membership.role == MemberRole.MEMBER


def test_denying_linked_invite_leaves_collective_alone(store, manager, workflows):
    collective = manager.create_collective("olga", "Sunday ride")
    request = workflows.create("rita", "olga", "post-7", kind=WorkflowKind.INVITE, collective_id=collective.id)
    workflows.decide(request.id, "olga", RequestStatus.DENIED)
    assert store.find_membership(collective.id, "rita") is None


def test_linked_invite_skips_existing_members(store, manager, workflows):
    collective = manager.create_collective("olga", "Sunday ride")
    joined = manager.join(collective.id, "rita")
    request = workflows.create("rita", "olga", "post-7", kind=WorkflowKind.INVITE, collective_id=collective.id)
    workflows.decide(request.id, "olga", RequestStatus.ACCEPTED)

    assert store.get_request(request.id).status == RequestStatus.ACCEPTED
    assert [m.id for m in store.list_memberships(collective.id) if m.user_id == "rita"] == [joined.id]


def test_auto_accepted_linked_invite_joins_collective(store, manager, workflows):
    collective = manager.create_collective("olga", "Sunday ride")
    workflows.create(
        "rita", "olga", "post-7", kind=WorkflowKind.INVITE, auto_accept=True, collective_id=collective.id
    )
    assert store.find_membership(collective.id, "rita").role == MemberRole.MEMBER


def test_full_linked_collective_rolls_back_acceptance(store, manager, workflows):
    collective = manager.create_collective("olga", "Tandem", capacity=1)
    request = workflows.create("rita", "olga", "post-7", kind=WorkflowKind.INVITE, collective_id=collective.id)
    with pytest.raises(Full):
        workflows.decide(request.id, "olga", RequestStatus.ACCEPTED)

    stored = store.get_request(request.id)
    assert stored.status == RequestStatus.PENDING
    assert stored.responded_at is None
    assert store.list_notifications("rita") == []

    with pytest.raises(Full):
        workflows.create(
            "sam", "olga", "post-7", kind=WorkflowKind.INVITE, auto_accept=True, collective_id=collective.id
        )
    assert store.list_requests(requester_id="sam") == []
    assert [n.type for n in store.list_notifications("olga")] == [NotificationType.INVITE_REQUEST]
