"""
Two-party accept/deny workflow shared by location-sharing and invite requests.

A request starts pending and moves once to accepted or denied; an
auto-accepted invite is stored accepted from the start. Only pending rows
take part in the duplicate check, so a requester may ask again after a
decision.
"""
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, NamedTuple, Optional

from socialgraph.core.authorization import Action, AuthorizationEvaluator, ResourceRef
from socialgraph.core.errors import (
    AlreadyDecided, DuplicatePending, Forbidden, InvalidActor, InvalidArgument, NotFound
)
from socialgraph.core.locks import KeyedLock, engine_locks
from socialgraph.core.utils import utcnow
from socialgraph.database.base import EntityStore
from socialgraph.modules.collectives.service import MembershipManager
from socialgraph.modules.notifications.schemas import NotificationType
from socialgraph.modules.notifications.service import NotificationDispatcher
from socialgraph.modules.workflows.schemas import RequestStatus, WorkflowKind, WorkflowRequest

logger = logging.getLogger(__name__)


class WorkflowTags(NamedTuple):
    requested: NotificationType
    accepted: NotificationType
    denied: NotificationType

    def for_outcome(self, outcome: RequestStatus) -> NotificationType:
        return self.accepted if outcome is RequestStatus.ACCEPTED else self.denied


WORKFLOW_TAGS: Dict[WorkflowKind, WorkflowTags] = {
    WorkflowKind.LOCATION: WorkflowTags(
        NotificationType.LOCATION_REQUEST,
        NotificationType.LOCATION_SHARED,
        NotificationType.LOCATION_DENIED,
    ),
    WorkflowKind.INVITE: WorkflowTags(
        NotificationType.INVITE_REQUEST,
        NotificationType.INVITE_ACCEPTED,
        NotificationType.INVITE_DENIED,
    ),
}

ACTION_OUTCOMES = {
    "accept": RequestStatus.ACCEPTED,
    "deny": RequestStatus.DENIED,
}


class WorkflowStateMachine:
    def __init__(
        self,
        store: EntityStore,
        evaluator: Optional[AuthorizationEvaluator] = None,
        notifier: Optional[NotificationDispatcher] = None,
        locks: Optional[KeyedLock] = None,
        memberships: Optional[MembershipManager] = None,
    ):
        self.store = store
        self.evaluator = evaluator or AuthorizationEvaluator(store)
        self.notifier = notifier or NotificationDispatcher(store)
        self.locks = locks or engine_locks
        self.memberships = memberships or MembershipManager(
            store, evaluator=self.evaluator, notifier=self.notifier, locks=self.locks
        )

    @contextmanager
    def _collective_lock(self, collective_id: Optional[str]) -> Iterator[None]:
        # Taken before the store transaction, in the same order join() uses
        if collective_id is None:
            yield
            return
        with self.locks.hold(MembershipManager.lock_key(collective_id)):
            yield

    def _check_invite_options(
        self, kind: WorkflowKind, owner_id: str, auto_accept: bool, collective_id: Optional[str]
    ) -> None:
        if kind is not WorkflowKind.INVITE and (auto_accept or collective_id is not None):
            raise InvalidArgument("Only invite requests can be auto-accepted or linked to a collective")
        if collective_id is None:
            return
        collective = self.store.get_collective(collective_id)
        if not collective.is_active:
            raise NotFound("Collective not found")
        if not self.evaluator.can_perform(owner_id, Action.MODIFY_COLLECTIVE, ResourceRef.collective(collective_id)):
            raise Forbidden("The invite owner must be an admin of the linked collective")

    def create(
        self,
        requester_id: str,
        owner_id: str,
        subject_id: str,
        kind: WorkflowKind = WorkflowKind.LOCATION,
        auto_accept: bool = False,
        collective_id: Optional[str] = None,
    ) -> WorkflowRequest:
        """
        Open a request from requester_id to owner_id about subject_id.

        Invites may be auto-accepted: the row is stored already accepted and
        the owner is told someone joined. An invite linked to a collective
        adds the requester to it whenever the invite ends up accepted.
        """
        kind = WorkflowKind(kind)
        if requester_id == owner_id:
            raise InvalidActor("You can't send a request to yourself")
        self._check_invite_options(kind, owner_id, auto_accept, collective_id)
        with self.locks.hold(("workflow", kind.value, subject_id, requester_id)):
            if self.store.find_pending_request(kind, subject_id, requester_id):
                raise DuplicatePending("Request already pending")
            with self._collective_lock(collective_id if auto_accept else None):
                with self.store.transaction():
                    request = self.store.insert_request(WorkflowRequest(
                        kind=kind,
                        subject_id=subject_id,
                        requester_id=requester_id,
                        owner_id=owner_id,
                        status=RequestStatus.ACCEPTED if auto_accept else RequestStatus.PENDING,
                        responded_at=utcnow() if auto_accept else None,
                        collective_id=collective_id,
                    ))
                    if auto_accept and collective_id is not None:
                        self.memberships.admit(collective_id, requester_id)
                    self.notifier.emit(
                        owner_id,
                        requester_id,
                        NotificationType.INVITE_AUTO_ACCEPTED if auto_accept else WORKFLOW_TAGS[kind].requested,
                        {"request_id": request.id, "subject_id": subject_id},
                    )
        logger.info(
            f"{kind.value} request {request.id} created by {requester_id} for subject {subject_id}"
            f"{' (auto-accepted)' if auto_accept else ''}"
        )
        return request

    def decide(self, request_id: str, decider_id: str, outcome: RequestStatus) -> WorkflowRequest:
        outcome = RequestStatus(outcome)
        if not outcome.is_terminal:
            raise InvalidArgument("Outcome must be accepted or denied")
        with self.locks.hold(("request", request_id)):
            request = self.store.get_request(request_id)
            self.evaluator.require(
                decider_id, Action.DECIDE_WORKFLOW_REQUEST, ResourceRef.request(request_id),
                "Only the owner can respond to this request",
            )
            if request.status.is_terminal:
                raise AlreadyDecided()
            joins_collective = outcome is RequestStatus.ACCEPTED and request.collective_id is not None
            with self._collective_lock(request.collective_id if joins_collective else None):
                with self.store.transaction():
                    decided = self.store.update_request(request_id, {
                        "status": outcome,
                        "responded_at": utcnow(),
                    })
                    if joins_collective:
                        self.memberships.admit(request.collective_id, request.requester_id)
                    self.notifier.emit(
                        request.requester_id,
                        decider_id,
                        WORKFLOW_TAGS[request.kind].for_outcome(outcome),
                        {"request_id": request.id, "subject_id": request.subject_id},
                    )
        logger.info(f"{request.kind.value} request {request_id} {outcome.value} by {decider_id}")
        return decided

    def get(self, request_id: str, actor: str) -> WorkflowRequest:
        request = self.store.get_request(request_id)
        if actor not in (request.requester_id, request.owner_id):
            raise Forbidden("You are not a party to this request")
        return request

    def list_incoming(
        self, owner_id: str, status: Optional[RequestStatus] = None, kind: Optional[WorkflowKind] = None
    ) -> List[WorkflowRequest]:
        return self.store.list_requests(owner_id=owner_id, status=status, kind=kind)

    def list_outgoing(
        self, requester_id: str, status: Optional[RequestStatus] = None, kind: Optional[WorkflowKind] = None
    ) -> List[WorkflowRequest]:
        return self.store.list_requests(requester_id=requester_id, status=status, kind=kind)
