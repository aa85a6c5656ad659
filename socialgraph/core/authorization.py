"""
Authorization rules for social-graph mutations.

Each action is evaluated against one kind of target and the store state at
call time; evaluation never writes. A target missing from the store raises
NotFound from the store lookup.
"""
import logging
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional

from socialgraph.core.errors import Forbidden
from socialgraph.database.base import EntityStore
from socialgraph.modules.collectives.schemas import MemberRole

logger = logging.getLogger(__name__)


class Action(str, Enum):
    MODIFY_COLLECTIVE = "modify_collective"
    CONTRIBUTE_TO_COLLECTIVE = "contribute_to_collective"
    DECIDE_WORKFLOW_REQUEST = "decide_workflow_request"
    LEAVE_COLLECTIVE = "leave_collective"


class TargetKind(str, Enum):
    COLLECTIVE = "collective"
    WORKFLOW_REQUEST = "workflow_request"


class ResourceRef(NamedTuple):
    kind: TargetKind
    id: str

    @classmethod
    def collective(cls, collective_id: str) -> "ResourceRef":
        return cls(TargetKind.COLLECTIVE, collective_id)

    @classmethod
    def request(cls, request_id: str) -> "ResourceRef":
        return cls(TargetKind.WORKFLOW_REQUEST, request_id)


ACTION_TARGETS = {
    Action.MODIFY_COLLECTIVE: TargetKind.COLLECTIVE,
    Action.CONTRIBUTE_TO_COLLECTIVE: TargetKind.COLLECTIVE,
    Action.LEAVE_COLLECTIVE: TargetKind.COLLECTIVE,
    Action.DECIDE_WORKFLOW_REQUEST: TargetKind.WORKFLOW_REQUEST,
}


class AuthorizationEvaluator:
    def __init__(self, store: EntityStore):
        self.store = store
        self._rules: Dict[Action, Callable[[str, str], bool]] = {
            Action.MODIFY_COLLECTIVE: self._can_modify_collective,
            Action.CONTRIBUTE_TO_COLLECTIVE: self._can_contribute,
            Action.DECIDE_WORKFLOW_REQUEST: self._can_decide,
            Action.LEAVE_COLLECTIVE: self._can_leave,
        }

    def can_perform(self, actor: str, action: Action, target: ResourceRef) -> bool:
        action = Action(action)
        expected = ACTION_TARGETS[action]
        if target.kind != expected:
            raise ValueError(f"{action.value} applies to {expected.value} targets, got {target.kind}")
        allowed = self._rules[action](actor, target.id)
        logger.debug(f"{action.value} by {actor} on {target.kind}:{target.id} -> {allowed}")
        return allowed

    def require(self, actor: str, action: Action, target: ResourceRef, detail: Optional[str] = None) -> None:
        """Raise Forbidden unless actor may perform action on target"""
        if not self.can_perform(actor, action, target):
            raise Forbidden(detail or f"Not allowed to {Action(action).value.replace('_', ' ')}")

    def permissions_for(self, actor: str, collective_id: str) -> Dict[str, bool]:
        """Collective-scoped actions the actor may currently perform"""
        target = ResourceRef.collective(collective_id)
        return {
            action.value: self.can_perform(actor, action, target)
            for action, kind in ACTION_TARGETS.items()
            if kind is TargetKind.COLLECTIVE
        }

    def _can_modify_collective(self, actor: str, collective_id: str) -> bool:
        self.store.get_collective(collective_id)
        membership = self.store.find_membership(collective_id, actor)
        return membership is not None and membership.role == MemberRole.ADMIN

    def _can_contribute(self, actor: str, collective_id: str) -> bool:
        collective = self.store.get_collective(collective_id)
        if collective.is_public or collective.creator_id == actor:
            return True
        return self.store.find_membership(collective_id, actor) is not None

    def _can_decide(self, actor: str, request_id: str) -> bool:
        return self.store.get_request(request_id).owner_id == actor

    def _can_leave(self, actor: str, collective_id: str) -> bool:
        collective = self.store.get_collective(collective_id)
        if collective.creator_id == actor:
            return False
        return self.store.find_membership(collective_id, actor) is not None
