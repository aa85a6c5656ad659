import logging
from typing import Any, Dict, List, Optional

from socialgraph.core.authorization import Action, AuthorizationEvaluator, ResourceRef
from socialgraph.core.errors import AlreadyMember, Forbidden, Full, InvalidArgument, NotFound
from socialgraph.core.locks import KeyedLock, engine_locks
from socialgraph.database.base import EntityStore
from socialgraph.modules.collectives.schemas import (
    Collective, CollectiveKind, Membership, MemberRole
)
from socialgraph.modules.notifications.schemas import MemberJoinedPayload, NotificationType
from socialgraph.modules.notifications.service import NotificationDispatcher

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = ("description", "capacity")


class MembershipManager:
    def __init__(
        self,
        store: EntityStore,
        evaluator: Optional[AuthorizationEvaluator] = None,
        notifier: Optional[NotificationDispatcher] = None,
        locks: Optional[KeyedLock] = None,
    ):
        self.store = store
        self.evaluator = evaluator or AuthorizationEvaluator(store)
        self.notifier = notifier or NotificationDispatcher(store)
        self.locks = locks or engine_locks

    @staticmethod
    def lock_key(collective_id: str) -> tuple:
        return ("collective", collective_id)

    def _get_active(self, collective_id: str) -> Collective:
        collective = self.store.get_collective(collective_id)
        if not collective.is_active:
            raise NotFound("Collective not found")
        return collective

    def _check_capacity(self, collective: Collective) -> None:
        if collective.capacity is not None and self.store.count_memberships(collective.id) >= collective.capacity:
            logger.debug(f"Join rejected, collective {collective.id} is full")
            raise Full()

    def create_collective(
        self,
        creator_id: str,
        name: str,
        capacity: Optional[int] = None,
        kind: CollectiveKind = CollectiveKind.GROUP,
        is_public: bool = False,
        description: Optional[str] = None,
    ) -> Collective:
        """Create a collective with its creator as the admin member"""
        if capacity is not None and capacity < 1:
            raise InvalidArgument("Capacity must be at least 1")
        collective = Collective(
            kind=kind,
            name=name,
            description=description,
            creator_id=creator_id,
            capacity=capacity,
            is_public=is_public,
        )
        with self.store.transaction():
            stored = self.store.insert_collective(collective)
            self.store.insert_membership(Membership(
                collective_id=stored.id,
                user_id=creator_id,
                role=MemberRole.ADMIN,
            ))
        logger.info(f"Collective {stored.id} ({stored.kind.value}) created by {creator_id}")
        return stored

    def join(self, collective_id: str, user_id: str) -> Membership:
        """Add user_id as a member; the capacity check and insert run under the collective's lock"""
        with self.locks.hold(self.lock_key(collective_id)):
            collective = self._get_active(collective_id)
            if self.store.find_membership(collective_id, user_id):
                raise AlreadyMember()
            self._check_capacity(collective)
            with self.store.transaction():
                membership = self.store.insert_membership(Membership(
                    collective_id=collective_id,
                    user_id=user_id,
                    role=MemberRole.MEMBER,
                ))
                if user_id != collective.creator_id:
                    self.notifier.emit(
                        collective.creator_id,
                        user_id,
                        NotificationType.MEMBER_JOINED,
                        MemberJoinedPayload(
                            collective_id=collective.id,
                            collective_name=collective.name,
                            user_id=user_id,
                        ),
                    )
        logger.info(f"User {user_id} joined collective {collective_id}")
        return membership

    def admit(self, collective_id: str, user_id: str) -> Membership:
        """
        Add user_id as a plain member of a collective linked to an accepted invite.

        Existing members are returned unchanged. The caller must already hold
        lock_key(collective_id) and is expected to run this inside its own
        store transaction.
        """
        collective = self._get_active(collective_id)
        existing = self.store.find_membership(collective_id, user_id)
        if existing:
            return existing
        self._check_capacity(collective)
        membership = self.store.insert_membership(Membership(
            collective_id=collective_id,
            user_id=user_id,
            role=MemberRole.MEMBER,
        ))
        logger.info(f"User {user_id} admitted to collective {collective_id} through an invite")
        return membership

    def leave(self, collective_id: str, user_id: str) -> None:
        with self.locks.hold(self.lock_key(collective_id)):
            if self.store.find_membership(collective_id, user_id) is None:
                raise NotFound("Not a member of this collective")
            if not self.evaluator.can_perform(user_id, Action.LEAVE_COLLECTIVE, ResourceRef.collective(collective_id)):
                raise Forbidden("Creators cannot leave their own collective")
            self.store.delete_membership(collective_id, user_id)
        logger.info(f"User {user_id} left collective {collective_id}")

    def get_collective(self, collective_id: str, actor: str) -> Collective:
        """Inactive collectives are only visible to their admins"""
        collective = self.store.get_collective(collective_id)
        if not collective.is_active and not self.evaluator.can_perform(
            actor, Action.MODIFY_COLLECTIVE, ResourceRef.collective(collective_id)
        ):
            raise NotFound("Collective not found")
        return collective

    def update_collective(self, collective_id: str, actor: str, changes: Dict[str, Any]) -> Collective:
        with self.locks.hold(self.lock_key(collective_id)):
            self.evaluator.require(
                actor, Action.MODIFY_COLLECTIVE, ResourceRef.collective(collective_id),
                "You must be a collective admin to perform this action",
            )
            # An explicit None clears a nullable column (capacity None = unbounded)
            values = {k: v for k, v in changes.items() if v is not None or k in NULLABLE_FIELDS}
            capacity = values.get("capacity")
            if capacity is not None:
                if capacity < 1:
                    raise InvalidArgument("Capacity must be at least 1")
                if capacity < self.store.count_memberships(collective_id):
                    raise Full("Capacity cannot be lower than the current member count")
            if not values:
                return self.store.get_collective(collective_id)
            return self.store.update_collective(collective_id, values)

    def deactivate(self, collective_id: str, actor: str) -> Collective:
        """Soft-deactivate; rows are kept"""
        with self.locks.hold(self.lock_key(collective_id)):
            self.evaluator.require(
                actor, Action.MODIFY_COLLECTIVE, ResourceRef.collective(collective_id),
                "You must be a collective admin to perform this action",
            )
            collective = self.store.update_collective(collective_id, {"is_active": False})
        logger.info(f"Collective {collective_id} deactivated by {actor}")
        return collective

    def remove_member(self, collective_id: str, actor: str, user_id: str) -> None:
        with self.locks.hold(self.lock_key(collective_id)):
            self.evaluator.require(
                actor, Action.MODIFY_COLLECTIVE, ResourceRef.collective(collective_id),
                "You must be a collective admin to perform this action",
            )
            if self.store.get_collective(collective_id).creator_id == user_id:
                raise Forbidden("The creator cannot be removed from the collective")
            if not self.store.delete_membership(collective_id, user_id):
                raise NotFound("Membership not found")
        logger.info(f"User {user_id} removed from collective {collective_id} by {actor}")

    def set_role(self, collective_id: str, actor: str, user_id: str, role: MemberRole) -> Membership:
        with self.locks.hold(self.lock_key(collective_id)):
            self.evaluator.require(
                actor, Action.MODIFY_COLLECTIVE, ResourceRef.collective(collective_id),
                "You must be a collective admin to perform this action",
            )
            role = MemberRole(role)
            if self.store.get_collective(collective_id).creator_id == user_id and role is not MemberRole.ADMIN:
                raise Forbidden("The creator must remain an admin")
            return self.store.update_membership_role(collective_id, user_id, role)

    def list_members(self, collective_id: str, actor: str) -> List[Membership]:
        self._get_active(collective_id)
        self.evaluator.require(
            actor, Action.CONTRIBUTE_TO_COLLECTIVE, ResourceRef.collective(collective_id),
            "You must be a member of this collective",
        )
        return self.store.list_memberships(collective_id)

    def list_for_user(self, user_id: str) -> List[Collective]:
        return self.store.list_collectives_for_user(user_id)

    def permissions(self, collective_id: str, actor: str) -> Dict[str, bool]:
        self._get_active(collective_id)
        return self.evaluator.permissions_for(actor, collective_id)
