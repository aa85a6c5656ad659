"""
Entity store contract shared by the Supabase and in-memory backends.

Backends implement five row primitives (_insert, _select, _update, _delete,
_count) over plain JSON-ready dicts with equality filters. Everything the
services call lives here, so both backends get the same NotFound semantics
and the same transaction journal: every write made inside transaction()
records a compensating action, replayed in reverse if the block raises.
"""
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from pydantic_core import to_jsonable_python

from socialgraph.core.errors import NotFound, AlreadyExists, AlreadyMember, DuplicatePending
from socialgraph.core.utils import utcnow
from socialgraph.modules.users.schemas import User
from socialgraph.modules.collectives.schemas import Collective, Membership, MemberRole
from socialgraph.modules.workflows.schemas import WorkflowRequest, WorkflowKind, RequestStatus
from socialgraph.modules.notifications.schemas import Notification

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Filters = Dict[str, Any]

USERS = "user_profiles"
COLLECTIVES = "collectives"
MEMBERSHIPS = "memberships"
WORKFLOW_REQUESTS = "workflow_requests"
NOTIFICATIONS = "notifications"

UNIQUE_KEYS = {
    MEMBERSHIPS: ("collective_id", "user_id"),
}


class EntityStore(ABC):
    def __init__(self):
        self._tx = threading.local()

    # -- row primitives -------------------------------------------------

    @abstractmethod
    def _insert(self, table: str, row: Row) -> Row:
        """Insert row; raise AlreadyExists on a unique-key violation"""

    @abstractmethod
    def _select(
        self,
        table: str,
        filters: Filters,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        ...

    @abstractmethod
    def _update(self, table: str, filters: Filters, values: Row) -> List[Row]:
        """Update matching rows and return them as stored after the update"""

    @abstractmethod
    def _delete(self, table: str, filters: Filters) -> List[Row]:
        """Delete matching rows and return them as they were"""

    @abstractmethod
    def _count(self, table: str, filters: Filters) -> int:
        ...

    # -- transactions ---------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        """Group writes into one unit; nested calls join the outermost transaction."""
        if getattr(self._tx, "journal", None) is not None:
            yield self
            return
        self._tx.journal = []
        try:
            yield self
        except BaseException:
            journal, self._tx.journal = self._tx.journal, None
            self._rollback(journal)
            raise
        else:
            self._tx.journal = None

    def _rollback(self, journal: List[Callable[[], Any]]) -> None:
        logger.warning(f"Rolling back transaction ({len(journal)} write(s))")
        for undo in reversed(journal):
            try:
                undo()
            except Exception:
                logger.exception("Compensating write failed during rollback")

    def _journal(self, undo: Callable[[], Any]) -> None:
        journal = getattr(self._tx, "journal", None)
        if journal is not None:
            journal.append(undo)

    def insert_row(self, table: str, row: Row) -> Row:
        stored = self._insert(table, row)
        self._journal(lambda: self._delete(table, {"id": stored["id"]}))
        return stored

    def update_rows(self, table: str, filters: Filters, values: Row) -> List[Row]:
        values = to_jsonable_python(values)
        before = self._select(table, filters)
        updated = self._update(table, filters, values)

        def undo():
            for row in before:
                self._update(table, {"id": row["id"]}, {k: row.get(k) for k in values})

        self._journal(undo)
        return updated

    def delete_rows(self, table: str, filters: Filters) -> List[Row]:
        deleted = self._delete(table, filters)

        def undo():
            for row in deleted:
                self._insert(table, row)

        self._journal(undo)
        return deleted

    def _get_one(self, table: str, filters: Filters, detail: str) -> Row:
        rows = self._select(table, filters, limit=1)
        if not rows:
            raise NotFound(detail)
        return rows[0]

    def _find_one(self, table: str, filters: Filters) -> Optional[Row]:
        rows = self._select(table, filters, limit=1)
        return rows[0] if rows else None

    # -- users ----------------------------------------------------------

    def insert_user(self, user: User) -> User:
        return User(**self.insert_row(USERS, user.model_dump(mode="json")))

    def get_user(self, user_id: str) -> User:
        return User(**self._get_one(USERS, {"id": user_id}, "User not found"))

    def find_user(self, user_id: str) -> Optional[User]:
        row = self._find_one(USERS, {"id": user_id})
        return User(**row) if row else None

    def update_user(self, user_id: str, values: Row) -> User:
        rows = self.update_rows(USERS, {"id": user_id}, {**values, "updated_at": utcnow()})
        if not rows:
            raise NotFound("User not found")
        return User(**rows[0])

    # -- collectives ----------------------------------------------------

    def insert_collective(self, collective: Collective) -> Collective:
        return Collective(**self.insert_row(COLLECTIVES, collective.model_dump(mode="json")))

    def get_collective(self, collective_id: str) -> Collective:
        return Collective(**self._get_one(COLLECTIVES, {"id": collective_id}, "Collective not found"))

    def update_collective(self, collective_id: str, values: Row) -> Collective:
        rows = self.update_rows(COLLECTIVES, {"id": collective_id}, {**values, "updated_at": utcnow()})
        if not rows:
            raise NotFound("Collective not found")
        return Collective(**rows[0])

    def list_collectives_for_user(self, user_id: str, include_inactive: bool = False) -> List[Collective]:
        collective_ids = [m.collective_id for m in self.list_memberships_for_user(user_id)]
        collectives = []
        for collective_id in collective_ids:
            row = self._find_one(COLLECTIVES, {"id": collective_id})
            if row and (include_inactive or row.get("is_active")):
                collectives.append(Collective(**row))
        collectives.sort(key=lambda c: c.created_at, reverse=True)
        return collectives

    # -- memberships ----------------------------------------------------

    def insert_membership(self, membership: Membership) -> Membership:
        try:
            return Membership(**self.insert_row(MEMBERSHIPS, membership.model_dump(mode="json")))
        except AlreadyExists:
            raise AlreadyMember()

    def find_membership(self, collective_id: str, user_id: str) -> Optional[Membership]:
        row = self._find_one(MEMBERSHIPS, {"collective_id": collective_id, "user_id": user_id})
        return Membership(**row) if row else None

    def update_membership_role(self, collective_id: str, user_id: str, role: MemberRole) -> Membership:
        rows = self.update_rows(MEMBERSHIPS, {"collective_id": collective_id, "user_id": user_id}, {"role": role})
        if not rows:
            raise NotFound("Membership not found")
        return Membership(**rows[0])

    def delete_membership(self, collective_id: str, user_id: str) -> bool:
        return bool(self.delete_rows(MEMBERSHIPS, {"collective_id": collective_id, "user_id": user_id}))

    def count_memberships(self, collective_id: str) -> int:
        return self._count(MEMBERSHIPS, {"collective_id": collective_id})

    def list_memberships(self, collective_id: str) -> List[Membership]:
        rows = self._select(MEMBERSHIPS, {"collective_id": collective_id}, order_by="joined_at")
        return [Membership(**row) for row in rows]

    def list_memberships_for_user(self, user_id: str) -> List[Membership]:
        rows = self._select(MEMBERSHIPS, {"user_id": user_id}, order_by="joined_at")
        return [Membership(**row) for row in rows]

    # -- workflow requests ----------------------------------------------

    def insert_request(self, request: WorkflowRequest) -> WorkflowRequest:
        # Backed by the partial unique index on pending rows
        try:
            return WorkflowRequest(**self.insert_row(WORKFLOW_REQUESTS, request.model_dump(mode="json")))
        except AlreadyExists:
            raise DuplicatePending()

    def get_request(self, request_id: str) -> WorkflowRequest:
        return WorkflowRequest(**self._get_one(WORKFLOW_REQUESTS, {"id": request_id}, "Request not found"))

    def find_pending_request(self, kind: WorkflowKind, subject_id: str, requester_id: str) -> Optional[WorkflowRequest]:
        row = self._find_one(WORKFLOW_REQUESTS, {
            "kind": WorkflowKind(kind).value,
            "subject_id": subject_id,
            "requester_id": requester_id,
            "status": RequestStatus.PENDING.value,
        })
        return WorkflowRequest(**row) if row else None

    def update_request(self, request_id: str, values: Row) -> WorkflowRequest:
        rows = self.update_rows(WORKFLOW_REQUESTS, {"id": request_id}, values)
        if not rows:
            raise NotFound("Request not found")
        return WorkflowRequest(**rows[0])

    def list_requests(
        self,
        owner_id: Optional[str] = None,
        requester_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        kind: Optional[WorkflowKind] = None,
    ) -> List[WorkflowRequest]:
        filters: Filters = {}
        if owner_id is not None:
            filters["owner_id"] = owner_id
        if requester_id is not None:
            filters["requester_id"] = requester_id
        if status is not None:
            filters["status"] = RequestStatus(status).value
        if kind is not None:
            filters["kind"] = WorkflowKind(kind).value
        rows = self._select(WORKFLOW_REQUESTS, filters, order_by="created_at", desc=True)
        return [WorkflowRequest(**row) for row in rows]

    # -- notifications --------------------------------------------------

    def insert_notification(self, notification: Notification) -> Notification:
        return Notification(**self.insert_row(NOTIFICATIONS, notification.model_dump(mode="json")))

    def get_notification(self, notification_id: str) -> Notification:
        return Notification(**self._get_one(NOTIFICATIONS, {"id": notification_id}, "Notification not found"))

    def update_notification(self, notification_id: str, values: Row) -> Notification:
        rows = self.update_rows(NOTIFICATIONS, {"id": notification_id}, values)
        if not rows:
            raise NotFound("Notification not found")
        return Notification(**rows[0])

    def mark_all_notifications_read(self, recipient_id: str) -> int:
        rows = self.update_rows(NOTIFICATIONS, {"recipient_id": recipient_id, "is_read": False}, {"is_read": True})
        return len(rows)

    def list_notifications(self, recipient_id: str, unread_only: bool = False, limit: Optional[int] = None) -> List[Notification]:
        filters: Filters = {"recipient_id": recipient_id}
        if unread_only:
            filters["is_read"] = False
        rows = self._select(NOTIFICATIONS, filters, order_by="created_at", desc=True, limit=limit)
        return [Notification(**row) for row in rows]

    def count_unread_notifications(self, recipient_id: str) -> int:
        return self._count(NOTIFICATIONS, {"recipient_id": recipient_id, "is_read": False})

    def delete_notification(self, notification_id: str) -> bool:
        return bool(self.delete_rows(NOTIFICATIONS, {"id": notification_id}))
