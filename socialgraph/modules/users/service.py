import logging
from typing import Any, Dict
from socialgraph.core.errors import AlreadyExists
from socialgraph.database.base import EntityStore
from socialgraph.modules.users.schemas import User

logger = logging.getLogger(__name__)


def _display_name_from(user_data: Dict[str, Any]) -> str:
    metadata = user_data.get("user_metadata") or {}
    name = metadata.get("display_name") or metadata.get("full_name")
    if not name and user_data.get("email"):
        name = user_data["email"].split("@", 1)[0]
    return name or user_data["id"]


class UserService:
    def __init__(self, store: EntityStore):
        self.store = store

    def ensure_profile(self, user_data: Dict[str, Any]) -> User:
        """Return the profile for an authenticated user, creating it on first sight"""
        existing = self.store.find_user(user_data["id"])
        if existing:
            return existing
        try:
            user = self.store.insert_user(User(id=user_data["id"], display_name=_display_name_from(user_data)))
        except AlreadyExists:
            # Another request created it first
            return self.store.get_user(user_data["id"])
        logger.info(f"Created profile for user {user.id}")
        return user

    def get_user(self, user_id: str) -> User:
        return self.store.get_user(user_id)

    def update_display_name(self, user_id: str, display_name: str) -> User:
        return self.store.update_user(user_id, {"display_name": display_name})
