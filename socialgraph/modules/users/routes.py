from fastapi import APIRouter, Depends
from socialgraph.database.base import EntityStore
from socialgraph.database.supabase_client import get_store
from socialgraph.modules.users.schemas import User, UserUpdate
from socialgraph.modules.users.service import UserService
from socialgraph.core.dependencies import get_current_user
from typing import Dict

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(store: EntityStore = Depends(get_store)) -> UserService:
    return UserService(store)


@router.get("/me", response_model=User)
async def get_me(
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Get (or create on first call) the current user's profile"""
    return service.ensure_profile(user_data)


@router.put("/me", response_model=User)
async def update_me(
    update: UserUpdate,
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Change the current user's display name"""
    service.ensure_profile(user_data)
    return service.update_display_name(user_data["id"], update.display_name)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.get_user(user_id)
