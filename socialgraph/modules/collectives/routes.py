from fastapi import APIRouter, Depends
from socialgraph.core.authorization import AuthorizationEvaluator
from socialgraph.core.dependencies import get_current_user_id, get_evaluator
from socialgraph.database.base import EntityStore
from socialgraph.database.supabase_client import get_store
from socialgraph.modules.collectives.schemas import (
    Collective, CollectiveCreate, CollectiveUpdate, CollectivePermissions,
    Membership, MemberRoleUpdate
)
from socialgraph.modules.collectives.service import MembershipManager
from typing import List

router = APIRouter(prefix="/collectives", tags=["collectives"])


def get_membership_manager(
    store: EntityStore = Depends(get_store),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator)
) -> MembershipManager:
    return MembershipManager(store, evaluator=evaluator)


@router.post("", response_model=Collective, status_code=201)
async def create_collective(
    collective_data: CollectiveCreate,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    """Create a group, community or album; the creator becomes its admin"""
    return service.create_collective(
        user_id,
        collective_data.name,
        capacity=collective_data.capacity,
        kind=collective_data.kind,
        is_public=collective_data.is_public,
        description=collective_data.description,
    )


@router.get("", response_model=List[Collective])
async def list_my_collectives(
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    """List active collectives the current user belongs to"""
    return service.list_for_user(user_id)


@router.get("/{collective_id}", response_model=Collective)
async def get_collective(
    collective_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    return service.get_collective(collective_id, user_id)


@router.put("/{collective_id}", response_model=Collective)
async def update_collective(
    collective_id: str,
    collective_data: CollectiveUpdate,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    """Update collective settings (admins only)"""
    return service.update_collective(collective_id, user_id, collective_data.model_dump(exclude_unset=True))


@router.delete("/{collective_id}", response_model=Collective)
async def deactivate_collective(
    collective_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    """Deactivate a collective (admins only); data is kept"""
    return service.deactivate(collective_id, user_id)


@router.post("/{collective_id}/join", response_model=Membership, status_code=201)
async def join_collective(
    collective_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    return service.join(collective_id, user_id)


@router.delete("/{collective_id}/join", status_code=204)
async def leave_collective(
    collective_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    """Leave a collective; creators cannot leave their own"""
    service.leave(collective_id, user_id)
    return None


@router.get("/{collective_id}/members", response_model=List[Membership])
async def list_members(
    collective_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    return service.list_members(collective_id, user_id)


@router.put("/{collective_id}/members/{member_id}", response_model=Membership)
async def set_member_role(
    collective_id: str,
    member_id: str,
    role_update: MemberRoleUpdate,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    """Promote or demote a member (admins only)"""
    return service.set_role(collective_id, user_id, member_id, role_update.role)


@router.delete("/{collective_id}/members/{member_id}", status_code=204)
async def remove_member(
    collective_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    """Remove a member (admins only); the creator cannot be removed"""
    service.remove_member(collective_id, user_id, member_id)
    return None


@router.get("/{collective_id}/permissions", response_model=CollectivePermissions)
async def get_permissions(
    collective_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MembershipManager = Depends(get_membership_manager)
):
    """What the current user may do in this collective (for frontend UI)"""
    return CollectivePermissions(
        collective_id=collective_id,
        permissions=service.permissions(collective_id, user_id),
    )
