from fastapi import APIRouter, Depends
from socialgraph.core.dependencies import get_current_user_id
from socialgraph.modules.presence.schemas import TypingStatus, TypingUpdate
from socialgraph.modules.presence.service import TypingIndicatorCache, get_typing_cache

router = APIRouter(prefix="/messages/typing", tags=["presence"])


@router.post("", response_model=TypingStatus)
async def update_typing(
    update: TypingUpdate,
    user_id: str = Depends(get_current_user_id),
    cache: TypingIndicatorCache = Depends(get_typing_cache)
):
    """Signal (or stop signalling) that the current user is typing to receiver_id"""
    cache.set_typing(user_id, update.receiver_id, update.is_typing)
    return TypingStatus(is_typing=update.is_typing)


@router.get("", response_model=TypingStatus)
async def get_typing(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    cache: TypingIndicatorCache = Depends(get_typing_cache)
):
    """Whether user_id is currently typing to the current user"""
    return TypingStatus(is_typing=cache.is_typing(user_id, current_user_id))
