import hashlib
import logging
import time
from typing import Any, Dict, Tuple

from fastapi import HTTPException
from supabase import Client

from socialgraph.config import settings

logger = logging.getLogger(__name__)

# Short-lived cache of token -> user so parallel requests with one token hit Supabase Auth once
_AUTH_USER_CACHE: Dict[str, Tuple[Dict[str, Any], float]] = {}


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    """Resolves Supabase Auth bearer tokens to the acting user; credentials are never checked here."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_current_user(self, token: str) -> Dict[str, Any]:
        cache_key = hashlib.sha256(token.encode()).hexdigest()
        now = time.monotonic()
        cached = _AUTH_USER_CACHE.get(cache_key)
        if cached is not None:
            user_data, expiry = cached
            if now < expiry:
                return user_data
            _AUTH_USER_CACHE.pop(cache_key, None)
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        user = user_response.user
        user_data = {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
        }
        if len(_AUTH_USER_CACHE) < settings.auth_cache_max_size:
            _AUTH_USER_CACHE[cache_key] = (user_data, now + settings.auth_cache_ttl_seconds)
        return user_data
