"""
Core dependencies for route protection.

The acting user comes from the Supabase Auth bearer token and is trusted
as-is by the engine services; per-resource decisions are made by the
AuthorizationEvaluator inside the services.
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client
from typing import Dict

from socialgraph.core.authorization import AuthorizationEvaluator
from socialgraph.database.base import EntityStore
from socialgraph.database.supabase_client import get_supabase, get_store
from socialgraph.modules.auth.service import AuthService

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict:
    """Extract current user info from JWT token"""
    return auth_service.get_current_user(credentials.credentials)


def get_current_user_id(user_data: Dict = Depends(get_current_user)) -> str:
    return user_data["id"]


def get_evaluator(store: EntityStore = Depends(get_store)) -> AuthorizationEvaluator:
    return AuthorizationEvaluator(store)
