from fastapi import APIRouter, Depends, HTTPException
from socialgraph.core.authorization import AuthorizationEvaluator
from socialgraph.core.dependencies import get_current_user_id, get_evaluator
from socialgraph.database.base import EntityStore
from socialgraph.database.supabase_client import get_store
from socialgraph.modules.workflows.schemas import (
    RequestStatus, WorkflowKind, WorkflowRequest, WorkflowRequestCreate
)
from socialgraph.modules.workflows.service import ACTION_OUTCOMES, WorkflowStateMachine
from typing import List, Optional

router = APIRouter(prefix="/requests", tags=["requests"])


def get_workflow_service(
    store: EntityStore = Depends(get_store),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator)
) -> WorkflowStateMachine:
    return WorkflowStateMachine(store, evaluator=evaluator)


@router.post("", response_model=WorkflowRequest, status_code=201)
async def create_request(
    request_data: WorkflowRequestCreate,
    user_id: str = Depends(get_current_user_id),
    service: WorkflowStateMachine = Depends(get_workflow_service)
):
    """Ask the owner of a subject (e.g. a post's private location) for access"""
    return service.create(
        user_id,
        request_data.owner_id,
        request_data.subject_id,
        kind=request_data.kind,
        auto_accept=request_data.auto_accept,
        collective_id=request_data.collective_id,
    )


@router.get("/incoming", response_model=List[WorkflowRequest])
async def list_incoming(
    status: Optional[RequestStatus] = None,
    kind: Optional[WorkflowKind] = None,
    user_id: str = Depends(get_current_user_id),
    service: WorkflowStateMachine = Depends(get_workflow_service)
):
    """Requests awaiting (or decided by) the current user"""
    return service.list_incoming(user_id, status=status, kind=kind)


@router.get("/outgoing", response_model=List[WorkflowRequest])
async def list_outgoing(
    status: Optional[RequestStatus] = None,
    kind: Optional[WorkflowKind] = None,
    user_id: str = Depends(get_current_user_id),
    service: WorkflowStateMachine = Depends(get_workflow_service)
):
    return service.list_outgoing(user_id, status=status, kind=kind)


@router.get("/{request_id}", response_model=WorkflowRequest)
async def get_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    service: WorkflowStateMachine = Depends(get_workflow_service)
):
    return service.get(request_id, user_id)


@router.post("/{request_id}/{action}", response_model=WorkflowRequest)
async def decide_request(
    request_id: str,
    action: str,
    user_id: str = Depends(get_current_user_id),
    service: WorkflowStateMachine = Depends(get_workflow_service)
):
    """Accept or deny a request (owner only)"""
    outcome = ACTION_OUTCOMES.get(action)
    if outcome is None:
        raise HTTPException(status_code=400, detail="Invalid action")
    return service.decide(request_id, user_id, outcome)
