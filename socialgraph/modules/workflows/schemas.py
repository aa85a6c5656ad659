from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum
from socialgraph.core.utils import utcnow, new_id


class WorkflowKind(str, Enum):
    LOCATION = "location"
    INVITE = "invite"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DENIED = "denied"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class WorkflowRequest(BaseModel):
    id: str = Field(default_factory=new_id)
    kind: WorkflowKind = WorkflowKind.LOCATION
    subject_id: str
    requester_id: str
    owner_id: str
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    responded_at: Optional[datetime] = None
    collective_id: Optional[str] = None  # invites: joined on acceptance

    class Config:
        from_attributes = True


class WorkflowRequestCreate(BaseModel):
    kind: WorkflowKind = WorkflowKind.LOCATION
    subject_id: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    auto_accept: bool = False
    collective_id: Optional[str] = None
