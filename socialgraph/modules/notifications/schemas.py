from pydantic import BaseModel, Field, TypeAdapter, model_validator
from typing import Annotated, List, Union, Literal, Any, Dict
from datetime import datetime
from enum import Enum
from socialgraph.core.utils import utcnow, new_id


class NotificationType(str, Enum):
    LOCATION_REQUEST = "location_request"
    LOCATION_SHARED = "location_shared"
    LOCATION_DENIED = "location_denied"
    INVITE_REQUEST = "invite_request"
    INVITE_ACCEPTED = "invite_accepted"
    INVITE_DENIED = "invite_denied"
    INVITE_AUTO_ACCEPTED = "invite_auto_accepted"
    MEMBER_JOINED = "member_joined"


class _WorkflowPayload(BaseModel):
    request_id: str
    subject_id: str


class LocationRequestPayload(_WorkflowPayload):
    type: Literal["location_request"] = "location_request"


class LocationSharedPayload(_WorkflowPayload):
    type: Literal["location_shared"] = "location_shared"


class LocationDeniedPayload(_WorkflowPayload):
    type: Literal["location_denied"] = "location_denied"


class InviteRequestPayload(_WorkflowPayload):
    type: Literal["invite_request"] = "invite_request"


class InviteAcceptedPayload(_WorkflowPayload):
    type: Literal["invite_accepted"] = "invite_accepted"


class InviteDeniedPayload(_WorkflowPayload):
    type: Literal["invite_denied"] = "invite_denied"


class InviteAutoAcceptedPayload(_WorkflowPayload):
    type: Literal["invite_auto_accepted"] = "invite_auto_accepted"


class MemberJoinedPayload(BaseModel):
    type: Literal["member_joined"] = "member_joined"
    collective_id: str
    collective_name: str
    user_id: str


NotificationPayload = Annotated[
    Union[
        LocationRequestPayload,
        LocationSharedPayload,
        LocationDeniedPayload,
        InviteRequestPayload,
        InviteAcceptedPayload,
        InviteDeniedPayload,
        InviteAutoAcceptedPayload,
        MemberJoinedPayload,
    ],
    Field(discriminator="type"),
]

payload_adapter: TypeAdapter = TypeAdapter(NotificationPayload)


def build_payload(notification_type: NotificationType, data: Dict[str, Any]):
    """Validate raw payload data against the schema registered for notification_type"""
    return payload_adapter.validate_python({**data, "type": NotificationType(notification_type).value})


class Notification(BaseModel):
    id: str = Field(default_factory=new_id)
    recipient_id: str
    source_user_id: str
    type: NotificationType
    payload: NotificationPayload
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _payload_matches_type(self):
        if self.payload.type != self.type.value:
            raise ValueError(f"payload of type {self.payload.type} does not match notification type {self.type.value}")
        return self

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int
