from pydantic import BaseModel, Field
from typing import Optional, Dict
from datetime import datetime
from enum import Enum
from socialgraph.core.utils import utcnow, new_id


class CollectiveKind(str, Enum):
    GROUP = "group"
    COMMUNITY = "community"
    ALBUM = "album"


class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class Collective(BaseModel):
    id: str = Field(default_factory=new_id)
    kind: CollectiveKind = CollectiveKind.GROUP
    name: str
    description: Optional[str] = None
    creator_id: str
    capacity: Optional[int] = None  # None = unbounded
    is_public: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Membership(BaseModel):
    id: str = Field(default_factory=new_id)
    collective_id: str
    user_id: str
    role: MemberRole = MemberRole.MEMBER
    joined_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True


class CollectiveCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    kind: CollectiveKind = CollectiveKind.GROUP
    description: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    is_public: bool = False


class CollectiveUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    is_public: Optional[bool] = None


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class CollectivePermissions(BaseModel):
    collective_id: str
    permissions: Dict[str, bool]
