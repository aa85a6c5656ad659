from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from socialgraph.core.utils import utcnow


class User(BaseModel):
    id: str
    display_name: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    display_name: str = Field(min_length=1, max_length=80)
