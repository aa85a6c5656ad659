from pydantic import BaseModel, Field


class TypingUpdate(BaseModel):
    receiver_id: str = Field(min_length=1)
    is_typing: bool = True


class TypingStatus(BaseModel):
    is_typing: bool
