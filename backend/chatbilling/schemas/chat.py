"""Chat schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class ChatMessageCreate(BaseModel):
    question: str = Field(min_length=1, max_length=4000)

    @field_validator("question")
    @classmethod
    def strip_question(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Question is required and must be a non-empty string")
        return v


class ChatMessageOut(BaseModel):
    id: uuid.UUID
    question: str
    answer: str
    tokens: int
    created_at: datetime

    model_config = {"from_attributes": True}
