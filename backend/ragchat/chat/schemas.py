from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ragchat.chat.service import DEFAULT_CONVERSATION_ID, normalize_conversation_id


class ChatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = Field(min_length=1, max_length=20000)
    conversation_id: str = DEFAULT_CONVERSATION_ID
    use_rag: bool = False

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message cannot be blank")
        return value

    @field_validator("conversation_id", mode="before")
    @classmethod
    def _default_conversation(cls, value):
        if value is None or isinstance(value, str):
            return normalize_conversation_id(value)
        return value


class ChatResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: str
    conversation_id: str
    sources: list[str] = []
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
