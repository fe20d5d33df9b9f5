from typing import Optional

from pydantic import BaseModel, Field


class OutgoingText(BaseModel):
    text: str


class SendMessageRequest(BaseModel):
    message: OutgoingText
    type: str = "text"


class SendMessageContent(BaseModel):
    text: Optional[str] = None


class SendMessageResponse(BaseModel):
    id: str = ""
    created: int = 0
    direction: str = "out"
    type: str = "text"
    content: SendMessageContent = Field(default_factory=SendMessageContent)


class ReadChatResponse(BaseModel):
    ok: bool = False


class ItemContext(BaseModel):
    """The listing a chat is about."""

    id: Optional[int] = None
    title: str = ""
    price_string: str = ""
    url: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.title and not self.price_string


class ChatContext(BaseModel):
    type: str = ""
    value: ItemContext = Field(default_factory=ItemContext)


class ChatInfo(BaseModel):
    id: str = ""
    created: int = 0
    updated: int = 0
    context: ChatContext = Field(default_factory=ChatContext)
