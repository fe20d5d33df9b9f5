from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    SYSTEM = "system"
    ITEM = "item"
    CALL = "call"
    LINK = "link"
    LOCATION = "location"
    DELETED = "deleted"
    APP_CALL = "appCall"
    FILE = "file"
    VIDEO = "video"
    VOICE = "voice"


class ChatType(str, Enum):
    USER_TO_ITEM = "u2i"
    USER_TO_USER = "u2u"


class MessageContent(BaseModel):
    text: str = ""


class AvitoMessage(BaseModel):
    """Inbound Avito messenger event."""

    author_id: int = 0
    chat_id: str = ""
    chat_type: str = ChatType.USER_TO_ITEM.value
    content: MessageContent = Field(default_factory=MessageContent)
    created: int = 0
    id: str = ""
    item_id: Optional[int] = None
    read: Optional[int] = None
    type: str = MessageType.TEXT.value
    user_id: int = 0

    @property
    def is_own_message(self) -> bool:
        # Avito echoes messages sent from the account itself
        return bool(self.user_id) and self.author_id == self.user_id


class WebhookResponse(BaseModel):
    response: Optional[str] = None
