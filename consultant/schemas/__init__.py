from consultant.schemas.avito import ChatInfo, ItemContext, SendMessageRequest
from consultant.schemas.upload import UploadResponse
from consultant.schemas.webhook import AvitoMessage, MessageContent, WebhookResponse

__all__ = [
    "AvitoMessage",
    "ChatInfo",
    "ItemContext",
    "MessageContent",
    "SendMessageRequest",
    "UploadResponse",
    "WebhookResponse",
]
