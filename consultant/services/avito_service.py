import asyncio
import json
from typing import Optional

from pydantic import ValidationError

from consultant.logging_config import get_logger
from consultant.schemas.avito import (
    ChatInfo,
    ItemContext,
    OutgoingText,
    ReadChatResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from consultant.services.errors import TransportError
from consultant.services.http_client import RetryingTransport

logger = get_logger("avito_service")


class AvitoClient:
    """Client for the Avito messenger API."""

    def __init__(self, transport: RetryingTransport, token: str, base_url: str = "https://api.avito.ru"):
        self.transport = transport
        self.token = token
        self.base_url = base_url.rstrip("/")

    async def _make_request(
        self,
        method: str,
        path: str,
        data: Optional[dict] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> dict:
        request = self.transport.client.build_request(
            method,
            f"{self.base_url}{path}",
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json",
            },
            content=json.dumps(data).encode("utf-8") if data is not None else None,
        )
        body = await self.transport.execute(request, cancel=cancel)
        if not body:
            raise TransportError(f"Empty response body from {path}")
        try:
            return json.loads(body)
        except ValueError as exc:
            raise TransportError(f"Invalid JSON from {path}: {exc}") from exc

    async def send_message(self, user_id: int, chat_id: str, text: str) -> SendMessageResponse:
        """Send a text message to the chat on behalf of the account."""
        payload = SendMessageRequest(message=OutgoingText(text=text))
        data = await self._make_request(
            "POST",
            f"/messenger/v1/accounts/{user_id}/chats/{chat_id}/messages",
            payload.model_dump(),
        )
        return SendMessageResponse.model_validate(data)

    async def read_chat(self, user_id: int, chat_id: str) -> bool:
        """Mark all messages in the chat as read."""
        data = await self._make_request("POST", f"/messenger/v1/accounts/{user_id}/chats/{chat_id}/read")
        return ReadChatResponse.model_validate(data).ok

    async def get_chat_info(self, user_id: int, chat_id: str, cancel: Optional[asyncio.Event] = None) -> ChatInfo:
        data = await self._make_request("GET", f"/messenger/v2/accounts/{user_id}/chats/{chat_id}", cancel=cancel)
        try:
            return ChatInfo.model_validate(data)
        except ValidationError as exc:
            raise TransportError(f"Unexpected chat info payload: {exc}") from exc

    async def get_item_context(
        self, user_id: int, chat_id: str, cancel: Optional[asyncio.Event] = None
    ) -> Optional[ItemContext]:
        """Listing the chat is about, or None when Avito has none."""
        info = await self.get_chat_info(user_id, chat_id, cancel=cancel)
        item = info.context.value
        return None if item.is_empty else item
