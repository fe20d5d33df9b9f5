import asyncio
from typing import Optional

from consultant.logging_config import ContextAdapter, get_logger
from consultant.schemas.webhook import AvitoMessage
from consultant.services.conversation_service import (
    ChatLocks,
    ItemSource,
    record_exchange,
    resolve_item,
    with_item_context,
)
from consultant.services.errors import EmptyReply
from consultant.services.history_service import HistoryAssembler
from consultant.services.llm.base import AssistantClient

logger = ContextAdapter(get_logger("completion_service"), {})


class CompletionOrchestrator:
    """Stateless reply mode: local history + one chat-completions call per message."""

    def __init__(
        self,
        client: AssistantClient,
        history: HistoryAssembler,
        model: Optional[str] = None,
        temperature: float = 0.5,
        locks: Optional[ChatLocks] = None,
    ):
        self.client = client
        self.history = history
        self.model = model
        self.temperature = temperature
        self.locks = locks or ChatLocks()

    async def get_response(
        self,
        message: AvitoMessage,
        item: ItemSource = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> str:
        async with self.locks.hold(message.chat_id):
            log = logger.bind(chat_id=message.chat_id, user_id=message.user_id)
            payload = self.history.assemble(message.chat_id, message.content.text)

            if self.history.is_first_turn(message.chat_id):
                payload[-1]["content"] = with_item_context(message.content.text, await resolve_item(item))

            response = await self.client.generate(
                payload,
                model=self.model,
                temperature=self.temperature,
                cancel=cancel,
            )
            reply = response.content.strip()
            if not reply:
                raise EmptyReply()
            log.info(
                "Completion received",
                context={"model": response.model, "history_messages": len(payload) - 2, "usage": response.usage},
            )

            record_exchange(self.history.store, message, reply)
            return reply
