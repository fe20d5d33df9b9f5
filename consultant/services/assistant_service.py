"""Assistant thread/run protocol for one inbound message.

ResolveAssistant -> ResolveThread -> PostMessage -> StartRun -> PollRun
-> FetchReply -> Done. Any step may raise; only the final turn-pair
write is allowed to fail without failing the request.
"""

import asyncio
from enum import Enum
from typing import Optional, Tuple

from consultant.logging_config import ContextAdapter, get_logger
from consultant.schemas.webhook import AvitoMessage
from consultant.services.conversation_service import (
    ChatLocks,
    ItemSource,
    record_exchange,
    resolve_item,
    with_item_context,
)
from consultant.services.errors import AssistantNotConfigured, EmptyReply, RunFailed, RunTimeout
from consultant.services.http_client import wait_or_cancel
from consultant.services.llm.base import AssistantClient, Run
from consultant.services.store_service import ConversationStore

logger = ContextAdapter(get_logger("assistant_service"), {})


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    INCOMPLETE = "incomplete"


FAILED_RUN_STATUSES = {
    RunStatus.FAILED.value,
    RunStatus.CANCELLED.value,
    RunStatus.EXPIRED.value,
    RunStatus.INCOMPLETE.value,
}


class AssistantOrchestrator:
    def __init__(
        self,
        client: AssistantClient,
        store: ConversationStore,
        poll_interval: float = 0.5,
        max_wait: float = 60.0,
        locks: Optional[ChatLocks] = None,
    ):
        self.client = client
        self.store = store
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.locks = locks or ChatLocks()

    async def get_response(
        self,
        message: AvitoMessage,
        item: ItemSource = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> str:
        async with self.locks.hold(message.chat_id):
            return await self._respond(message, item, cancel)

    async def _respond(self, message: AvitoMessage, item: ItemSource, cancel: Optional[asyncio.Event]) -> str:
        log = logger.bind(chat_id=message.chat_id, user_id=message.user_id)

        asst_id = self.resolve_assistant(message.user_id)
        thread_id, is_new_thread = await self.resolve_thread(message.chat_id, asst_id, cancel)
        log = log.bind(thread_id=thread_id, asst_id=asst_id)

        text = message.content.text
        if is_new_thread:
            # the listing is only looked up for the first message of a chat
            text = with_item_context(text, await resolve_item(item))
        await self.client.create_message(thread_id, text, cancel=cancel)
        log.info("Message posted", context={"new_thread": is_new_thread})

        run = await self.client.create_run(thread_id, asst_id, cancel=cancel)
        await self.wait_for_run(thread_id, run, cancel)

        reply = await self.fetch_reply(thread_id, cancel)
        log.info("Reply received", context={"run_id": run.id, "reply_length": len(reply)})

        record_exchange(self.store, message, reply)
        return reply

    def resolve_assistant(self, user_id: int) -> str:
        asst_id = self.store.get_assistant_id(user_id)
        if not asst_id:
            raise AssistantNotConfigured(user_id)
        return asst_id

    async def resolve_thread(
        self, chat_id: str, asst_id: str, cancel: Optional[asyncio.Event] = None
    ) -> Tuple[str, bool]:
        """Existing thread for the chat, or a new one with its binding saved."""
        thread_id = self.store.get_thread_id(chat_id)
        if thread_id:
            return thread_id, False

        thread_id = await self.client.create_thread(cancel=cancel)
        # save errors propagate so the message is never posted to an unbound thread
        self.store.save_thread(chat_id, thread_id, asst_id)
        return thread_id, True

    async def wait_for_run(self, thread_id: str, run: Run, cancel: Optional[asyncio.Event] = None) -> Run:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.max_wait

        while True:
            if run.status == RunStatus.COMPLETED.value:
                return run
            if run.status in FAILED_RUN_STATUSES:
                logger.warning(
                    "Assistant run failed",
                    context={"thread_id": thread_id, "run_id": run.id, "status": run.status, "reason": run.last_error},
                )
                raise RunFailed(run.id, run.status, run.last_error)

            remaining = deadline - loop.time()
            if remaining <= 0:
                raise RunTimeout(run.id, self.max_wait)
            await wait_or_cancel(min(self.poll_interval, remaining), cancel)
            run = await self.client.get_run(thread_id, run.id, cancel=cancel)

    async def fetch_reply(self, thread_id: str, cancel: Optional[asyncio.Event] = None) -> str:
        messages = await self.client.list_messages(thread_id, limit=1, order="desc", cancel=cancel)
        if not messages or not messages[0].text:
            raise EmptyReply(thread_id)
        return messages[0].text
