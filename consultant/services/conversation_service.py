import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional, Union

from consultant.logging_config import get_logger
from consultant.schemas.avito import ItemContext
from consultant.schemas.webhook import AvitoMessage
from consultant.services.result import Result
from consultant.services.store_service import ConversationStore, Turn

logger = get_logger("conversation_service")

ITEM_CONTEXT_TEMPLATE = "Сообщение по объявлению {title} {price}: {text}"

ItemLoader = Callable[[], Awaitable[Optional[ItemContext]]]
ItemSource = Union[ItemContext, ItemLoader, None]


def with_item_context(text: str, item: Optional[ItemContext]) -> str:
    """Prefix the first message of a conversation with the listing it is about."""
    if item is None or item.is_empty:
        return text
    return ITEM_CONTEXT_TEMPLATE.format(title=item.title, price=item.price_string, text=text)


async def resolve_item(item: ItemSource) -> Optional[ItemContext]:
    """Return the listing, calling the loader only when one is passed in."""
    if item is None or isinstance(item, ItemContext):
        return item
    return await item()


def record_exchange(store: ConversationStore, message: AvitoMessage, reply: str) -> Result[None]:
    """Persist the user turn and the reply as one pair.

    Failure is logged and returned, never raised: the reply has already
    been produced and stays valid without the history rows.
    """
    user_turn = Turn(
        chat_id=message.chat_id,
        user_id=message.author_id,
        role="user",
        content=message.content.text,
        created_at=message.created or int(time.time()),
    )
    assistant_turn = Turn(
        chat_id=message.chat_id,
        user_id=message.user_id,
        role="assistant",
        content=reply,
        created_at=max(int(time.time()), user_turn.created_at),
    )
    result = store.save_turn_pair(user_turn, assistant_turn)
    if not result.ok:
        logger.error(
            "Turn pair not persisted, reply still returned",
            extra={"context": {"chat_id": message.chat_id, "error": result.error, "error_code": result.error_code}},
        )
    return result


class ChatLocks:
    """One asyncio.Lock per chat id so messages of a chat are handled one at a time."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, chat_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(chat_id, asyncio.Lock())
        self._waiters[chat_id] = self._waiters.get(chat_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[chat_id] -= 1
            if self._waiters[chat_id] == 0:
                del self._waiters[chat_id]
                del self._locks[chat_id]

    def __len__(self) -> int:
        return len(self._locks)
