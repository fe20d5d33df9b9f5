from typing import List

from sqlalchemy.exc import SQLAlchemyError

from consultant.logging_config import get_logger
from consultant.services.store_service import ConversationStore

logger = get_logger("history")


class HistoryAssembler:
    """Build a chat-completions payload from the persona prompt, recent turns and the new message."""

    def __init__(self, store: ConversationStore, system_prompt: str, limit: int = 5):
        self.store = store
        self.system_prompt = system_prompt
        self.limit = limit

    def load_history(self, chat_id: str) -> List[dict]:
        """Recent turns in chronological order; empty if the store is unavailable."""
        try:
            recent = self.store.get_recent_turns(chat_id, self.limit)
        except SQLAlchemyError as exc:
            logger.warning(
                "History load failed, continuing without history",
                extra={"context": {"chat_id": chat_id, "error": str(exc)}},
            )
            return []

        history = []
        for turn in reversed(recent):
            role = "assistant" if turn["role"] == "assistant" else "user"
            history.append({"role": role, "content": turn["content"]})
        return history

    def is_first_turn(self, chat_id: str) -> bool:
        """True when the chat has no stored turns.

        An unavailable store counts as an ongoing chat so the listing is not
        repeated on every message.
        """
        try:
            return self.store.count_turns(chat_id) == 0
        except SQLAlchemyError as exc:
            logger.warning(
                "Turn count failed, treating chat as ongoing",
                extra={"context": {"chat_id": chat_id, "error": str(exc)}},
            )
            return False

    def assemble(self, chat_id: str, user_text: str) -> List[dict]:
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend(self.load_history(chat_id))
        messages.append({"role": "user", "content": user_text})
        return messages
