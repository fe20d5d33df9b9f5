import asyncio
from typing import List, Optional

import pytest

from consultant.database import create_db_engine, create_session_factory, init_db
from consultant.schemas.webhook import AvitoMessage, MessageContent
from consultant.services.errors import ExhaustedRetries, UpstreamStatus
from consultant.services.llm.base import (
    AssistantClient,
    AssistantInfo,
    LLMResponse,
    Run,
    ThreadMessage,
    VectorStoreInfo,
)
from consultant.services.store_service import ConversationStore


class FakeAssistantClient(AssistantClient):
    """In-memory assistant API that records every call."""

    def __init__(self, run_statuses: Optional[List[str]] = None, reply: str = "Здравствуйте! Товар в наличии."):
        self.run_statuses = list(run_statuses or ["queued", "in_progress", "completed"])
        self.reply = reply
        self.calls: List[tuple] = []
        self.posted: List[tuple] = []
        self.threads = 0
        self.remote_stores: List[VectorStoreInfo] = []
        self.store_files: dict = {}
        self.deleted_files: List[str] = []
        self.completion = "Ответ из completions"
        self.failing_uploads = 0

    async def create_thread(self, cancel: Optional[asyncio.Event] = None) -> str:
        self.threads += 1
        self.calls.append(("create_thread",))
        return f"thread_{self.threads}"

    async def create_message(self, thread_id: str, text: str, cancel: Optional[asyncio.Event] = None) -> str:
        self.calls.append(("create_message", thread_id))
        self.posted.append((thread_id, text))
        return f"msg_{len(self.posted)}"

    async def create_run(self, thread_id: str, assistant_id: str, cancel: Optional[asyncio.Event] = None) -> Run:
        self.calls.append(("create_run", thread_id, assistant_id))
        status = self.run_statuses.pop(0) if len(self.run_statuses) > 1 else self.run_statuses[0]
        return Run(id="run_1", status=status)

    async def get_run(self, thread_id: str, run_id: str, cancel: Optional[asyncio.Event] = None) -> Run:
        self.calls.append(("get_run", thread_id, run_id))
        status = self.run_statuses.pop(0) if len(self.run_statuses) > 1 else self.run_statuses[0]
        return Run(id=run_id, status=status, last_error="boom" if status == "failed" else None)

    async def list_messages(self, thread_id, limit=1, order="desc", cancel=None) -> List[ThreadMessage]:
        self.calls.append(("list_messages", thread_id, limit, order))
        if not self.reply:
            return []
        return [ThreadMessage(id="msg_reply", role="assistant", text=self.reply)]

    async def create_assistant(self, name: str, instructions: str, model: str) -> AssistantInfo:
        self.calls.append(("create_assistant", name))
        return AssistantInfo(id=f"asst_{name}", name=name)

    async def attach_vector_store(self, assistant_id: str, store_id: str) -> None:
        self.calls.append(("attach_vector_store", assistant_id, store_id))

    async def create_vector_store(self, name: str) -> VectorStoreInfo:
        self.calls.append(("create_vector_store", name))
        store = VectorStoreInfo(id=f"vs_{len(self.remote_stores) + 1}", name=name)
        self.remote_stores.append(store)
        return store

    async def list_vector_stores(self, limit: int = 20) -> List[VectorStoreInfo]:
        self.calls.append(("list_vector_stores",))
        return list(self.remote_stores)

    async def upload_file(self, file_name: str, content: bytes, purpose: str = "assistants") -> str:
        self.calls.append(("upload_file", file_name))
        if self.failing_uploads:
            self.failing_uploads -= 1
            raise ExhaustedRetries(2, UpstreamStatus(500, "server error"))
        return f"file_{sum(1 for call in self.calls if call[0] == 'upload_file')}"

    async def add_file_to_store(self, store_id: str, file_id: str) -> str:
        self.calls.append(("add_file_to_store", store_id, file_id))
        self.store_files.setdefault(store_id, []).append(file_id)
        return file_id

    async def remove_file_from_store(self, store_id: str, file_id: str) -> None:
        self.calls.append(("remove_file_from_store", store_id, file_id))
        if file_id not in self.store_files.get(store_id, []):
            raise ExhaustedRetries(2, UpstreamStatus(404, "No such file"))
        self.store_files[store_id].remove(file_id)

    async def delete_file(self, file_id: str) -> None:
        self.calls.append(("delete_file", file_id))
        self.deleted_files.append(file_id)

    async def generate(self, messages, model=None, temperature=0.5, cancel=None) -> LLMResponse:
        self.calls.append(("generate", messages, temperature))
        return LLMResponse(content=self.completion, model=model or "gpt-4o")

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return ConversationStore(session_factory)


@pytest.fixture
def fake_client():
    return FakeAssistantClient()


def make_message(chat_id: str = "c1", text: str = "hello", author_id: int = 42, user_id: int = 42, created: int = 1700000000):
    return AvitoMessage(
        author_id=author_id,
        chat_id=chat_id,
        chat_type="u2i",
        content=MessageContent(text=text),
        created=created,
        id="m1",
        type="text",
        user_id=user_id,
    )


@pytest.fixture
def message_factory():
    return make_message


@pytest.fixture
def client_factory():
    return FakeAssistantClient
