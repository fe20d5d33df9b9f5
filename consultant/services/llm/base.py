import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


@dataclass
class Run:
    id: str
    status: str
    last_error: Optional[str] = None


@dataclass
class ThreadMessage:
    id: str
    role: str
    text: str


@dataclass
class AssistantInfo:
    id: str
    name: str


@dataclass
class VectorStoreInfo:
    id: str
    name: str
    file_ids: List[str] = field(default_factory=list)


class AssistantClient(ABC):
    """Capability interface for the assistant API.

    Every method accepts an optional ``cancel`` event that aborts the call
    (including its retry waits) with ``Cancelled``.
    """

    @abstractmethod
    async def create_thread(self, cancel: Optional[asyncio.Event] = None) -> str:
        """Create an empty thread and return its id."""

    @abstractmethod
    async def create_message(self, thread_id: str, text: str, cancel: Optional[asyncio.Event] = None) -> str:
        """Append a user message to the thread and return the message id."""

    @abstractmethod
    async def create_run(self, thread_id: str, assistant_id: str, cancel: Optional[asyncio.Event] = None) -> Run:
        pass

    @abstractmethod
    async def get_run(self, thread_id: str, run_id: str, cancel: Optional[asyncio.Event] = None) -> Run:
        pass

    @abstractmethod
    async def list_messages(
        self,
        thread_id: str,
        limit: int = 1,
        order: str = "desc",
        cancel: Optional[asyncio.Event] = None,
    ) -> List[ThreadMessage]:
        pass

    @abstractmethod
    async def create_assistant(self, name: str, instructions: str, model: str) -> AssistantInfo:
        pass

    @abstractmethod
    async def attach_vector_store(self, assistant_id: str, store_id: str) -> None:
        """Point the assistant's file_search tool at the store."""

    @abstractmethod
    async def create_vector_store(self, name: str) -> VectorStoreInfo:
        pass

    @abstractmethod
    async def list_vector_stores(self, limit: int = 20) -> List[VectorStoreInfo]:
        pass

    @abstractmethod
    async def upload_file(self, file_name: str, content: bytes, purpose: str = "assistants") -> str:
        """Upload raw bytes and return the file id."""

    @abstractmethod
    async def add_file_to_store(self, store_id: str, file_id: str) -> str:
        pass

    @abstractmethod
    async def remove_file_from_store(self, store_id: str, file_id: str) -> None:
        pass

    @abstractmethod
    async def delete_file(self, file_id: str) -> None:
        pass

    @abstractmethod
    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.5,
        cancel: Optional[asyncio.Event] = None,
    ) -> LLMResponse:
        """Single chat-completions call."""
