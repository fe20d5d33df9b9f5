import asyncio
import json
from typing import List, Optional

from consultant.logging_config import get_logger
from consultant.services.http_client import RetryingTransport
from consultant.services.llm.base import (
    AssistantClient,
    AssistantInfo,
    LLMResponse,
    Run,
    ThreadMessage,
    VectorStoreInfo,
)

logger = get_logger("llm.openai")


class OpenAIAssistantClient(AssistantClient):
    """OpenAI Assistants v2 API over the retrying transport."""

    def __init__(
        self,
        transport: RetryingTransport,
        api_key: str,
        base_url: str = "https://api.openai.com/v1/",
        default_model: str = "gpt-4o",
    ):
        self.transport = transport
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model

    def _headers(self, json_body: bool = True) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "assistants=v2",
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _call(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> dict:
        content = json.dumps(payload).encode("utf-8") if payload is not None else None
        request = self.transport.client.build_request(
            method,
            f"{self.base_url}/{path}",
            headers=self._headers(),
            params=params,
            content=content,
        )
        body = await self.transport.execute(request, cancel=cancel)
        return json.loads(body) if body else {}

    async def create_thread(self, cancel: Optional[asyncio.Event] = None) -> str:
        data = await self._call("POST", "threads", {}, cancel=cancel)
        logger.info("Thread created", extra={"context": {"thread_id": data["id"]}})
        return data["id"]

    async def create_message(self, thread_id: str, text: str, cancel: Optional[asyncio.Event] = None) -> str:
        data = await self._call(
            "POST",
            f"threads/{thread_id}/messages",
            {"role": "user", "content": text},
            cancel=cancel,
        )
        return data["id"]

    async def create_run(self, thread_id: str, assistant_id: str, cancel: Optional[asyncio.Event] = None) -> Run:
        data = await self._call("POST", f"threads/{thread_id}/runs", {"assistant_id": assistant_id}, cancel=cancel)
        return _parse_run(data)

    async def get_run(self, thread_id: str, run_id: str, cancel: Optional[asyncio.Event] = None) -> Run:
        data = await self._call("GET", f"threads/{thread_id}/runs/{run_id}", cancel=cancel)
        return _parse_run(data)

    async def list_messages(
        self,
        thread_id: str,
        limit: int = 1,
        order: str = "desc",
        cancel: Optional[asyncio.Event] = None,
    ) -> List[ThreadMessage]:
        data = await self._call(
            "GET",
            f"threads/{thread_id}/messages",
            params={"limit": limit, "order": order},
            cancel=cancel,
        )
        messages = []
        for item in data.get("data") or []:
            parts = [
                part["text"]["value"]
                for part in item.get("content") or []
                if part.get("type") == "text" and part.get("text")
            ]
            messages.append(ThreadMessage(id=item.get("id", ""), role=item.get("role", ""), text="\n".join(parts)))
        return messages

    async def create_assistant(self, name: str, instructions: str, model: str) -> AssistantInfo:
        data = await self._call(
            "POST",
            "assistants",
            {
                "model": model or self.default_model,
                "name": name,
                "instructions": instructions,
                "tools": [{"type": "file_search"}],
            },
        )
        logger.info("Assistant created", extra={"context": {"asst_id": data["id"], "name": name}})
        return AssistantInfo(id=data["id"], name=data.get("name") or name)

    async def attach_vector_store(self, assistant_id: str, store_id: str) -> None:
        await self._call(
            "POST",
            f"assistants/{assistant_id}",
            {"tool_resources": {"file_search": {"vector_store_ids": [store_id]}}},
        )

    async def create_vector_store(self, name: str) -> VectorStoreInfo:
        data = await self._call("POST", "vector_stores", {"name": name})
        return VectorStoreInfo(id=data["id"], name=data.get("name") or name)

    async def list_vector_stores(self, limit: int = 20) -> List[VectorStoreInfo]:
        data = await self._call("GET", "vector_stores", params={"limit": limit})
        return [VectorStoreInfo(id=item["id"], name=item.get("name") or "") for item in data.get("data") or []]

    async def upload_file(self, file_name: str, content: bytes, purpose: str = "assistants") -> str:
        request = self.transport.client.build_request(
            "POST",
            f"{self.base_url}/files",
            headers=self._headers(json_body=False),
            data={"purpose": purpose},
            files={"file": (file_name, content)},
        )
        body = await self.transport.execute(request)
        data = json.loads(body)
        logger.info("File uploaded to openai", extra={"context": {"file_id": data["id"], "file_name": file_name}})
        return data["id"]

    async def add_file_to_store(self, store_id: str, file_id: str) -> str:
        data = await self._call("POST", f"vector_stores/{store_id}/files", {"file_id": file_id})
        return data.get("id", file_id)

    async def remove_file_from_store(self, store_id: str, file_id: str) -> None:
        await self._call("DELETE", f"vector_stores/{store_id}/files/{file_id}")

    async def delete_file(self, file_id: str) -> None:
        await self._call("DELETE", f"files/{file_id}")

    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.5,
        cancel: Optional[asyncio.Event] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        logger.debug(f"OpenAI request: model={model}, messages_count={len(messages)}")

        data = await self._call(
            "POST",
            "chat/completions",
            {"model": model, "messages": messages, "temperature": temperature},
            cancel=cancel,
        )

        content = ""
        if data.get("choices"):
            message = data["choices"][0].get("message", {})
            content = message.get("content") or ""
        logger.debug(f"OpenAI content: {content[:100] if content else 'EMPTY'}")

        return LLMResponse(content=content, model=data.get("model", model), usage=data.get("usage"))


def _parse_run(data: dict) -> Run:
    last_error = data.get("last_error") or {}
    return Run(id=data["id"], status=data.get("status", ""), last_error=last_error.get("message"))
